"""
Configuration for the Lead Insights API.
"""
