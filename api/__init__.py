"""
API Module for the Lead Insights API.

FastAPI application with routes for:
- Predictive insights and top leads
- Prediction recompute
- Lead management
"""

from .main import create_app, app

__all__ = ["create_app", "app"]
