"""
API Routes for the Lead Insights API.
"""

from . import leads, predictive

__all__ = ["leads", "predictive"]
