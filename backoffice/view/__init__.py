"""
Dashboard View Module

Streamlit front end for the dashboard API. Run with
``streamlit run backoffice/view/app.py``.
"""
from .client import DashboardClient, DashboardClientError

__all__ = [
    "DashboardClient",
    "DashboardClientError",
]
