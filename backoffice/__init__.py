"""
Back-Office Dashboard

KPI aggregation API and Streamlit view for the marketplace back office.
"""

__version__ = "1.0.0"
