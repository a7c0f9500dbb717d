"""
API Module

FastAPI application factory, routes, middleware and error handlers. Import
``create_app`` from ``backoffice.serving.api.main``.
"""
