"""
Production Server Configuration

Runs the dashboard API with Uvicorn workers under Gunicorn.
The aggregation endpoint fans out many queries per request, so workers are
bounded by the database pool rather than by CPU count.
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", f"{os.getenv('API_HOST', '0.0.0.0')}:{os.getenv('API_PORT', '8000')}")
backlog = 512

# Worker processes
workers = int(os.getenv("API_WORKERS", min(multiprocessing.cpu_count() * 2 + 1, 4)))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 5000
max_requests_jitter = 500
# a cold "all" aggregation runs a few hundred queries
timeout = 120
keepalive = 5
graceful_timeout = 30

# Process naming
proc_name = "backoffice-dashboard-api"

# Logging; request lines come from RequestLoggingMiddleware
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = None


def when_ready(server):
    """Called when server is ready to receive connections."""
    server.log.info("Dashboard API ready on %s with %s workers", bind, workers)


def worker_abort(worker):
    """Called when a worker times out, usually on a stuck aggregation."""
    worker.log.warning("Worker %s aborted", worker.pid)
