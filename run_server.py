#!/usr/bin/env python
"""
Dashboard API Server Entry Point

Usage:
    Development:  python run_server.py --dev
    Production:   python run_server.py --workers 4

    Or with Gunicorn:
    gunicorn backoffice.main:app -c gunicorn.conf.py
"""

import argparse
import subprocess
import sys

from backoffice.config import get_settings

APP_PATH = "backoffice.main:app"


def run_dev_server(host: str, port: int):
    """Run development server with auto-reload."""
    import uvicorn

    uvicorn.run(
        APP_PATH,
        host=host,
        port=port,
        reload=True,
        reload_dirs=["backoffice"],
        log_level="debug",
        # request logging is done by RequestLoggingMiddleware
        access_log=False,
    )


def run_prod_server(host: str, port: int, workers: int):
    """Run production server with Uvicorn directly."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        APP_PATH,
        host=host,
        port=port,
        workers=workers,
        log_level=settings.monitoring.log_level.lower(),
        access_log=False,
        proxy_headers=True,
        forwarded_allow_ips="*",
        server_header=False,
    )


def run_gunicorn() -> int:
    """Run with Gunicorn (recommended for production)."""
    return subprocess.run(["gunicorn", APP_PATH, "-c", "gunicorn.conf.py"]).returncode


def main(argv=None) -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Back-Office Dashboard API Server")
    parser.add_argument("--dev", action="store_true", help="Run in development mode with auto-reload")
    parser.add_argument("--gunicorn", action="store_true", help="Run with Gunicorn (production)")
    parser.add_argument("--host", default=settings.api_host, help=f"Bind address (default: {settings.api_host})")
    parser.add_argument("--port", type=int, default=settings.api_port, help=f"Port (default: {settings.api_port})")
    parser.add_argument(
        "--workers",
        type=int,
        default=settings.api_workers,
        help=f"Uvicorn worker processes (default: {settings.api_workers})",
    )
    args = parser.parse_args(argv)

    if args.dev:
        print(f"Starting development server on {args.host}:{args.port}...")
        run_dev_server(args.host, args.port)
    elif args.gunicorn:
        print("Starting production server with Gunicorn...")
        return run_gunicorn()
    else:
        print(f"Starting production server with {args.workers} Uvicorn workers...")
        run_prod_server(args.host, args.port, args.workers)
    return 0


if __name__ == "__main__":
    sys.exit(main())
