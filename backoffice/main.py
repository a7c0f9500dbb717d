"""
FastAPI Production Application

Main entry point for the Back-Office Dashboard API.

    uvicorn backoffice.main:app
    gunicorn backoffice.main:app -c gunicorn.conf.py
"""

from backoffice.serving.api.main import create_app

app = create_app()


if __name__ == "__main__":
    import uvicorn
    from backoffice.config import get_settings

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
