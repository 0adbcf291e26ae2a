"""
HTTP Entry Point for Trackmoji

Run with:

    uvicorn app.main:app --host 0.0.0.0 --port 3000

Configuration comes from the environment (or .env):
GEMINI_API_KEY, DATABASE_URL, APP_ENVIRONMENT, LOG_LEVEL, API_PREFIX.
"""

from trackmoji.api import create_app


app = create_app()
