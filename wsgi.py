"""
WSGI / Flask CLI entry point.

Usage:
    gunicorn wsgi:app
    flask --app wsgi db upgrade
    flask --app wsgi issue-token yamada@example.com
"""

from app import create_app

app = create_app()
