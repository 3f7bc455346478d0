"""
WSGI / Flask-Migrate entry point.

Usage:
    flask --app wsgi run
    flask --app wsgi db migrate -m "description"
    flask --app wsgi db upgrade
"""

from resourcehub import create_app

app = create_app()
