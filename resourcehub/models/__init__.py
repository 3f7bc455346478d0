"""
ResourceHub
Model registry: the shared Flask-SQLAlchemy handle.

Usage:
    from resourcehub.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
