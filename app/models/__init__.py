"""
Sales Daily Report — SQLAlchemy models package.

The shared ``db`` instance is bound to the Flask app in ``create_app``.
Model modules are imported by the factory so that metadata is complete
before ``db.create_all()`` / Alembic autogenerate run.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
