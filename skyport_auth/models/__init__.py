"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows about them
before create_all runs.
"""

from skyport_auth.models.document import Document  # noqa: F401
