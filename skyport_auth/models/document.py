"""
Document model — one JSON value stored under a string key.

This is the whole persistence schema. The auth core only needs get/set by
key over a document store, so every logical collection is a row here:

  - "users":    list of user documents (see schemas.user.UserRecord)
  - "settings": the site settings document ({"forceVerify": bool})
  - "name":     site display name
  - "logo":     false or a logo URL
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from skyport_auth.database import Base


class Document(Base):
    __tablename__ = "documents"

    key: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
    )

    # Any JSON-serialisable value; NULL is never written, absence means "unset"
    value: Mapped[Any] = mapped_column(
        JSON,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
