"""Shared service base with robust session lifecycle behavior."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from trainhub.database import db as db_module


def utcnow_naive() -> datetime:
    """Return UTC now as naive datetime to match the DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class BaseService:
    """Base class for services that operate on a SQLAlchemy session."""

    def __init__(self, db: Session | None = None) -> None:
        self.db = db or db_module.SessionLocal()

    def commit(self) -> None:
        """Commit current transaction and rollback on failure."""
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    def rollback(self) -> None:
        self.db.rollback()
