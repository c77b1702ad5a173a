from __future__ import annotations

from typing import Generator

from sqlalchemy.orm import Session

from tracker.db.session import get_session
from tracker.platforms import REGISTRY, AdapterRegistry


def db_session() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a SQLAlchemy :class:`Session`.

    Usage in route handlers:
        def handler(session: Session = Depends(db_session)):
            ...
    """
    with get_session() as session:
        yield session


def adapter_registry() -> AdapterRegistry:
    """The process-wide adapter registry; overridable in tests."""
    return REGISTRY


__all__ = ["db_session", "adapter_registry"]
