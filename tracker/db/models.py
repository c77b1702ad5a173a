from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# --- SQLAlchemy base ---------------------------------------------------------

class Base(DeclarativeBase):
    """Declarative base for all models."""
    pass


APPLICATION_STATUSES = ("applied", "interview", "offer", "rejected", "withdrawn")


# --- Models ------------------------------------------------------------------

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    username: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    email: Mapped[Optional[str]] = mapped_column(String(320))

    credentials: Mapped[list["PlatformCredential"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<User id={self.id} username={self.username!r}>"


class PlatformCredential(Base):
    """Opaque per-platform credential payload; one row per (user, platform)."""

    __tablename__ = "platform_credentials"
    __table_args__ = (UniqueConstraint("user_id", "platform", name="uq_credential_user_platform"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    user: Mapped["User"] = relationship(back_populates="credentials")

    platform: Mapped[str] = mapped_column(String(40), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<PlatformCredential user_id={self.user_id} platform={self.platform}>"


class JobListing(Base):
    """Externally-sourced posting mirrored locally for one user."""

    __tablename__ = "job_listings"
    __table_args__ = (
        # Dedup key: re-ingesting the same external job must hit the existing row
        UniqueConstraint("user_id", "source", "external_id", name="uq_listing_user_source_external"),
        Index("ix_job_listings_user_saved_at", "user_id", "saved_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)

    source: Mapped[str] = mapped_column(String(40), nullable=False, index=True)
    external_id: Mapped[str] = mapped_column(String(200), nullable=False)

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    company: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(300))
    description: Mapped[Optional[str]] = mapped_column(Text)
    salary: Mapped[Optional[str]] = mapped_column(String(200))
    url: Mapped[str] = mapped_column(String(600), nullable=False)
    is_remote: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    posted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    saved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    applied: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    hidden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Raw platform payload, kept verbatim
    details: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<JobListing id={self.id} src={self.source} ext={self.external_id!r} title={self.title!r}>"


class Application(Base):
    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)

    role: Mapped[str] = mapped_column(String(300), nullable=False)
    company: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(300))
    salary_range: Mapped[Optional[str]] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(40), default="applied", nullable=False)
    link: Mapped[Optional[str]] = mapped_column(String(600))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    external_application_id: Mapped[Optional[str]] = mapped_column(String(200))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
    applied_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Application id={self.id} role={self.role!r} status={self.status}>"


class Stat(Base):
    """Aggregate per-user counters shown on the dashboard."""

    __tablename__ = "stats"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), unique=True, index=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )
    total_applications: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Stat user_id={self.user_id} total_applications={self.total_applications}>"


__all__ = [
    "Base",
    "User",
    "PlatformCredential",
    "JobListing",
    "Application",
    "Stat",
    "APPLICATION_STATUSES",
]
