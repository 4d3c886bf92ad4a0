"""
Event Journal — SQLAlchemy models for the persisted notification log.

The journal is the indexer-facing record of every notification a ledger
emitted. It is append-only and hash-chained:

1. Verifiable  — each row stores SHA-256(previous_hash || canonical_json(row))
2. Append-Only — rows are inserted, never updated or deleted
3. Replayable  — ownership can be rebuilt from ``transfer`` rows alone

Column types are dialect-neutral so the journal runs on PostgreSQL or SQLite.
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all journal models."""
    pass


class JournalEntryDB(Base):
    """
    A single persisted notification.

    Sequence 0 is the genesis row; its previous_hash is all zeros.
    """

    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)

    sequence_number = Column(
        Integer, nullable=False, unique=True, index=True,
        comment="Monotonically increasing sequence number",
    )

    previous_hash = Column(
        String(64), nullable=False,
        comment="SHA-256 hash of the previous entry",
    )
    entry_hash = Column(
        String(64), nullable=False, unique=True,
        comment="SHA-256 hash of this entry",
    )

    recorded_at = Column(
        DateTime(timezone=True), nullable=False, default=func.now(),
        comment="When the notification was emitted",
    )

    event_type = Column(
        String(50), nullable=False, index=True,
        comment="Notification kind (mint, transfer, role_granted, ...)",
    )

    # Denormalized for indexer queries; null for non-token events.
    token_id = Column(Integer, nullable=True)

    payload = Column(
        JSON, nullable=False,
        comment="Notification body as emitted",
    )

    __table_args__ = (
        Index("ix_journal_event_type_seq", "event_type", "sequence_number"),
        Index("ix_journal_token_id", "token_id"),
        {"comment": "Append-only, hash-chained log of NFT ledger notifications"},
    )

    def __repr__(self) -> str:
        return (
            f"<JournalEntry seq={self.sequence_number} "
            f"type={self.event_type} hash={self.entry_hash[:12]}...>"
        )
