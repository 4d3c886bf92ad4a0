"""
Event Journal Service — append-only, hash-chained notification log.

The ledger core only knows about subscribers. This service is one of them:
register ``journal.record`` with ``TokenLedger.subscribe`` and every
committed notification is persisted in emission order.

The service provides:
- Append new entries with automatic hash chain computation
- Verify the integrity of the full hash chain
- Query entries by type, paged
- Rebuild current ownership from transfer entries
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from typing import Any

from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from nft_ledger.ledger.models import Base, JournalEntryDB
from nft_ledger.token.schema import EventType, LedgerEvent, Principal

logger = logging.getLogger(__name__)


GENESIS_HASH = "0" * 64  # The "previous hash" for the first entry in the chain
GENESIS_EVENT_TYPE = "genesis"


class JournalIntegrityError(Exception):
    """Raised when the journal cannot be appended to consistently."""
    pass


class EventJournal:
    """
    Persisted log of ledger notifications.

    Usage:
        journal = EventJournal("sqlite:///journal.db")
        journal.initialize()
        ledger.subscribe(journal.record)
    """

    def __init__(self, database_url: str) -> None:
        """
        Args:
            database_url: Any SQLAlchemy URL (sync driver).
        """
        engine_kwargs: dict[str, Any] = {"echo": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, or every session sees an empty database.
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        self.engine = create_engine(database_url, **engine_kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._append_lock = threading.Lock()

    def initialize(self) -> None:
        """Create the schema and seed the genesis entry if missing."""
        Base.metadata.create_all(self.engine)

        with self.SessionLocal() as session:
            existing = session.execute(
                select(JournalEntryDB).where(JournalEntryDB.sequence_number == 0)
            ).scalar_one_or_none()

            if existing is None:
                payload = {"message": "Genesis of the NFT ledger event journal"}
                entry_hash = self._compute_hash(
                    sequence_number=0,
                    previous_hash=GENESIS_HASH,
                    event_type=GENESIS_EVENT_TYPE,
                    token_id=None,
                    payload=payload,
                )
                session.add(JournalEntryDB(
                    sequence_number=0,
                    previous_hash=GENESIS_HASH,
                    entry_hash=entry_hash,
                    event_type=GENESIS_EVENT_TYPE,
                    token_id=None,
                    payload=payload,
                ))
                session.commit()
                logger.info("Journal genesis created: hash=%s", entry_hash[:16])

    def record(self, event: LedgerEvent) -> JournalEntryDB:
        """
        Append ``event`` to the journal.

        Signature matches ``TokenLedger.subscribe`` callbacks.

        Raises:
            JournalIntegrityError: if the journal was never initialized.
        """
        payload = event.model_dump(mode="json", by_alias=True)
        event_type = payload["event_type"]
        token_id = payload.get("token_id", payload.get("first_token_id"))

        with self._append_lock, self.SessionLocal() as session:
            last_entry = session.execute(
                select(JournalEntryDB)
                .order_by(JournalEntryDB.sequence_number.desc())
                .limit(1)
            ).scalar_one_or_none()

            if last_entry is None:
                raise JournalIntegrityError(
                    "Cannot append: no genesis entry found. Call initialize() first."
                )

            new_seq = last_entry.sequence_number + 1
            previous_hash = last_entry.entry_hash
            entry_hash = self._compute_hash(
                sequence_number=new_seq,
                previous_hash=previous_hash,
                event_type=event_type,
                token_id=token_id,
                payload=payload,
            )

            entry = JournalEntryDB(
                sequence_number=new_seq,
                previous_hash=previous_hash,
                entry_hash=entry_hash,
                recorded_at=event.emitted_at,
                event_type=event_type,
                token_id=token_id,
                payload=payload,
            )
            session.add(entry)
            session.commit()

            logger.debug(
                "Journal entry appended: seq=%d type=%s hash=%s",
                new_seq, event_type, entry_hash[:16],
            )
            return entry

    def verify_chain(self) -> tuple[bool, int, str]:
        """
        Verify the integrity of the entire hash chain.

        Returns:
            Tuple of (is_valid, entries_verified, message).
        """
        with self.SessionLocal() as session:
            entries = session.execute(
                select(JournalEntryDB).order_by(JournalEntryDB.sequence_number.asc())
            ).scalars().all()

            if not entries:
                return False, 0, "No entries found in journal"

            first = entries[0]
            if first.sequence_number != 0:
                return False, 0, f"First entry has sequence {first.sequence_number}, expected 0"
            if first.previous_hash != GENESIS_HASH:
                return False, 0, "Genesis entry has incorrect previous_hash"

            for i, entry in enumerate(entries):
                expected_hash = self._compute_hash(
                    sequence_number=entry.sequence_number,
                    previous_hash=entry.previous_hash,
                    event_type=entry.event_type,
                    token_id=entry.token_id,
                    payload=entry.payload,
                )
                if entry.entry_hash != expected_hash:
                    return (
                        False, i,
                        f"Hash mismatch at sequence {entry.sequence_number}: "
                        f"stored={entry.entry_hash[:16]}... "
                        f"computed={expected_hash[:16]}..."
                    )

                if i > 0 and entry.previous_hash != entries[i - 1].entry_hash:
                    return (
                        False, i,
                        f"Chain break at sequence {entry.sequence_number}: "
                        f"previous_hash does not match prior entry's hash"
                    )

            return (
                True, len(entries),
                f"Chain verified: {len(entries)} entries, integrity intact"
            )

    def get_events(
        self,
        event_type: EventType | str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[JournalEntryDB]:
        """Journal entries in sequence order, optionally filtered by type."""
        with self.SessionLocal() as session:
            stmt = select(JournalEntryDB).where(JournalEntryDB.sequence_number > 0)
            if event_type is not None:
                stmt = stmt.where(
                    JournalEntryDB.event_type == EventType(event_type).value
                )
            stmt = (
                stmt.order_by(JournalEntryDB.sequence_number.asc())
                .limit(limit)
                .offset(offset)
            )
            return list(session.execute(stmt).scalars().all())

    def get_event_count(self) -> int:
        """Number of recorded notifications, genesis excluded."""
        with self.SessionLocal() as session:
            result = session.execute(
                select(func.count())
                .select_from(JournalEntryDB)
                .where(JournalEntryDB.sequence_number > 0)
            )
            return result.scalar() or 0

    def replay_ownership(self) -> dict[int, Principal]:
        """Rebuild ``{token_id: owner}`` from transfer entries."""
        owners: dict[int, Principal] = {}
        with self.SessionLocal() as session:
            rows = session.execute(
                select(JournalEntryDB)
                .where(JournalEntryDB.event_type == EventType.TRANSFER.value)
                .order_by(JournalEntryDB.sequence_number.asc())
            ).scalars()
            for row in rows:
                to = row.payload.get("to")
                if to is None:
                    owners.pop(row.token_id, None)
                else:
                    owners[row.token_id] = to
        return owners

    # ── Internal ────────────────────────────────────────────────

    @staticmethod
    def _compute_hash(
        sequence_number: int,
        previous_hash: str,
        event_type: str,
        token_id: int | None,
        payload: dict[str, Any],
    ) -> str:
        """
        Hash = SHA-256(previous_hash || canonical_json(entry_fields))
        """
        hashable = {
            "sequence_number": sequence_number,
            "previous_hash": previous_hash,
            "event_type": event_type,
            "token_id": token_id,
            "payload": payload,
        }
        canonical = json.dumps(hashable, sort_keys=True, default=str)
        return hashlib.sha256(
            (previous_hash + canonical).encode("utf-8")
        ).hexdigest()
