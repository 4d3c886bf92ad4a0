"""
Tests for the Event Journal hash chain.

Validates:
- Genesis seeding
- Append via ledger subscription
- Chain verification and tamper detection
- Ownership replay from transfer entries
"""

from __future__ import annotations

import pytest
from sqlalchemy import update

from nft_ledger.ledger.journal import (
    GENESIS_HASH,
    EventJournal,
    JournalIntegrityError,
)
from nft_ledger.ledger.models import Base, JournalEntryDB
from nft_ledger.ledger.service import TokenLedger
from nft_ledger.token.errors import InvalidQuantity
from nft_ledger.token.schema import EventType, MintEvent, Role


@pytest.fixture
def journal(tmp_path):
    journal = EventJournal(f"sqlite:///{tmp_path / 'journal.db'}")
    journal.initialize()
    return journal


@pytest.fixture
def ledger(journal):
    ledger = TokenLedger("Journal Test", "JT", "ipfs://base/", 100, owner="owner")
    ledger.subscribe(journal.record)
    ledger.grant_role("owner", Role.MINTER, "minter")
    return ledger


class TestJournalGenesis:

    def test_genesis_created_once(self, journal):
        journal.initialize()
        ok, count, _ = journal.verify_chain()
        assert ok
        assert count == 1
        assert journal.get_event_count() == 0

    def test_in_memory_database(self):
        journal = EventJournal("sqlite:///:memory:")
        journal.initialize()
        journal.record(MintEvent(to="alice", first_token_id=1, quantity=1))
        assert journal.get_event_count() == 1

    def test_record_requires_genesis(self, tmp_path):
        journal = EventJournal(f"sqlite:///{tmp_path / 'bare.db'}")
        Base.metadata.create_all(journal.engine)
        with pytest.raises(JournalIntegrityError):
            journal.record(MintEvent(to="alice", first_token_id=1, quantity=1))


class TestJournalRecording:

    def test_ledger_events_recorded_in_order(self, journal, ledger):
        ledger.mint("minter", "alice", 2)
        ledger.burn("owner", 1)

        entries = journal.get_events()
        assert [e.event_type for e in entries] == [
            "role_granted", "mint", "transfer", "transfer", "transfer",
        ]
        assert [e.token_id for e in entries[2:]] == [1, 2, 1]
        assert entries[-1].payload["from"] == "alice"
        assert entries[-1].payload["to"] is None

    def test_filter_by_type(self, journal, ledger):
        ledger.mint("minter", "alice", 3)
        mints = journal.get_events(event_type=EventType.MINT)
        assert len(mints) == 1
        assert mints[0].payload["first_token_id"] == 1
        assert mints[0].payload["quantity"] == 3

    def test_paging(self, journal, ledger):
        ledger.mint("minter", "alice", 5)
        page = journal.get_events(event_type="transfer", limit=2, offset=2)
        assert [e.token_id for e in page] == [3, 4]

    def test_entries_are_linked(self, journal, ledger):
        ledger.mint("minter", "alice", 1)
        entries = journal.get_events()
        assert entries[0].previous_hash != GENESIS_HASH
        for prev, entry in zip(entries, entries[1:]):
            assert entry.previous_hash == prev.entry_hash

    def test_failed_calls_record_nothing(self, journal, ledger):
        before = journal.get_event_count()
        with pytest.raises(InvalidQuantity):
            ledger.mint("minter", "alice", 101)
        assert journal.get_event_count() == before

    def test_nothing_recorded_after_destroy(self, journal, ledger):
        ledger.destroy("owner", "owner")
        count = journal.get_event_count()
        ledger.mint("minter", "alice", 1)
        assert journal.get_event_count() == count
        assert journal.get_events()[-1].event_type == "destroyed"


class TestJournalIntegrity:

    def test_valid_chain(self, journal, ledger):
        ledger.mint("minter", "alice", 3)
        ok, count, message = journal.verify_chain()
        assert ok, message
        assert count == 1 + journal.get_event_count()

    def test_tamper_detection(self, journal, ledger):
        ledger.mint("minter", "alice", 2)
        with journal.SessionLocal() as session:
            session.execute(
                update(JournalEntryDB)
                .where(JournalEntryDB.sequence_number == 3)
                .values(payload={"event_type": "transfer", "from": None, "to": "mallory", "token_id": 1})
            )
            session.commit()

        ok, index, message = journal.verify_chain()
        assert not ok
        assert index == 3
        assert "Hash mismatch" in message


class TestOwnershipReplay:

    def test_replay_matches_ledger(self, journal, ledger):
        ledger.mint("minter", "alice", 3)
        ledger.mint("minter", "bob", 2)
        ledger.transfer("alice", "alice", "bob", 2)
        ledger.burn("owner", 4)

        replayed = journal.replay_ownership()
        assert replayed == {r.token_id: r.owner for r in ledger.records()}
        assert replayed == {1: "alice", 2: "bob", 3: "alice", 5: "bob"}
