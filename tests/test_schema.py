"""
Tests for the Token Schema — verifies the Pydantic models.

Validates:
- Enum values
- Notification serialization
- Receipt helpers
"""

from __future__ import annotations

import pytest
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from nft_ledger.token.schema import (
    AnyLedgerEvent,
    EventType,
    LedgerState,
    LifecycleState,
    MintEvent,
    Receipt,
    Role,
    RoleGrantedEvent,
    TransferEvent,
    is_null_principal,
)


class TestEnums:

    def test_roles(self):
        assert {r.value for r in Role} == {"admin", "minter"}

    def test_lifecycle_states(self):
        assert [s.value for s in LifecycleState] == ["active", "destroyed"]

    def test_event_types(self):
        assert EventType.TRANSFER.value == "transfer"
        assert EventType.MINT.value == "mint"


class TestNullPrincipal:

    @pytest.mark.parametrize("principal", [None, ""])
    def test_null(self, principal):
        assert is_null_principal(principal)

    def test_non_null(self):
        assert not is_null_principal("alice")


class TestEvents:

    def test_transfer_serializes_from_alias(self):
        event = TransferEvent(from_=None, to="alice", token_id=1)
        data = event.model_dump(mode="json", by_alias=True)
        assert data["from"] is None
        assert data["to"] == "alice"
        assert data["event_type"] == "transfer"

    def test_events_are_frozen(self):
        event = MintEvent(to="alice", first_token_id=1, quantity=3)
        with pytest.raises(PydanticValidationError):
            event.quantity = 4

    def test_token_ids_are_positive(self):
        with pytest.raises(PydanticValidationError):
            TransferEvent(to="alice", token_id=0)

    def test_discriminated_parse(self):
        adapter = TypeAdapter(AnyLedgerEvent)
        original = RoleGrantedEvent(role=Role.MINTER, account="m", sender="owner")
        parsed = adapter.validate_python(original.model_dump(mode="json"))
        assert isinstance(parsed, RoleGrantedEvent)
        assert parsed == original


class TestReceipt:

    def test_minted_token_ids(self):
        receipt = Receipt(
            operation="mint",
            events=[
                MintEvent(to="alice", first_token_id=4, quantity=2),
                TransferEvent(to="alice", token_id=4),
                TransferEvent(to="alice", token_id=5),
            ],
        )
        assert receipt.minted_token_ids == [4, 5]

    def test_burn_is_not_a_mint(self):
        receipt = Receipt(
            operation="burn",
            events=[TransferEvent(from_="alice", to=None, token_id=1)],
        )
        assert receipt.minted_token_ids == []

    def test_empty_receipt(self):
        assert Receipt(operation="mint").events == []


class TestLedgerState:

    def test_defaults(self):
        state = LedgerState(max_token_id=10)
        assert state.next_token_id == 1
        assert state.total_supply == 0
        assert state.lifecycle_state == LifecycleState.ACTIVE
