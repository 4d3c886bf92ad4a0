"""
Token Schema — Pydantic models and enumerations for the NFT ledger.

These models are the canonical data structures shared by the ledger core,
the event journal, and the HTTP surface:

- Role and lifecycle enumerations
- Notifications emitted to external observers (indexers, journals)
- Receipts returned by every mutating call
- Point-in-time views of ledger state

Principals are opaque authenticated identifiers (plain strings). The null
principal is ``None``; an empty string is treated as null as well.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


Principal = str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_null_principal(principal: Principal | None) -> bool:
    """Whether ``principal`` is the null address."""
    return principal is None or principal == ""


# ════════════════════════════════════════════════════════════════
# Enumerations
# ════════════════════════════════════════════════════════════════


class Role(str, enum.Enum):
    """Capability groups guarding mutating operations."""

    ADMIN = "admin"  # burn, set_max_token_id, grant/revoke, destroy
    MINTER = "minter"  # mint


class LifecycleState(str, enum.Enum):
    """Ledger lifecycle. DESTROYED is terminal."""

    ACTIVE = "active"
    DESTROYED = "destroyed"


class EventType(str, enum.Enum):
    """Notification kinds observable by external collaborators."""

    MINT = "mint"
    TRANSFER = "transfer"
    ROLE_GRANTED = "role_granted"
    ROLE_REVOKED = "role_revoked"
    MAX_TOKEN_ID_CHANGED = "max_token_id_changed"
    DESTROYED = "destroyed"


# ════════════════════════════════════════════════════════════════
# Notifications
# ════════════════════════════════════════════════════════════════


class LedgerEvent(BaseModel):
    """Base for every notification. Events are immutable once emitted."""

    model_config = ConfigDict(frozen=True)

    emitted_at: datetime = Field(default_factory=_utcnow)


class MintEvent(LedgerEvent):
    """Batch-mint notification: one per successful ``mint`` call."""

    event_type: Literal["mint"] = "mint"
    to: Principal
    first_token_id: int = Field(ge=1)
    quantity: int = Field(ge=1)

    @computed_field
    @property
    def last_token_id(self) -> int:
        """Highest ID in the contiguous batch."""
        return self.first_token_id + self.quantity - 1


class TransferEvent(LedgerEvent):
    """
    Ownership-transfer notification.

    ``from_`` is None for mints, ``to`` is None for burns.
    """

    event_type: Literal["transfer"] = "transfer"
    from_: Principal | None = Field(default=None, alias="from")
    to: Principal | None = None
    token_id: int = Field(ge=1)

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class RoleGrantedEvent(LedgerEvent):
    event_type: Literal["role_granted"] = "role_granted"
    role: Role
    account: Principal
    sender: Principal


class RoleRevokedEvent(LedgerEvent):
    event_type: Literal["role_revoked"] = "role_revoked"
    role: Role
    account: Principal
    sender: Principal


class MaxTokenIdChangedEvent(LedgerEvent):
    event_type: Literal["max_token_id_changed"] = "max_token_id_changed"
    previous: int
    current: int


class DestroyedEvent(LedgerEvent):
    """Final notification of an instance. Nothing is emitted after it."""

    event_type: Literal["destroyed"] = "destroyed"
    beneficiary: Principal


AnyLedgerEvent = Annotated[
    Union[
        MintEvent,
        TransferEvent,
        RoleGrantedEvent,
        RoleRevokedEvent,
        MaxTokenIdChangedEvent,
        DestroyedEvent,
    ],
    Field(discriminator="event_type"),
]


# ════════════════════════════════════════════════════════════════
# Receipts & Views
# ════════════════════════════════════════════════════════════════


class Receipt(BaseModel):
    """
    Outcome of a committed mutating call.

    Carries the notifications the call produced, in emission order. A call
    against a destroyed ledger yields a receipt with no events.
    """

    operation: str
    events: list[AnyLedgerEvent] = Field(default_factory=list)

    @computed_field
    @property
    def minted_token_ids(self) -> list[int]:
        """Token IDs minted by this call (empty for non-mint calls)."""
        return [
            e.token_id
            for e in self.events
            if isinstance(e, TransferEvent) and e.from_ is None and e.to is not None
        ]


class TokenRecord(BaseModel):
    """A currently existing token."""

    token_id: int = Field(ge=1)
    owner: Principal


class LedgerState(BaseModel):
    """
    Contract-wide counters and lifecycle flag.

    Owned by a single ``TokenLedger``; never shared between instances.
    """

    next_token_id: int = Field(default=1, ge=1)
    max_token_id: int = Field(ge=0)
    total_supply: int = Field(default=0, ge=0)
    lifecycle_state: LifecycleState = LifecycleState.ACTIVE


class CollectionInfo(BaseModel):
    """Fixed collection metadata plus a snapshot of the counters."""

    name: str
    symbol: str
    base_uri: str
    owner: Principal
    next_token_id: int
    max_token_id: int
    total_supply: int
    lifecycle_state: LifecycleState
