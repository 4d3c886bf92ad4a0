"""
Token Ledger Service — the single controller for an NFT collection.

This service owns one ``LedgerState`` and composes the four parts that must
stay consistent with it:

- RoleStore            — access control gate (ADMIN, MINTER)
- LifecycleController  — ACTIVE / DESTROYED
- IdentifierAllocator  — contiguous, never-reused token IDs under a cap
- OwnershipStore       — owners and per-owner ordered indexes

Every public operation runs under one lock, so operations are totally
ordered and a reader never sees a half-applied mutation. Subscribers may read
the ledger while a notification is delivered, but a mutating call made from
inside a subscriber raises ``ReentrantCall``. A mutating call either commits
all of its state changes and notifications or raises and leaves everything
untouched. Notifications are published to subscribers only
after the call has committed.

Once destroyed, every mutating entry point returns an empty ``Receipt``
before doing anything else (no role check, no validation, no logging) and
every state read raises ``LedgerDestroyed``.

Usage:
    ledger = TokenLedger(
        name="Collection", symbol="COL", base_uri="https://meta/",
        max_token_id=10_000, owner="alice",
    )
    ledger.grant_role("alice", Role.MINTER, "minter")
    receipt = ledger.mint("minter", "bob", 3)
    ledger.tokens_of("bob", 0, 10)  # [1, 2, 3]
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from nft_ledger.governance.lifecycle import LifecycleController
from nft_ledger.governance.roles import RoleStore
from nft_ledger.ledger.ownership import IdentifierAllocator, OwnershipStore
from nft_ledger.token.errors import (
    InvalidAddress,
    InvalidQuantity,
    NotTokenOwner,
    ReentrantCall,
    Unauthorized,
)
from nft_ledger.token.schema import (
    CollectionInfo,
    DestroyedEvent,
    LedgerEvent,
    LedgerState,
    LifecycleState,
    MaxTokenIdChangedEvent,
    MintEvent,
    Principal,
    Receipt,
    Role,
    RoleGrantedEvent,
    RoleRevokedEvent,
    TokenRecord,
    TransferEvent,
    is_null_principal,
)

logger = logging.getLogger(__name__)


# Per-call iteration bounds (mint batch size, enumeration page size).
DEFAULT_MAX_MINT_QUANTITY = 100
DEFAULT_MAX_PAGE_LIMIT = 100

EventSubscriber = Callable[[LedgerEvent], None]


class TokenLedger:
    """
    Sequentially-numbered, role-gated NFT ledger.

    The deployer (``owner``) is seeded with the ADMIN role. MINTER must be
    granted explicitly before anything can be minted.
    """

    def __init__(
        self,
        name: str,
        symbol: str,
        base_uri: str,
        max_token_id: int,
        owner: Principal,
        max_mint_quantity: int = DEFAULT_MAX_MINT_QUANTITY,
        max_page_limit: int = DEFAULT_MAX_PAGE_LIMIT,
    ) -> None:
        """
        Initialize the ledger.

        Args:
            name: Collection name.
            symbol: Collection symbol.
            base_uri: Prefix for token URIs, returned verbatim by ``base_uri``.
            max_token_id: Inclusive cap on any ever-issued ID.
            owner: Deployer principal; receives ADMIN.
            max_mint_quantity: Largest batch a single ``mint`` may issue.
            max_page_limit: Largest page ``tokens_of`` may return.
        """
        if is_null_principal(owner):
            raise InvalidAddress("owner")
        if max_token_id < 0:
            raise ValueError("max_token_id must be >= 0")

        self._name = name
        self._symbol = symbol
        self._base_uri = base_uri
        self._owner = owner
        self.max_mint_quantity = max_mint_quantity
        self.max_page_limit = max_page_limit

        self._state = LedgerState(max_token_id=max_token_id)
        self.roles = RoleStore(admin=owner)
        self.lifecycle = LifecycleController()
        self._allocator = IdentifierAllocator(self._state)
        self._ownership = OwnershipStore(self._state)

        self._lock = threading.RLock()
        self._subscribers: list[EventSubscriber] = []
        self._publishing = False

        logger.info(
            "Token ledger created: name=%s symbol=%s max_token_id=%d owner=%s",
            name, symbol, max_token_id, owner,
        )

    @classmethod
    def from_settings(cls, settings) -> TokenLedger:
        """Build a ledger from ``LedgerSettings``."""
        return cls(
            name=settings.name,
            symbol=settings.symbol,
            base_uri=settings.base_uri,
            max_token_id=settings.max_token_id,
            owner=settings.admin_principal,
            max_mint_quantity=settings.max_mint_quantity,
            max_page_limit=settings.max_page_limit,
        )

    # ── Notifications ───────────────────────────────────────────

    def subscribe(self, callback: EventSubscriber) -> None:
        """Register ``callback`` to receive every committed notification."""
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: EventSubscriber) -> None:
        with self._lock:
            self._subscribers.remove(callback)

    def _publish(self, events: list[LedgerEvent]) -> None:
        # Subscribers run on the lock-holding thread and may read, but not mutate.
        self._publishing = True
        try:
            for event in events:
                for callback in list(self._subscribers):
                    try:
                        callback(event)
                    except Exception:
                        logger.exception(
                            "Event subscriber %r failed on %s",
                            callback, type(event).__name__,
                        )
        finally:
            self._publishing = False

    def _require_not_publishing(self, operation: str) -> None:
        if self._publishing:
            raise ReentrantCall(operation)

    def _commit(self, operation: str, events: list[LedgerEvent]) -> Receipt:
        receipt = Receipt(operation=operation, events=events)
        self._publish(events)
        return receipt

    # ── Metadata & counters (reads) ─────────────────────────────

    @property
    def is_destroyed(self) -> bool:
        """Whether the instance has been destroyed. Always readable."""
        return self.lifecycle.is_destroyed

    def _read(self, getter):
        with self._lock:
            self.lifecycle.require_active()
            return getter()

    @property
    def name(self) -> str:
        return self._read(lambda: self._name)

    @property
    def symbol(self) -> str:
        return self._read(lambda: self._symbol)

    @property
    def base_uri(self) -> str:
        return self._read(lambda: self._base_uri)

    @property
    def owner(self) -> Principal:
        """The deployer principal."""
        return self._read(lambda: self._owner)

    @property
    def next_token_id(self) -> int:
        return self._read(lambda: self._state.next_token_id)

    @property
    def max_token_id(self) -> int:
        return self._read(lambda: self._state.max_token_id)

    @property
    def total_supply(self) -> int:
        return self._read(lambda: self._state.total_supply)

    @property
    def lifecycle_state(self) -> LifecycleState:
        return self.lifecycle.state

    def collection_info(self) -> CollectionInfo:
        """Snapshot of metadata and counters taken under the lock."""
        with self._lock:
            self.lifecycle.require_active()
            return CollectionInfo(
                name=self._name,
                symbol=self._symbol,
                base_uri=self._base_uri,
                owner=self._owner,
                next_token_id=self._state.next_token_id,
                max_token_id=self._state.max_token_id,
                total_supply=self._state.total_supply,
                lifecycle_state=self._state.lifecycle_state,
            )

    # ── Ownership (reads) ───────────────────────────────────────

    def has_role(self, role: Role, principal: Principal | None) -> bool:
        return self._read(lambda: self.roles.has_role(role, principal))

    def owner_of(self, token_id: int) -> Principal:
        return self._read(lambda: self._ownership.owner_of(token_id))

    def balance_of(self, principal: Principal) -> int:
        return self._read(lambda: self._ownership.balance_of(principal))

    def tokens_of(self, principal: Principal, offset: int, limit: int) -> list[int]:
        """
        Page of token IDs held by ``principal``, in index order.

        Raises:
            InvalidLimit: ``limit`` outside ``[1, max_page_limit]``.
            InvalidOffset: ``offset`` greater than ``balance_of(principal)``.
        """
        return self._read(
            lambda: self._ownership.tokens_of(
                principal, offset, limit, self.max_page_limit
            )
        )

    def token_uri(self, token_id: int) -> str:
        """``base_uri`` followed by the decimal token ID."""
        def _uri() -> str:
            self._ownership.owner_of(token_id)
            if not self._base_uri:
                return ""
            return f"{self._base_uri}{token_id}"

        return self._read(_uri)

    def records(self) -> list[TokenRecord]:
        return self._read(self._ownership.records)

    # ── Minting ─────────────────────────────────────────────────

    def mint(self, caller: Principal, to: Principal, quantity: int) -> Receipt:
        """
        Issue ``quantity`` contiguous IDs to ``to``.

        Emits one ``MintEvent`` followed by one ``TransferEvent`` per ID.

        Raises:
            Unauthorized: caller lacks MINTER.
            InvalidAddress: ``to`` is null.
            InvalidQuantity: ``quantity`` outside ``[1, max_mint_quantity]``.
            ExceedsMaxSupply: the batch would pass ``max_token_id``.
        """
        with self._lock:
            if self.lifecycle.is_destroyed:
                return Receipt(operation="mint")
            self._require_not_publishing("mint")

            self.roles.require("mint", caller)
            if is_null_principal(to):
                raise InvalidAddress("to")
            if quantity < 1 or quantity > self.max_mint_quantity:
                raise InvalidQuantity(quantity, self.max_mint_quantity)

            ids = self._allocator.allocate(quantity)
            events: list[LedgerEvent] = [
                MintEvent(to=to, first_token_id=ids.start, quantity=quantity)
            ]
            for token_id in ids:
                self._ownership.add(token_id, to)
                events.append(TransferEvent(from_=None, to=to, token_id=token_id))

            logger.info(
                "Minted: to=%s first_token_id=%d quantity=%d next_token_id=%d",
                to, ids.start, quantity, self._state.next_token_id,
            )
            return self._commit("mint", events)

    def set_max_token_id(self, caller: Principal, new_max: int) -> Receipt:
        """
        Replace the supply cap.

        Raises:
            Unauthorized: caller lacks ADMIN.
            InvalidValue: ``new_max < next_token_id - 1``.
        """
        with self._lock:
            if self.lifecycle.is_destroyed:
                return Receipt(operation="set_max_token_id")
            self._require_not_publishing("set_max_token_id")

            self.roles.require("set_max_token_id", caller)
            previous = self._allocator.set_max_token_id(new_max)

            logger.info("Max token id changed: %d -> %d", previous, new_max)
            return self._commit(
                "set_max_token_id",
                [MaxTokenIdChangedEvent(previous=previous, current=new_max)],
            )

    # ── Burn & transfer ─────────────────────────────────────────

    def burn(self, caller: Principal, token_id: int) -> Receipt:
        """
        Destroy ``token_id``. The ID is never issued again.

        Raises:
            Unauthorized: caller lacks ADMIN.
            NonexistentToken: the token has no current owner.
        """
        with self._lock:
            if self.lifecycle.is_destroyed:
                return Receipt(operation="burn")
            self._require_not_publishing("burn")

            self.roles.require("burn", caller)
            owner = self._ownership.remove(token_id)

            logger.info("Burned: token_id=%d owner=%s", token_id, owner)
            return self._commit(
                "burn", [TransferEvent(from_=owner, to=None, token_id=token_id)]
            )

    def transfer(
        self,
        caller: Principal,
        from_: Principal,
        to: Principal,
        token_id: int,
    ) -> Receipt:
        """
        Move ``token_id`` from its holder to ``to``.

        Only the holder itself may move a token.

        Raises:
            NonexistentToken: the token has no current owner.
            NotTokenOwner: ``caller`` or ``from_`` is not the holder.
            InvalidAddress: ``to`` is null.
        """
        with self._lock:
            if self.lifecycle.is_destroyed:
                return Receipt(operation="transfer")
            self._require_not_publishing("transfer")

            owner = self._ownership.owner_of(token_id)
            if caller != owner:
                raise NotTokenOwner(caller, token_id)
            if from_ != owner:
                raise NotTokenOwner(from_, token_id)
            if is_null_principal(to):
                raise InvalidAddress("to")

            self._ownership.move(token_id, to)

            logger.info("Transferred: token_id=%d from=%s to=%s", token_id, owner, to)
            return self._commit(
                "transfer", [TransferEvent(from_=owner, to=to, token_id=token_id)]
            )

    # ── Roles ───────────────────────────────────────────────────

    def grant_role(self, caller: Principal, role: Role, account: Principal) -> Receipt:
        """Grant ``role`` to ``account``. Granting a held role is a no-op."""
        with self._lock:
            if self.lifecycle.is_destroyed:
                return Receipt(operation="grant_role")
            self._require_not_publishing("grant_role")

            self.roles.require("grant_role", caller)
            if is_null_principal(account):
                raise InvalidAddress("account")
            role = Role(role)

            events: list[LedgerEvent] = []
            if self.roles.grant(role, account):
                events.append(RoleGrantedEvent(role=role, account=account, sender=caller))
                logger.info("Role granted: role=%s account=%s by=%s", role.value, account, caller)
            return self._commit("grant_role", events)

    def revoke_role(self, caller: Principal, role: Role, account: Principal) -> Receipt:
        """Revoke ``role`` from ``account``. Revoking an unheld role is a no-op."""
        with self._lock:
            if self.lifecycle.is_destroyed:
                return Receipt(operation="revoke_role")
            self._require_not_publishing("revoke_role")

            self.roles.require("revoke_role", caller)
            return self._revoke(caller, Role(role), account, "revoke_role")

    def renounce_role(self, caller: Principal, role: Role, account: Principal) -> Receipt:
        """
        Drop one of the caller's own roles.

        Raises:
            Unauthorized: ``account`` is not the caller.
        """
        with self._lock:
            if self.lifecycle.is_destroyed:
                return Receipt(operation="renounce_role")
            self._require_not_publishing("renounce_role")

            role = Role(role)
            if account != caller:
                raise Unauthorized(caller, role)
            return self._revoke(caller, role, account, "renounce_role")

    def _revoke(self, caller: Principal, role: Role, account: Principal, operation: str) -> Receipt:
        events: list[LedgerEvent] = []
        if self.roles.revoke(role, account):
            events.append(RoleRevokedEvent(role=role, account=account, sender=caller))
            logger.info("Role revoked: role=%s account=%s by=%s", role.value, account, caller)
        return self._commit(operation, events)

    # ── Lifecycle ───────────────────────────────────────────────

    def destroy(self, caller: Principal, beneficiary: Principal) -> Receipt:
        """
        Permanently disable the ledger.

        Emits a final ``DestroyedEvent``; nothing is emitted afterwards.

        Raises:
            Unauthorized: caller lacks ADMIN.
            InvalidAddress: ``beneficiary`` is null.
        """
        with self._lock:
            if self.lifecycle.is_destroyed:
                return Receipt(operation="destroy")
            self._require_not_publishing("destroy")

            self.roles.require("destroy", caller)
            if is_null_principal(beneficiary):
                raise InvalidAddress("beneficiary")

            self.lifecycle.destroy(beneficiary)
            self._state.lifecycle_state = LifecycleState.DESTROYED
            return self._commit("destroy", [DestroyedEvent(beneficiary=beneficiary)])
