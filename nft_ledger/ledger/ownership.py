"""
Ownership Store and Identifier Allocator.

The allocator hands out contiguous, strictly increasing token IDs bounded by
``max_token_id``. The store maps each existing token to its owner and keeps,
per owner, the ordered index used for paginated enumeration.

Index policy: IDs are appended in the order an owner receives them (ascending
within a mint batch). Removal on burn or transfer preserves the relative order
of the remaining IDs.

Neither class checks roles, lifecycle or emits notifications; the ledger
service wraps them and is the only writer.
"""

from __future__ import annotations

from nft_ledger.token.errors import (
    ExceedsMaxSupply,
    InvalidLimit,
    InvalidOffset,
    InvalidValue,
    NonexistentToken,
)
from nft_ledger.token.schema import LedgerState, Principal, TokenRecord


class IdentifierAllocator:
    """Allocates token ID ranges from a ``LedgerState``."""

    def __init__(self, state: LedgerState) -> None:
        self.state = state

    @property
    def highest_issued(self) -> int:
        """Highest ID ever issued, 0 before the first mint."""
        return self.state.next_token_id - 1

    def check_capacity(self, quantity: int) -> range:
        """
        Return the ID range a mint of ``quantity`` would take, without
        reserving it.

        Raises:
            ExceedsMaxSupply: if the last ID would pass ``max_token_id``.
        """
        first = self.state.next_token_id
        last = first + quantity - 1
        if last > self.state.max_token_id:
            raise ExceedsMaxSupply(last, self.state.max_token_id)
        return range(first, last + 1)

    def allocate(self, quantity: int) -> range:
        """Reserve the next ``quantity`` IDs and advance ``next_token_id``."""
        ids = self.check_capacity(quantity)
        self.state.next_token_id = ids.stop
        return ids

    def check_max_token_id(self, new_max: int) -> None:
        """
        Raises:
            InvalidValue: if ``new_max`` would invalidate issued IDs.
        """
        if new_max < self.highest_issued:
            raise InvalidValue(new_max, self.highest_issued)

    def set_max_token_id(self, new_max: int) -> int:
        """Replace the cap. Returns the previous value."""
        self.check_max_token_id(new_max)
        previous = self.state.max_token_id
        self.state.max_token_id = new_max
        return previous


class OwnershipStore:
    """Token -> owner mapping plus per-owner ordered indexes."""

    def __init__(self, state: LedgerState) -> None:
        self.state = state
        self._owners: dict[int, Principal] = {}
        self._index: dict[Principal, list[int]] = {}

    # ── Reads ───────────────────────────────────────────────────

    def exists(self, token_id: int) -> bool:
        return token_id in self._owners

    def owner_of(self, token_id: int) -> Principal:
        try:
            return self._owners[token_id]
        except KeyError:
            raise NonexistentToken(token_id) from None

    def balance_of(self, principal: Principal) -> int:
        return len(self._index.get(principal, ()))

    def tokens_of(
        self,
        principal: Principal,
        offset: int,
        limit: int,
        max_limit: int,
    ) -> list[int]:
        """
        Page through ``principal``'s index.

        ``offset == balance`` is valid and yields an empty page.

        Raises:
            InvalidLimit: if ``limit`` is outside ``[1, max_limit]``.
            InvalidOffset: if ``offset`` is negative or beyond the balance.
        """
        if limit < 1 or limit > max_limit:
            raise InvalidLimit(limit, max_limit)
        balance = self.balance_of(principal)
        if offset < 0 or offset > balance:
            raise InvalidOffset(offset, balance)
        index = self._index.get(principal, [])
        return list(index[offset:offset + limit])

    def records(self) -> list[TokenRecord]:
        """All existing tokens in ID order."""
        return [
            TokenRecord(token_id=token_id, owner=owner)
            for token_id, owner in sorted(self._owners.items())
        ]

    # ── Writes ──────────────────────────────────────────────────

    def add(self, token_id: int, owner: Principal) -> None:
        if token_id in self._owners:
            # Allocator never repeats an ID; reaching this is corruption.
            raise RuntimeError(f"token {token_id} already exists")
        self._owners[token_id] = owner
        self._index.setdefault(owner, []).append(token_id)
        self.state.total_supply += 1

    def remove(self, token_id: int) -> Principal:
        """Delete ``token_id``. Returns its former owner."""
        owner = self.owner_of(token_id)
        self._detach(owner, token_id)
        del self._owners[token_id]
        self.state.total_supply -= 1
        return owner

    def move(self, token_id: int, to: Principal) -> Principal:
        """Reassign ``token_id`` to ``to``. Returns the previous owner."""
        owner = self.owner_of(token_id)
        self._detach(owner, token_id)
        self._owners[token_id] = to
        self._index.setdefault(to, []).append(token_id)
        return owner

    def _detach(self, owner: Principal, token_id: int) -> None:
        index = self._index[owner]
        index.remove(token_id)
        if not index:
            del self._index[owner]
