"""
Ledger error classes.

Every failure raised by the ledger is a ``TokenLedgerError``. Intermediate
classes group failures by classification so callers (and the HTTP surface)
can handle a whole class at once:

- AuthorizationError — caller lacks a role or does not hold the token
- ValidationError    — malformed input
- NotFoundError      — token never existed or was burned
- CapacityError      — mint would exceed the configured cap
- LedgerDestroyed    — state read against a destroyed instance
- ReentrantCall      — mutation attempted from inside a subscriber

A raised error always means the call had no effect on ledger state.
"""

from __future__ import annotations

from nft_ledger.token.schema import Principal, Role


class TokenLedgerError(Exception):
    """Base class for all ledger failures."""
    pass


class AuthorizationError(TokenLedgerError):
    pass


class ValidationError(TokenLedgerError):
    pass


class NotFoundError(TokenLedgerError):
    pass


class CapacityError(TokenLedgerError):
    pass


# ── Authorization ──────────────────────────────────────────────


class Unauthorized(AuthorizationError):
    """Caller does not hold the role the operation requires."""

    def __init__(self, caller: Principal | None, required_role: Role) -> None:
        self.caller = caller
        self.required_role = required_role
        super().__init__(
            f"account {caller!r} is missing role {required_role.value!r}"
        )


class NotTokenOwner(AuthorizationError):
    """Caller tried to move a token it does not hold."""

    def __init__(self, caller: Principal | None, token_id: int) -> None:
        self.caller = caller
        self.token_id = token_id
        super().__init__(f"account {caller!r} does not own token {token_id}")


# ── Validation ─────────────────────────────────────────────────


class InvalidAddress(ValidationError):
    def __init__(self, field: str = "to") -> None:
        self.field = field
        super().__init__(f"invalid {field} address")


class InvalidQuantity(ValidationError):
    def __init__(self, quantity: int, maximum: int) -> None:
        self.quantity = quantity
        self.maximum = maximum
        super().__init__(f"invalid quantity {quantity} (allowed 1..{maximum})")


class InvalidLimit(ValidationError):
    def __init__(self, given: int, maximum: int) -> None:
        self.given = given
        self.maximum = maximum
        super().__init__(f"invalid limit {given} (allowed 1..{maximum})")


class InvalidOffset(ValidationError):
    def __init__(self, given: int, maximum: int) -> None:
        self.given = given
        self.maximum = maximum
        super().__init__(f"invalid offset {given} (allowed 0..{maximum})")


class InvalidValue(ValidationError):
    """``set_max_token_id`` below the highest ID already issued."""

    def __init__(self, value: int, minimum: int) -> None:
        self.value = value
        self.minimum = minimum
        super().__init__(f"invalid max token id {value} (must be >= {minimum})")


# ── Not found / capacity / lifecycle ───────────────────────────


class NonexistentToken(NotFoundError):
    def __init__(self, token_id: int) -> None:
        self.token_id = token_id
        super().__init__(f"invalid token ID {token_id}")


class ExceedsMaxSupply(CapacityError):
    def __init__(self, requested_last_id: int, max_token_id: int) -> None:
        self.requested_last_id = requested_last_id
        self.max_token_id = max_token_id
        super().__init__(
            f"exceeds max token id: would issue up to {requested_last_id}, "
            f"cap is {max_token_id}"
        )


class LedgerDestroyed(TokenLedgerError):
    """State reads are unreachable once the ledger has been destroyed."""

    def __init__(self) -> None:
        super().__init__("ledger has been destroyed")


class ReentrantCall(TokenLedgerError):
    """A subscriber tried to mutate the ledger while notifications were being published."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"{operation} called while publishing notifications")
