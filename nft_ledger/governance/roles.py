"""
Role Store — capability sets backing the ledger's access control gate.

Every mutating ledger operation is checked against this store before it
touches ledger state. Roles are plain sets of principals keyed by role tag:

- ADMIN:  burn, set_max_token_id, grant/revoke roles, destroy
- MINTER: mint

The store is composed into the ledger rather than mixed into it, and it
knows nothing about lifecycle or notifications: ``grant`` and ``revoke``
report whether membership changed and the ledger decides what to emit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from nft_ledger.token.errors import Unauthorized
from nft_ledger.token.schema import Principal, Role

logger = logging.getLogger(__name__)


# Which role each gated operation requires.
OPERATION_ROLES: dict[str, Role] = {
    "mint": Role.MINTER,
    "burn": Role.ADMIN,
    "set_max_token_id": Role.ADMIN,
    "grant_role": Role.ADMIN,
    "revoke_role": Role.ADMIN,
    "destroy": Role.ADMIN,
}


@dataclass
class RoleCheckResult:
    """Result of checking a caller against an operation's required role."""

    operation: str
    caller: Principal | None
    required_role: Role
    allowed: bool


class RoleStore:
    """
    Mapping from role to the set of principals holding it.

    ADMIN is seeded with the deployer; MINTER starts empty.
    """

    def __init__(self, admin: Principal) -> None:
        self._members: dict[Role, set[Principal]] = {role: set() for role in Role}
        self._members[Role.ADMIN].add(admin)

    def has_role(self, role: Role, principal: Principal | None) -> bool:
        if principal is None:
            return False
        return principal in self._members[Role(role)]

    def members(self, role: Role) -> frozenset[Principal]:
        """Current holders of ``role``."""
        return frozenset(self._members[Role(role)])

    def check(self, operation: str, caller: Principal | None) -> RoleCheckResult:
        """Check ``caller`` against the role ``operation`` requires."""
        required = OPERATION_ROLES[operation]
        return RoleCheckResult(
            operation=operation,
            caller=caller,
            required_role=required,
            allowed=self.has_role(required, caller),
        )

    def require(self, operation: str, caller: Principal | None) -> None:
        """
        Raise ``Unauthorized`` unless ``caller`` may perform ``operation``.

        Raises:
            Unauthorized: identifying the caller and the missing role.
        """
        result = self.check(operation, caller)
        if not result.allowed:
            logger.debug(
                "Rejected %s: caller=%s missing role=%s",
                operation, caller, result.required_role.value,
            )
            raise Unauthorized(caller, result.required_role)

    def grant(self, role: Role, account: Principal) -> bool:
        """Add ``account`` to ``role``. Returns False if it already held it."""
        holders = self._members[Role(role)]
        if account in holders:
            return False
        holders.add(account)
        return True

    def revoke(self, role: Role, account: Principal) -> bool:
        """Remove ``account`` from ``role``. Returns False if it did not hold it."""
        holders = self._members[Role(role)]
        if account not in holders:
            return False
        holders.discard(account)
        return True
