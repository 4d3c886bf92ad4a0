"""
Lifecycle Controller — the ACTIVE / DESTROYED state machine.

A ledger starts ACTIVE. ``destroy`` moves it to DESTROYED, which is terminal:
there is no transition back. Once destroyed, the ledger treats the instance
as if its code were gone:

- state reads raise ``LedgerDestroyed``
- mutating calls return an empty receipt, with no state change, no
  notifications and no log records

The controller only owns the flag and the beneficiary. Enforcement happens
at the top of every ledger entry point via ``is_destroyed`` and
``require_active``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from nft_ledger.token.errors import LedgerDestroyed
from nft_ledger.token.schema import LifecycleState, Principal

logger = logging.getLogger(__name__)


class LifecycleController:
    """Two-state lifecycle with an irreversible terminal transition."""

    def __init__(self) -> None:
        self._state = LifecycleState.ACTIVE
        self.beneficiary: Principal | None = None
        self.destroyed_at: datetime | None = None

    @property
    def state(self) -> LifecycleState:
        return self._state

    @property
    def is_destroyed(self) -> bool:
        return self._state == LifecycleState.DESTROYED

    def require_active(self) -> None:
        """Raise ``LedgerDestroyed`` if reads are no longer reachable."""
        if self.is_destroyed:
            raise LedgerDestroyed()

    def destroy(self, beneficiary: Principal) -> None:
        """
        Transition to DESTROYED.

        Any value held by the instance is conceptually forwarded to
        ``beneficiary``; the ledger holds none, so only the recipient is
        recorded.
        """
        if self.is_destroyed:
            return
        self._state = LifecycleState.DESTROYED
        self.beneficiary = beneficiary
        self.destroyed_at = datetime.now(timezone.utc)
        logger.warning("Ledger destroyed: beneficiary=%s", beneficiary)
