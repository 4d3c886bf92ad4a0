"""
Tests for the Lifecycle Controller.

Validates:
- ACTIVE -> DESTROYED is terminal
- Beneficiary is fixed by the first destroy
"""

from __future__ import annotations

import pytest

from nft_ledger.governance.lifecycle import LifecycleController
from nft_ledger.token.errors import LedgerDestroyed
from nft_ledger.token.schema import LifecycleState


class TestLifecycleController:
    """Test the two-state machine."""

    def setup_method(self):
        self.lifecycle = LifecycleController()

    def test_starts_active(self):
        assert self.lifecycle.state == LifecycleState.ACTIVE
        assert not self.lifecycle.is_destroyed
        self.lifecycle.require_active()

    def test_destroy(self):
        self.lifecycle.destroy("beneficiary")
        assert self.lifecycle.is_destroyed
        assert self.lifecycle.beneficiary == "beneficiary"
        assert self.lifecycle.destroyed_at is not None
        with pytest.raises(LedgerDestroyed):
            self.lifecycle.require_active()

    def test_second_destroy_keeps_first_beneficiary(self):
        self.lifecycle.destroy("first")
        self.lifecycle.destroy("second")
        assert self.lifecycle.beneficiary == "first"
        assert self.lifecycle.state == LifecycleState.DESTROYED
