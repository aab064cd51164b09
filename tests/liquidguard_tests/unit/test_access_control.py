"""
Access control tests: owner gating, liquidator set, pause and reentrancy.
"""

import pytest

from liquidguard.core.defi.access_control import AccessControl
from liquidguard.core.exceptions import (
    NotOwnerError,
    ProtocolPausedError,
    ReentrancyError,
    UnauthorizedError,
    UnauthorizedLiquidatorError,
)

pytestmark = pytest.mark.unit

OWNER = "0xOwner000000000000000000000000000000000001"
KEEPER = "0xKeeper00000000000000000000000000000000002"
ATTACKER = "0xAttacker000000000000000000000000000000003"


@pytest.fixture
def access_control():
    return AccessControl(owner=OWNER)


class TestOwnership:
    """Owner-only administration."""

    def test_owner_is_normalized(self, access_control):
        assert access_control.owner == OWNER.lower()
        access_control.require_owner(OWNER.upper().replace("0X", "0x"))

    def test_non_owner_rejected(self, access_control):
        with pytest.raises(NotOwnerError):
            access_control.require_owner(ATTACKER)

    def test_not_owner_is_unauthorized(self, access_control):
        with pytest.raises(UnauthorizedError):
            access_control.pause(ATTACKER)

    def test_empty_owner_rejects_everyone(self):
        ac = AccessControl()
        with pytest.raises(NotOwnerError):
            ac.require_owner("")

    def test_transfer_ownership(self, access_control):
        access_control.transfer_ownership(OWNER, KEEPER)
        assert access_control.owner == KEEPER.lower()

        with pytest.raises(NotOwnerError):
            access_control.pause(OWNER)
        assert access_control.pause(KEEPER)

    def test_transfer_ownership_requires_owner(self, access_control):
        with pytest.raises(NotOwnerError):
            access_control.transfer_ownership(ATTACKER, ATTACKER)
        assert access_control.owner == OWNER.lower()


class TestLiquidators:
    """Authorized liquidator set."""

    def test_grant_and_revoke(self, access_control):
        assert not access_control.is_authorized_liquidator(KEEPER)

        access_control.set_liquidator_authorization(OWNER, KEEPER, True)
        assert access_control.is_authorized_liquidator(KEEPER.lower())
        access_control.require_authorized_liquidator(KEEPER)

        access_control.set_liquidator_authorization(OWNER, KEEPER, False)
        assert not access_control.is_authorized_liquidator(KEEPER)

    def test_revoking_unknown_is_noop(self, access_control):
        access_control.set_liquidator_authorization(OWNER, KEEPER, False)
        assert access_control.liquidators == set()

    def test_require_authorized_liquidator(self, access_control):
        with pytest.raises(UnauthorizedLiquidatorError):
            access_control.require_authorized_liquidator(ATTACKER)

    def test_only_owner_can_authorize(self, access_control):
        with pytest.raises(NotOwnerError):
            access_control.set_liquidator_authorization(ATTACKER, ATTACKER, True)
        assert not access_control.is_authorized_liquidator(ATTACKER)


class TestPause:
    """Global pause flag."""

    def test_pause_and_unpause(self, access_control):
        access_control.require_not_paused()

        access_control.pause(OWNER)
        with pytest.raises(ProtocolPausedError):
            access_control.require_not_paused()

        access_control.unpause(OWNER)
        access_control.require_not_paused()

    def test_unpause_requires_owner(self, access_control):
        access_control.pause(OWNER)
        with pytest.raises(NotOwnerError):
            access_control.unpause(ATTACKER)
        assert access_control.paused


class TestReentrancy:
    """Reentrancy lock."""

    def test_nested_entry_rejected(self, access_control):
        with access_control.non_reentrant():
            assert access_control.locked
            with pytest.raises(ReentrancyError):
                with access_control.non_reentrant():
                    pass
        assert not access_control.locked

    def test_lock_released_on_exception(self, access_control):
        with pytest.raises(ValueError):
            with access_control.non_reentrant():
                raise ValueError("failure inside guarded block")
        assert not access_control.locked

        with access_control.non_reentrant():
            pass


class TestAuditLog:
    """Administrative changes are recorded."""

    def test_actions_logged(self, access_control):
        access_control.set_liquidator_authorization(OWNER, KEEPER, True)
        access_control.pause(OWNER)
        access_control.unpause(OWNER)

        actions = [entry["action"] for entry in access_control.admin_actions]
        assert actions == ["set_liquidator_authorization", "pause", "unpause"]
        assert access_control.admin_actions[0]["details"] == {
            "liquidator": KEEPER.lower(),
            "authorized": True,
        }
        assert all(entry["actor"] == OWNER.lower() for entry in access_control.admin_actions)

    def test_failed_actions_not_logged(self, access_control):
        with pytest.raises(NotOwnerError):
            access_control.pause(ATTACKER)
        assert access_control.admin_actions == []
