"""
Tests for role permissions and vote weight arithmetic (qup.core.permissions, qup.core.voting).
"""

import pytest

from qup.core import permissions
from qup.core.voting import calculate_total_votes, calculate_vote_weight, can_vote, signed_weight
from qup.enums import UserRole, VoteType
from qup.exceptions import PermissionDeniedError
from helpers import make_user


class TestHasPermission:
    def test_normal_user_basics(self):
        for permission in ("send_messages", "vote", "ask_questions", "answer_questions"):
            assert permissions.has_permission(UserRole.NORMAL, permission)

    def test_normal_user_cannot_moderate(self):
        assert not permissions.can_moderate(UserRole.NORMAL)
        assert not permissions.can_delete_any_message(UserRole.NORMAL)

    def test_special_user_moderates_own_channel(self):
        assert permissions.can_moderate(UserRole.SPECIAL)
        assert permissions.has_permission(UserRole.SPECIAL, "pin_messages")
        assert not permissions.can_delete_any_message(UserRole.SPECIAL)

    def test_moderator_permissions(self):
        assert permissions.can_delete_any_message(UserRole.MODERATOR)
        assert permissions.has_permission(UserRole.MODERATOR, "close_questions")
        assert not permissions.can_manage_users(UserRole.MODERATOR)

    def test_admin_holds_everything(self):
        assert permissions.can_manage_users(UserRole.ADMIN)
        assert permissions.can_manage_roles(UserRole.ADMIN)
        assert permissions.has_permission(UserRole.ADMIN, "send_messages")

    def test_roles_are_cumulative(self):
        order = [UserRole.NORMAL, UserRole.SPECIAL, UserRole.MODERATOR, UserRole.ADMIN]
        from qup.constants import ROLE_PERMISSIONS

        for lower, higher in zip(order, order[1:]):
            assert ROLE_PERMISSIONS[lower] <= ROLE_PERMISSIONS[higher]

    def test_role_given_as_string(self):
        assert permissions.has_permission("ADMIN", "manage_users")

    def test_unknown_role_has_no_permissions(self):
        assert not permissions.has_permission("SUPERUSER", "send_messages")
        assert not permissions.has_permission(None, "send_messages")

    def test_is_staff(self):
        assert permissions.is_staff(UserRole.MODERATOR)
        assert permissions.is_staff(UserRole.ADMIN)
        assert not permissions.is_staff(UserRole.SPECIAL)


class TestRequireHelpers:
    def test_require_permission_raises(self):
        with pytest.raises(PermissionDeniedError):
            permissions.require_permission(make_user(UserRole.NORMAL), "manage_roles")

    def test_require_permission_passes(self):
        permissions.require_permission(make_user(UserRole.ADMIN), "manage_roles")

    def test_require_role_admin_always_passes(self):
        permissions.require_role(make_user(UserRole.ADMIN), UserRole.MODERATOR)

    def test_require_role_mismatch(self):
        with pytest.raises(PermissionDeniedError):
            permissions.require_role(make_user(UserRole.SPECIAL), UserRole.MODERATOR)


# ══════════════════════════════════════════════════════════════════════════
# Voting
# ══════════════════════════════════════════════════════════════════════════

class TestVoteWeights:
    @pytest.mark.parametrize(
        "role,weight",
        [
            (UserRole.NORMAL, 1),
            (UserRole.SPECIAL, 5),
            (UserRole.MODERATOR, 10),
            (UserRole.ADMIN, 20),
        ],
    )
    def test_weight_per_role(self, role, weight):
        assert calculate_vote_weight(role) == weight

    def test_unknown_role_weighs_one(self):
        assert calculate_vote_weight("SUPERUSER") == 1

    def test_signed_weight(self):
        assert signed_weight(VoteType.UP, 5) == 5
        assert signed_weight(VoteType.DOWN, 5) == -5
        assert signed_weight("DOWN", 1) == -1


class TestTotals:
    def test_empty(self):
        assert calculate_total_votes([]) == 0

    def test_mixed_votes(self):
        votes = [
            {"type": "UP", "weight": 1},
            {"type": "UP", "weight": 10},
            {"type": "DOWN", "weight": 5},
        ]
        assert calculate_total_votes(votes) == 6

    def test_can_vote(self):
        votes = [{"user_id": "u1"}, {"user_id": "u2"}]
        assert not can_vote("u1", votes)
        assert can_vote("u3", votes)
