from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import pytest

from neosafe.errors import ForbiddenError
from neosafe.models.user import UserRole
from neosafe.services.access_policy import (
    Decision,
    Operation,
    decide,
    ensure_permitted,
    is_permitted,
    visibility_filter,
)

PROVIDER_ID = 10
OTHER_PROVIDER_ID = 11
OWNER_ID = 20
OTHER_USER_ID = 21


@dataclass
class _Box:
    provider_id: int
    owner_id: Optional[int] = None
    is_claimed: bool = False


@dataclass
class _Principal:
    id: int
    role: UserRole


UNCLAIMED = _Box(provider_id=PROVIDER_ID)
CLAIMED = _Box(provider_id=PROVIDER_ID, owner_id=OWNER_ID, is_claimed=True)


@pytest.mark.parametrize(
    "role, principal_id, box, operation, expected",
    [
        # admin manages every unclaimed box, never a claimed one
        (UserRole.ADMIN, 1, UNCLAIMED, Operation.VIEW, Decision.PERMIT),
        (UserRole.ADMIN, 1, UNCLAIMED, Operation.MODIFY, Decision.PERMIT),
        (UserRole.ADMIN, 1, CLAIMED, Operation.VIEW, Decision.DENY),
        (UserRole.ADMIN, 1, CLAIMED, Operation.MODIFY, Decision.DENY),
        (UserRole.ADMIN, 1, UNCLAIMED, Operation.OPERATE, Decision.DENY),
        # provider only its own unclaimed boxes
        (UserRole.PROVIDER, PROVIDER_ID, UNCLAIMED, Operation.VIEW, Decision.PERMIT),
        (UserRole.PROVIDER, PROVIDER_ID, UNCLAIMED, Operation.MODIFY, Decision.PERMIT),
        (UserRole.PROVIDER, OTHER_PROVIDER_ID, UNCLAIMED, Operation.VIEW, Decision.DENY),
        (UserRole.PROVIDER, OTHER_PROVIDER_ID, UNCLAIMED, Operation.MODIFY, Decision.DENY),
        (UserRole.PROVIDER, PROVIDER_ID, CLAIMED, Operation.VIEW, Decision.DENY),
        (UserRole.PROVIDER, PROVIDER_ID, CLAIMED, Operation.MODIFY, Decision.DENY),
        # user only sees and operates what it owns, never modifies
        (UserRole.USER, OWNER_ID, CLAIMED, Operation.VIEW, Decision.PERMIT),
        (UserRole.USER, OWNER_ID, CLAIMED, Operation.OPERATE, Decision.PERMIT),
        (UserRole.USER, OWNER_ID, CLAIMED, Operation.MODIFY, Decision.DENY),
        (UserRole.USER, OTHER_USER_ID, CLAIMED, Operation.VIEW, Decision.DENY),
        (UserRole.USER, OWNER_ID, UNCLAIMED, Operation.VIEW, Decision.DENY),
    ],
)
def test_decision_table(role, principal_id, box, operation, expected):
    assert decide(role, principal_id, box, operation) is expected


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        decide("superuser", 1, UNCLAIMED, Operation.VIEW)
    with pytest.raises(ValueError):
        visibility_filter(_Principal(1, "superuser"))


def test_ensure_permitted_raises_forbidden():
    with pytest.raises(ForbiddenError) as excinfo:
        ensure_permitted(_Principal(OTHER_PROVIDER_ID, UserRole.PROVIDER), UNCLAIMED, Operation.VIEW)
    assert excinfo.value.status_code == 403


def test_admin_denial_explains_box_was_claimed():
    with pytest.raises(ForbiddenError) as excinfo:
        ensure_permitted(_Principal(1, UserRole.ADMIN), CLAIMED, Operation.VIEW)
    assert "claimed" in excinfo.value.message


def test_visibility_filter_matches_decide(db, registry, make_box, admin, provider, other_provider, owner, stranger):
    mine = make_box(provider, name="mine")
    theirs = make_box(other_provider, name="theirs")
    claimed = make_box(provider, name="claimed")
    registry.claim(claimed.claim_code, owner.id)

    all_boxes = [registry.find_by_id(b.id) for b in (mine, theirs, claimed)]
    for user in (admin, provider, other_provider, owner, stranger):
        listed = {box.id for box in registry.list_visible(user)}
        expected = {box.id for box in all_boxes if is_permitted(user, box, Operation.VIEW)}
        assert listed == expected, user.role
