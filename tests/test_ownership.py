from __future__ import annotations

import threading

import pytest

from neosafe.errors import AlreadyClaimedError, ConflictError, ForbiddenError, NotFoundError, ValidationError
from neosafe.models.safe_box import BoxStatus
from neosafe.models.user import UserRole
from neosafe.services.access_policy import Operation, is_permitted
from neosafe.services.box_registry import BoxRegistry
from neosafe.services.ownership import OwnershipService


@pytest.fixture()
def service(registry):
    return OwnershipService(registry)


def test_claim_with_valid_code(service, make_box, provider, owner):
    box = make_box(provider)
    claimed = service.claim(box.claim_code.lower(), owner)
    assert claimed.id == box.id
    assert claimed.is_claimed is True
    assert claimed.owner_id == owner.id


def test_claim_unknown_code(service, owner):
    with pytest.raises(NotFoundError):
        service.claim("ZZZZZZZZ", owner)


def test_claim_malformed_code(service, owner):
    with pytest.raises(ValidationError):
        service.claim("ABC", owner)


@pytest.mark.parametrize("second_caller", ["owner", "stranger", "admin", "provider"])
def test_repeated_claim_always_conflicts(request, service, make_box, provider, owner, second_caller):
    box = make_box(provider)
    service.claim(box.claim_code, owner)
    with pytest.raises(AlreadyClaimedError):
        service.claim(box.claim_code, request.getfixturevalue(second_caller))


def test_only_user_accounts_can_claim(service, make_box, provider, admin):
    box = make_box(provider)
    with pytest.raises(ForbiddenError):
        service.claim(box.claim_code, provider)
    with pytest.raises(ForbiddenError):
        service.claim(box.claim_code, admin)
    assert service.registry.find_by_id(box.id).is_claimed is False


def test_claim_moves_box_between_visibility_scopes(service, make_box, provider, owner):
    box = make_box(provider)
    assert is_permitted(provider, box, Operation.VIEW)
    assert not is_permitted(owner, box, Operation.VIEW)

    claimed = service.claim(box.claim_code, owner)
    assert not is_permitted(provider, claimed, Operation.VIEW)
    assert is_permitted(owner, claimed, Operation.VIEW)


def test_concurrent_claims_have_exactly_one_winner(db, session_factory, make_box, make_user, provider):
    box = make_box(provider)
    claimants = [make_user(UserRole.USER, name=f"racer{i}") for i in range(8)]
    # Load everything up front; the threads must not touch the fixture session
    db.refresh(box)
    code = box.claim_code
    for user in claimants:
        db.refresh(user)
    barrier = threading.Barrier(len(claimants))
    winners, losers, errors = [], [], []

    def attempt(user):
        session = session_factory()
        try:
            barrier.wait()
            OwnershipService(BoxRegistry(session)).claim(code, user)
            winners.append(user.id)
        except ConflictError:
            losers.append(user.id)
        except Exception as exc:
            errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=attempt, args=(user,)) for user in claimants]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(winners) == 1
    assert len(losers) == len(claimants) - 1

    session = session_factory()
    final = BoxRegistry(session).find_by_claim_code(code)
    assert final.owner_id == winners[0]
    session.close()


# Property-code transfer workflow


@pytest.fixture()
def offered_box(service, make_box, provider):
    box = make_box(provider)
    return service.issue_property_code(box.id, provider)


def test_issue_property_code(offered_box):
    assert len(offered_box.property_code) == 6


def test_issue_property_code_requires_modify_rights(service, make_box, provider, other_provider):
    box = make_box(provider)
    with pytest.raises(ForbiddenError):
        service.issue_property_code(box.id, other_provider)


def test_request_marks_box_pending(service, registry, offered_box, owner):
    request = service.request_transfer(offered_box.property_code, owner)
    assert request.status == "pending"
    assert request.provider_id == offered_box.provider_id
    box = registry.find_by_id(offered_box.id)
    assert box.status == BoxStatus.PENDING_TRANSFER.value
    assert box.transfer_requested_at is not None


def test_second_request_conflicts(service, offered_box, owner, stranger):
    service.request_transfer(offered_box.property_code, owner)
    with pytest.raises(ConflictError):
        service.request_transfer(offered_box.property_code, stranger)


def test_request_unknown_property_code(service, owner):
    with pytest.raises(NotFoundError):
        service.request_transfer("ZZZZZZ", owner)


def test_provider_cannot_request(service, offered_box, other_provider):
    with pytest.raises(ForbiddenError):
        service.request_transfer(offered_box.property_code, other_provider)


def test_pending_box_cannot_be_claimed_by_code(service, offered_box, owner, stranger):
    service.request_transfer(offered_box.property_code, owner)
    with pytest.raises(ConflictError):
        service.claim(offered_box.claim_code, stranger)


def test_approve_transfers_ownership(service, registry, offered_box, provider, owner):
    request = service.request_transfer(offered_box.property_code, owner)
    settled = service.respond(request.id, provider, "approve", notes="handed over")
    assert settled.status == "approved"
    assert settled.notes == "handed over"
    box = registry.find_by_id(offered_box.id)
    assert box.is_claimed is True
    assert box.owner_id == owner.id
    assert box.status == BoxStatus.TRANSFERRED.value
    assert box.property_code is None


def test_reject_returns_box_to_available(service, registry, offered_box, provider, owner):
    request = service.request_transfer(offered_box.property_code, owner)
    settled = service.respond(request.id, provider, "reject")
    assert settled.status == "rejected"
    box = registry.find_by_id(offered_box.id)
    assert box.is_claimed is False
    assert box.owner_id is None
    assert box.status == BoxStatus.AVAILABLE.value
    assert box.transfer_requested_at is None


def test_request_can_only_be_settled_once(service, offered_box, provider, owner):
    request = service.request_transfer(offered_box.property_code, owner)
    service.respond(request.id, provider, "reject")
    with pytest.raises(ConflictError):
        service.respond(request.id, provider, "approve")


def test_only_the_boxes_provider_or_admin_may_respond(service, offered_box, other_provider, admin, owner):
    request = service.request_transfer(offered_box.property_code, owner)
    with pytest.raises(ForbiddenError):
        service.respond(request.id, other_provider, "approve")
    with pytest.raises(ForbiddenError):
        service.respond(request.id, owner, "approve")
    assert service.respond(request.id, admin, "approve").status == "approved"


def test_claimed_box_code_cannot_be_used_after_approval(service, offered_box, provider, owner, stranger):
    request = service.request_transfer(offered_box.property_code, owner)
    service.respond(request.id, provider, "approve")
    with pytest.raises(AlreadyClaimedError):
        service.claim(offered_box.claim_code, stranger)


def test_list_requests_is_scoped_by_role(service, offered_box, provider, other_provider, admin, owner, stranger):
    request = service.request_transfer(offered_box.property_code, owner)
    assert [r.id for r in service.list_requests(admin)] == [request.id]
    assert [r.id for r in service.list_requests(provider)] == [request.id]
    assert [r.id for r in service.list_requests(owner)] == [request.id]
    assert service.list_requests(other_provider) == []
    assert service.list_requests(stranger) == []
