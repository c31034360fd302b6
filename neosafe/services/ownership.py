"""Ownership transfer.

Two ways lead from a provider's box to a user's box:

* claim code - the 8-character code printed on the device acts as a
  capability token; presenting it claims the box immediately.
* property code - a 6-character code issued on demand by the provider; the
  user files a request which the provider approves or rejects.

Both end in the same state (``is_claimed``, ``owner_id`` set, ``transferred``)
and both require the box to be ``available``, so they cannot both succeed.
"""
import logging
from typing import List, Optional

from neosafe.errors import AlreadyClaimedError, ConflictError, ForbiddenError
from neosafe.models.box_transfer_request import BoxTransferRequest
from neosafe.models.safe_box import SafeBox, BoxStatus, CLAIM_CODE_LENGTH, PROPERTY_CODE_LENGTH
from neosafe.models.user import User, UserRole
from neosafe.services.access_policy import Operation, ensure_permitted
from neosafe.services.box_registry import BoxRegistry
from neosafe.services.claim_codes import normalize_code

logger = logging.getLogger(__name__)


class OwnershipService:
    """Validates and executes ownership transitions through the registry."""

    def __init__(self, registry: BoxRegistry):
        self.registry = registry

    def claim(self, code: str, claimant: User) -> SafeBox:
        """Claim the box identified by ``code`` for ``claimant``.

        Unknown code -> NotFoundError; already claimed -> AlreadyClaimedError;
        transfer in flight -> ConflictError. Only ``user`` principals may own
        boxes; that is checked after the state checks so a redeemed code reads
        as claimed to everyone.
        """
        code = normalize_code(code, CLAIM_CODE_LENGTH, "Claim code")
        box = self.registry.find_by_claim_code(code)
        if box.is_claimed:
            raise AlreadyClaimedError("This box has already been claimed")
        if box.status != BoxStatus.AVAILABLE.value:
            raise ConflictError("This box is not available to be claimed")
        if claimant.role is not UserRole.USER:
            raise ForbiddenError("Only user accounts can claim boxes")

        box = self.registry.claim(code, claimant.id)
        logger.info("Box %s claimed by user %s", box.id, claimant.id)
        return box

    def issue_property_code(self, box_id: int, actor: User) -> SafeBox:
        box = self.registry.find_by_id(box_id)
        ensure_permitted(actor, box, Operation.MODIFY)
        return self.registry.assign_property_code(box_id)

    def request_transfer(self, property_code: str, requestor: User) -> BoxTransferRequest:
        code = normalize_code(property_code, PROPERTY_CODE_LENGTH, "Property code")
        if requestor.role is not UserRole.USER:
            raise ForbiddenError("Only user accounts can request boxes")
        return self.registry.open_transfer(code, requestor.id)

    def list_requests(self, user: User) -> List[BoxTransferRequest]:
        if user.role is UserRole.ADMIN:
            return self.registry.list_transfer_requests()
        if user.role is UserRole.PROVIDER:
            return self.registry.list_transfer_requests(provider_id=user.id)
        return self.registry.list_transfer_requests(requestor_id=user.id)

    def respond(self, request_id: int, actor: User, action: str,
                notes: Optional[str] = None) -> BoxTransferRequest:
        """Approve or reject a pending transfer request."""
        if actor.role not in (UserRole.ADMIN, UserRole.PROVIDER):
            raise ForbiddenError("Only providers can respond to transfer requests")
        request = self.registry.find_transfer_request(request_id)
        if actor.role is UserRole.PROVIDER and request.provider_id != actor.id:
            raise ForbiddenError("You are not the provider of this box")
        return self.registry.settle_transfer(request_id, approve=(action == "approve"), notes=notes)
