"""Box registry - the single place where box records are written.

Every state change is one conditional statement (``UPDATE ... WHERE <expected
state>``) whose affected-row count decides success, so the database, not
process memory, arbitrates between concurrent requests and between backend
instances. Code uniqueness is enforced by UNIQUE constraints: a colliding
insert is rolled back and retried with a fresh code, while any other
integrity failure propagates.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from neosafe.errors import AlreadyClaimedError, ConflictError, NotFoundError, ValidationError
from neosafe.models.box_command import BoxCommand, CommandType
from neosafe.models.box_sensor import BoxSensor, DEFAULT_SENSOR_TYPES
from neosafe.models.box_transfer_request import BoxTransferRequest, TransferStatus
from neosafe.models.safe_box import SafeBox, BoxStatus, DEFAULT_MODEL
from neosafe.models.user import User
from neosafe.schemas.safe_box import SafeBoxCreate
from neosafe.services.access_policy import visibility_filter
from neosafe.services.claim_codes import generate_claim_code, generate_property_code

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "model", "code_nfc")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BoxRegistry:
    """Source of truth for safe boxes, bound to one database session."""

    def __init__(
        self,
        db: Session,
        claim_code_factory: Callable[[], str] = generate_claim_code,
        property_code_factory: Callable[[], str] = generate_property_code,
    ):
        self.db = db
        self._new_claim_code = claim_code_factory
        self._new_property_code = property_code_factory

    # Lookups

    def find_by_id(self, box_id: int) -> SafeBox:
        box = self.db.query(SafeBox).filter(SafeBox.id == box_id).first()
        if box is None:
            raise NotFoundError("Safe box not found")
        return box

    def find_by_claim_code(self, code: str) -> SafeBox:
        box = self.db.query(SafeBox).filter(SafeBox.claim_code == code).first()
        if box is None:
            raise NotFoundError("Invalid or unknown claim code")
        return box

    def find_by_property_code(self, code: str) -> SafeBox:
        box = self.db.query(SafeBox).filter(SafeBox.property_code == code).first()
        if box is None:
            raise NotFoundError("No box found with that property code")
        return box

    def list_visible(self, user: User, skip: int = 0, limit: int = 100) -> List[SafeBox]:
        """Boxes the user may view, oldest first."""
        return (
            self.db.query(SafeBox)
            .filter(visibility_filter(user))
            .order_by(SafeBox.id)
            .offset(skip)
            .limit(limit)
            .all()
        )

    def _reload(self, box_id: int) -> Optional[SafeBox]:
        self.db.expire_all()
        return self.db.query(SafeBox).filter(SafeBox.id == box_id).first()

    def _nfc_taken(self, code_nfc: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(SafeBox.id).filter(SafeBox.code_nfc == code_nfc)
        if exclude_id is not None:
            query = query.filter(SafeBox.id != exclude_id)
        return query.first() is not None

    def _claim_code_taken(self, code: str) -> bool:
        return self.db.query(SafeBox.id).filter(SafeBox.claim_code == code).first() is not None

    # Creation

    def create(self, provider_id: int, data: SafeBoxCreate) -> SafeBox:
        """Register a box for a provider with a fresh, unique claim code."""
        if provider_id is None:
            raise ValidationError("A box must have a provider")
        if data.code_nfc and self._nfc_taken(data.code_nfc):
            raise ConflictError("NFC code already registered")
        sensor_types = data.sensor_types or DEFAULT_SENSOR_TYPES
        # dict.fromkeys keeps order and drops duplicates
        sensor_types = list(dict.fromkeys(sensor_types))

        attempts = 0
        while True:
            attempts += 1
            claim_code = self._new_claim_code()
            box = SafeBox(
                name=data.name,
                model=data.model or DEFAULT_MODEL,
                code_nfc=data.code_nfc,
                claim_code=claim_code,
                is_claimed=False,
                owner_id=None,
                provider_id=provider_id,
                status=BoxStatus.AVAILABLE.value,
            )
            self.db.add(box)
            try:
                self.db.flush()
                stamp = int(time.time() * 1000)
                for sensor_type in sensor_types:
                    box.sensors.append(BoxSensor(
                        type=sensor_type.value,
                        serial_number=f"{sensor_type.value.upper()}-{box.id}-{stamp}",
                    ))
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                if data.code_nfc and self._nfc_taken(data.code_nfc):
                    raise ConflictError("NFC code already registered")
                if not self._claim_code_taken(claim_code):
                    raise
                logger.info("Claim code collision on attempt %d, drawing a new code", attempts)
                continue
            break

        self.db.refresh(box)
        logger.info("Box %s registered by provider %s", box.id, provider_id)
        return box

    # Metadata changes

    def update(self, box_id: int, fields: dict) -> SafeBox:
        """Change editable metadata of an unclaimed box."""
        values = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS}
        for field in ("name", "model"):
            if field in values:
                if not (values[field] or "").strip():
                    raise ValidationError(f"{field} must not be empty")
                values[field] = values[field].strip()
        if not values:
            return self.find_by_id(box_id)
        values["updated_at"] = _utcnow()
        try:
            updated = (
                self.db.query(SafeBox)
                .filter(SafeBox.id == box_id, SafeBox.is_claimed.is_(False))
                .update(values, synchronize_session=False)
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            if values.get("code_nfc") and self._nfc_taken(values["code_nfc"], exclude_id=box_id):
                raise ConflictError("NFC code already registered")
            raise
        box = self._reload(box_id)
        if box is None:
            raise NotFoundError("Safe box not found")
        if updated != 1:
            raise ConflictError("A claimed box can no longer be modified")
        return box

    def delete(self, box_id: int) -> None:
        """Remove an unclaimed box with no transfer in flight."""
        # Children go first so the whole removal is one transaction.
        for model in (BoxSensor, BoxTransferRequest, BoxCommand):
            self.db.query(model).filter(model.box_id == box_id).delete(synchronize_session=False)
        deleted = (
            self.db.query(SafeBox)
            .filter(
                SafeBox.id == box_id,
                SafeBox.is_claimed.is_(False),
                SafeBox.status == BoxStatus.AVAILABLE.value,
            )
            .delete(synchronize_session=False)
        )
        if deleted == 1:
            self.db.commit()
            self.db.expire_all()
            logger.info("Box %s deleted", box_id)
            return
        self.db.rollback()
        box = self._reload(box_id)
        if box is None:
            raise NotFoundError("Safe box not found")
        if box.is_claimed:
            raise ConflictError("A claimed box cannot be deleted")
        raise ConflictError("Box has a transfer in progress and cannot be deleted")

    # Ownership transitions

    def claim(self, code: str, claimant_id: int) -> SafeBox:
        """Atomically move the box holding ``code`` from unclaimed to claimed.

        Linearizable per code: of several concurrent callers exactly one sees
        its update affect a row; the rest get a ConflictError.
        """
        updated = (
            self.db.query(SafeBox)
            .filter(
                SafeBox.claim_code == code,
                SafeBox.is_claimed.is_(False),
                SafeBox.status == BoxStatus.AVAILABLE.value,
            )
            .update(
                {
                    "owner_id": claimant_id,
                    "is_claimed": True,
                    "status": BoxStatus.TRANSFERRED.value,
                    "property_code": None,
                    "updated_at": _utcnow(),
                },
                synchronize_session=False,
            )
        )
        if updated == 1:
            self.db.commit()
            self.db.expire_all()
            return self.find_by_claim_code(code)
        self.db.rollback()
        self.db.expire_all()
        box = self.find_by_claim_code(code)
        if box.is_claimed:
            raise AlreadyClaimedError("This box has already been claimed")
        raise ConflictError("This box is not available to be claimed")

    def assign_property_code(self, box_id: int) -> SafeBox:
        """Give an available box a fresh 6-character property code."""
        while True:
            property_code = self._new_property_code()
            try:
                updated = (
                    self.db.query(SafeBox)
                    .filter(
                        SafeBox.id == box_id,
                        SafeBox.is_claimed.is_(False),
                        SafeBox.status == BoxStatus.AVAILABLE.value,
                    )
                    .update(
                        {"property_code": property_code, "updated_at": _utcnow()},
                        synchronize_session=False,
                    )
                )
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                taken = self.db.query(SafeBox.id).filter(SafeBox.property_code == property_code).first()
                if taken is None:
                    raise
                logger.info("Property code collision for box %s, drawing a new code", box_id)
                continue
            break
        box = self._reload(box_id)
        if box is None:
            raise NotFoundError("Safe box not found")
        if updated != 1:
            raise ConflictError("Property codes can only be issued for available boxes")
        return box

    def open_transfer(self, property_code: str, requestor_id: int) -> BoxTransferRequest:
        """Move the box to ``pending_transfer`` and record the request."""
        box = self.find_by_property_code(property_code)
        updated = (
            self.db.query(SafeBox)
            .filter(
                SafeBox.id == box.id,
                SafeBox.property_code == property_code,
                SafeBox.is_claimed.is_(False),
                SafeBox.status == BoxStatus.AVAILABLE.value,
            )
            .update(
                {
                    "status": BoxStatus.PENDING_TRANSFER.value,
                    "transfer_requested_at": _utcnow(),
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            self.db.rollback()
            raise ConflictError("This box is not available for transfer")
        request = BoxTransferRequest(
            box_id=box.id,
            requestor_id=requestor_id,
            provider_id=box.provider_id,
            property_code=property_code,
            status=TransferStatus.PENDING.value,
        )
        self.db.add(request)
        self.db.commit()
        self.db.refresh(request)
        logger.info("Transfer request %s opened for box %s by user %s", request.id, box.id, requestor_id)
        return request

    def find_transfer_request(self, request_id: int) -> BoxTransferRequest:
        request = (
            self.db.query(BoxTransferRequest)
            .filter(BoxTransferRequest.id == request_id)
            .first()
        )
        if request is None:
            raise NotFoundError("Transfer request not found")
        return request

    def settle_transfer(self, request_id: int, approve: bool, notes: Optional[str] = None) -> BoxTransferRequest:
        """Approve or reject a pending request together with its box, in one transaction."""
        request = self.find_transfer_request(request_id)
        box_id, requestor_id = request.box_id, request.requestor_id
        new_status = TransferStatus.APPROVED if approve else TransferStatus.REJECTED
        request_values = {"status": new_status.value, "updated_at": _utcnow()}
        if notes:
            request_values["notes"] = notes

        settled = (
            self.db.query(BoxTransferRequest)
            .filter(
                BoxTransferRequest.id == request_id,
                BoxTransferRequest.status == TransferStatus.PENDING.value,
            )
            .update(request_values, synchronize_session=False)
        )
        if settled != 1:
            self.db.rollback()
            raise ConflictError("This request has already been processed")

        if approve:
            box_values = {
                "owner_id": requestor_id,
                "is_claimed": True,
                "status": BoxStatus.TRANSFERRED.value,
                "property_code": None,
                "updated_at": _utcnow(),
            }
        else:
            box_values = {
                "status": BoxStatus.AVAILABLE.value,
                "transfer_requested_at": None,
                "updated_at": _utcnow(),
            }
        moved = (
            self.db.query(SafeBox)
            .filter(
                SafeBox.id == box_id,
                SafeBox.is_claimed.is_(False),
                SafeBox.status == BoxStatus.PENDING_TRANSFER.value,
            )
            .update(box_values, synchronize_session=False)
        )
        if moved != 1:
            self.db.rollback()
            raise ConflictError("The box is no longer awaiting this transfer")

        self.db.commit()
        self.db.expire_all()
        logger.info("Transfer request %s %s", request_id, new_status.value)
        return self.find_transfer_request(request_id)

    def list_transfer_requests(self, **filters) -> List[BoxTransferRequest]:
        query = self.db.query(BoxTransferRequest)
        for column, value in filters.items():
            query = query.filter(getattr(BoxTransferRequest, column) == value)
        return query.order_by(BoxTransferRequest.created_at.desc(), BoxTransferRequest.id.desc()).all()

    # Commands

    def queue_command(self, box_id: int, command: CommandType, issued_by: int) -> BoxCommand:
        entry = BoxCommand(box_id=box_id, command=command.value, issued_by=issued_by)
        self.db.add(entry)
        self.db.commit()
        self.db.refresh(entry)
        logger.info("Command %s queued for box %s by user %s", command.value, box_id, issued_by)
        return entry
