"""Account administration: provider management and self-service profiles."""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from neosafe.auth import get_password_hash
from neosafe.errors import ConflictError, NotFoundError
from neosafe.models.revoked_token import RevokedToken
from neosafe.models.safe_box import SafeBox
from neosafe.models.user import User, UserRole

logger = logging.getLogger(__name__)

PROVIDER_FIELDS = ("name", "last_name", "email", "is_active")


class AccountService:
    """Reads and writes user accounts, bound to one database session."""

    def __init__(self, db: Session):
        self.db = db

    def _provider_query(self):
        return (
            self.db.query(User, func.count(SafeBox.id))
            .outerjoin(SafeBox, SafeBox.provider_id == User.id)
            .filter(User.role == UserRole.PROVIDER)
            .group_by(User.id)
        )

    def list_providers(self) -> List[Tuple[User, int]]:
        """Providers with their box counts, newest first."""
        return self._provider_query().order_by(User.created_at.desc(), User.id.desc()).all()

    def get_provider(self, provider_id: int) -> Tuple[User, int]:
        row = self._provider_query().filter(User.id == provider_id).first()
        if row is None:
            raise NotFoundError("Provider not found")
        return row

    def _email_taken(self, email: str, exclude_id: int) -> bool:
        return self.db.query(User.id).filter(User.email == email, User.id != exclude_id).first() is not None

    def _write_user(self, user_id: int, values: dict, *criteria) -> int:
        if "email" in values and self._email_taken(values["email"], user_id):
            raise ConflictError("A user with that email already exists")
        values["updated_at"] = datetime.now(timezone.utc)
        try:
            updated = (
                self.db.query(User)
                .filter(User.id == user_id, *criteria)
                .update(values, synchronize_session=False)
            )
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            if "email" in values and self._email_taken(values["email"], user_id):
                raise ConflictError("A user with that email already exists")
            raise
        self.db.expire_all()
        return updated

    def update_provider(self, provider_id: int, fields: dict) -> Tuple[User, int]:
        values = {k: v for k, v in fields.items() if k in PROVIDER_FIELDS}
        if values:
            updated = self._write_user(provider_id, values, User.role == UserRole.PROVIDER)
            if updated != 1:
                raise NotFoundError("Provider not found")
            logger.info("Provider %s updated", provider_id)
        return self.get_provider(provider_id)

    def delete_provider(self, provider_id: int) -> None:
        """Remove a provider account that has no boxes."""
        has_boxes = select(SafeBox.id).where(SafeBox.provider_id == provider_id).exists()
        self.db.query(RevokedToken).filter(RevokedToken.user_id == provider_id).delete(synchronize_session=False)
        deleted = (
            self.db.query(User)
            .filter(User.id == provider_id, User.role == UserRole.PROVIDER, ~has_boxes)
            .delete(synchronize_session=False)
        )
        if deleted == 1:
            self.db.commit()
            self.db.expire_all()
            logger.info("Provider %s deleted", provider_id)
            return
        self.db.rollback()
        _, box_count = self.get_provider(provider_id)
        raise ConflictError(f"Provider has {box_count} box(es) and cannot be deleted")

    def update_profile(self, user: User, email: Optional[str] = None,
                       password: Optional[str] = None) -> User:
        """Change the caller's own email and/or password."""
        user_id = user.id
        values = {}
        if email is not None:
            values["email"] = email
        if password is not None:
            values["hashed_password"] = get_password_hash(password)
        if values:
            self._write_user(user_id, values)
            logger.info("User %s updated their profile", user_id)
        return self.db.query(User).filter(User.id == user_id).first()
