"""Access policy for boxes.

Once a box is claimed it leaves the provider/admin management surface and is
visible only to the user who owns it. Before that it belongs to its provider
(and to admins). The same rules are exposed twice: ``decide`` for a single
loaded box and ``visibility_filter`` as a SQL criterion for listings.
"""
import enum

from sqlalchemy import and_

from neosafe.errors import ForbiddenError
from neosafe.models.safe_box import SafeBox
from neosafe.models.user import User, UserRole


class Operation(str, enum.Enum):
    """What the principal wants to do with a box."""
    VIEW = "view"
    MODIFY = "modify"    # update, delete, code generation
    OPERATE = "operate"  # remote unlock


class Decision(enum.Enum):
    PERMIT = "permit"
    DENY = "deny"


def decide(role: UserRole, principal_id: int, box, operation: Operation) -> Decision:
    """Map (role, box state, operation) to a decision.

    ``box`` only needs ``provider_id``, ``owner_id`` and ``is_claimed``.
    """
    if role is UserRole.ADMIN:
        allowed = not box.is_claimed and operation in (Operation.VIEW, Operation.MODIFY)
    elif role is UserRole.PROVIDER:
        allowed = (
            not box.is_claimed
            and box.provider_id == principal_id
            and operation in (Operation.VIEW, Operation.MODIFY)
        )
    elif role is UserRole.USER:
        allowed = (
            box.is_claimed
            and box.owner_id == principal_id
            and operation in (Operation.VIEW, Operation.OPERATE)
        )
    else:
        raise ValueError(f"Unknown role: {role!r}")
    return Decision.PERMIT if allowed else Decision.DENY


def is_permitted(user: User, box, operation: Operation) -> bool:
    return decide(user.role, user.id, box, operation) is Decision.PERMIT


def ensure_permitted(user: User, box, operation: Operation) -> None:
    """Raise ForbiddenError unless the user may perform the operation."""
    if is_permitted(user, box, operation):
        return
    if user.role is UserRole.ADMIN:
        message = "This box has already been claimed and is no longer accessible"
    elif user.role is UserRole.USER and operation is Operation.MODIFY:
        message = "Regular users cannot modify boxes"
    elif user.role is UserRole.PROVIDER and box.is_claimed:
        message = "This box has already been claimed and is no longer accessible"
    else:
        message = "You do not have permission to access this box"
    raise ForbiddenError(message)


def visibility_filter(user: User):
    """SQL criterion selecting the boxes the user may VIEW."""
    if user.role is UserRole.ADMIN:
        return SafeBox.is_claimed.is_(False)
    if user.role is UserRole.PROVIDER:
        return and_(SafeBox.provider_id == user.id, SafeBox.is_claimed.is_(False))
    if user.role is UserRole.USER:
        return and_(SafeBox.owner_id == user.id, SafeBox.is_claimed.is_(True))
    raise ValueError(f"Unknown role: {user.role!r}")
