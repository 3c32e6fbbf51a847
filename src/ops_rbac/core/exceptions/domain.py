"""Domain exceptions for access-control mutations."""

from .base import RbacError


class NotFoundError(RbacError):
    """A referenced entity does not exist for a mutating operation."""

    entity_type = "entity"

    def __init__(self, entity_id: str, message: str = None):
        super().__init__(
            message or f"{self.entity_type.capitalize()} not found: {entity_id}",
            details={"entity_type": self.entity_type, "entity_id": entity_id},
        )
        self.entity_id = entity_id


class UserNotFoundError(NotFoundError):
    entity_type = "user"


class RoleNotFoundError(NotFoundError):
    entity_type = "role"


class AssignmentNotFoundError(NotFoundError):
    entity_type = "assignment"


class TransactionNotFoundError(NotFoundError):
    entity_type = "transaction"


class UserInactiveError(RbacError):
    """The user exists but has been soft-disabled."""


class ConflictError(RbacError):
    """A mutation would break a uniqueness rule."""


class DuplicateEmailError(ConflictError):
    """Another user is already registered with this email (case-insensitive)."""

    def __init__(self, email: str, existing_user_id: str):
        super().__init__(
            f"Email already registered: {email}",
            details={"email": email, "existing_user_id": existing_user_id},
        )
        self.email = email
        self.existing_user_id = existing_user_id
