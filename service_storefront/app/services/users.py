"""
User accounts and the admin role check.
"""

from typing import List, Optional, Tuple

from shared.errors import AuthenticationError, AuthorizationError, ConflictError, NotFoundError, ValidationError
from shared.logging import get_logger
from ..caching.invalidation import CacheInvalidator, InvalidationRequest
from ..models import Collection, NewUserRequest, User, UserRole, to_document
from ..persistence.documents import DocumentStore

logger = get_logger("storefront.services.users")

REQUIRED_USER_FIELDS = ("id", "name", "email", "photo", "gender", "dob")


class UserService:
    """User registration, lookup and removal."""

    def __init__(self, documents: DocumentStore, invalidator: CacheInvalidator):
        self.documents = documents
        self.invalidator = invalidator

    async def create_user(self, request: NewUserRequest) -> Tuple[bool, Optional[User]]:
        """Register a user. Returns ``(False, user)`` when the id is already known."""
        if request.id:
            existing = await self.documents.find_by_id(Collection.USERS, request.id)
            if existing:
                return False, User.model_validate(existing)

        missing = [field for field in REQUIRED_USER_FIELDS if not getattr(request, field)]
        if missing:
            raise ValidationError("Please add all required fields", {"missing": missing})

        if await self.documents.count(Collection.USERS, {"email": request.email}):
            raise ConflictError("Email already exists", {"email": request.email})

        user = User(
            _id=request.id,
            name=request.name,
            email=request.email,
            photo=request.photo,
            gender=request.gender,
            dob=request.dob,
        )
        stored = await self.documents.insert(Collection.USERS, to_document(user))

        await self.invalidator.invalidate(InvalidationRequest(admin=True))

        logger.info("User created", user_id=user.id)
        return True, User.model_validate(stored)

    async def list_users(self) -> List[User]:
        docs = await self.documents.find(Collection.USERS)
        return [User.model_validate(doc) for doc in docs]

    async def get_user(self, user_id: str) -> User:
        doc = await self.documents.find_by_id(Collection.USERS, user_id)
        if doc is None:
            raise NotFoundError("Invalid ID", {"user_id": user_id})
        return User.model_validate(doc)

    async def delete_user(self, user_id: str) -> None:
        await self.get_user(user_id)
        await self.documents.delete(Collection.USERS, user_id)

        await self.invalidator.invalidate(InvalidationRequest(order=True, admin=True, user_id=user_id))

        logger.info("User deleted", user_id=user_id)

    async def require_admin(self, user_id: Optional[str]) -> User:
        """Resolve the acting user and check it holds the admin role."""
        if not user_id:
            raise AuthenticationError("Please login first")

        doc = await self.documents.find_by_id(Collection.USERS, user_id)
        if doc is None:
            raise AuthenticationError("Invalid ID", {"user_id": user_id})

        user = User.model_validate(doc)
        if user.role != UserRole.ADMIN:
            raise AuthorizationError("Admin access required", {"user_id": user_id})
        return user
