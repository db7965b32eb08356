"""Authentication service layer.

Business logic for:
- User registration and login
- Access token creation
- User queries used by the other domains
"""

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.auth.models import User
from learnhub.auth.permissions import UserRole
from learnhub.auth.schemas import (
    AdminCreateUserRequest,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from learnhub.auth.security import create_access_token, hash_password, verify_password
from learnhub.config.settings import get_settings


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AuthError(Exception):
    """Base authentication error."""

    def __init__(self, message: str, code: str = "auth_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    """Invalid email or password."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, "invalid_credentials")


class UserExistsError(AuthError):
    """Email already registered."""

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message, "user_exists")


class UserNotFoundError(AuthError):
    """User not found."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


class UserInactiveError(AuthError):
    """User account is inactive."""

    def __init__(self, message: str = "Account is inactive"):
        super().__init__(message, "user_inactive")


# ==============================================================================
# Auth Service
# ==============================================================================


class AuthService:
    """Authentication service for user management and token operations."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session.

        Args:
            session: Cassandra driver session (async-capable)
            keyspace: Keyspace name for queries
        """
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._get_user_by_email = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE email = ?"
        )
        self._get_user_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id = ?"
        )
        self._list_users = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users"
        )
        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (id, email, name, password_hash, role, is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._update_user_password = self.session.prepare(f"""
            UPDATE {self.keyspace}.users
            SET password_hash = ?, updated_at = ?
            WHERE id = ?
        """)

    # ==========================================================================
    # User Operations
    # ==========================================================================

    async def get_user_by_email(self, email: str) -> User | None:
        """Find user by email address."""
        result = await self.session.aexecute(
            self._get_user_by_email, [email.lower().strip()]
        )
        row = result.one()
        return User.from_row(row) if row else None

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Find user by ID."""
        result = await self.session.aexecute(self._get_user_by_id, [user_id])
        row = result.one()
        return User.from_row(row) if row else None

    async def list_users(self) -> list[User]:
        """List all users, newest first."""
        rows = await self.session.aexecute(self._list_users)
        users = [User.from_row(row) for row in rows]
        users.sort(key=lambda u: u.created_at, reverse=True)
        return users

    async def register_user(self, data: RegisterRequest) -> User:
        """Register a new student account.

        Raises:
            UserExistsError: If the email is already registered
        """
        return await self._create_user(
            email=data.email,
            name=data.name,
            password=data.password,
            role=UserRole.STUDENT,
        )

    async def admin_create_user(self, data: AdminCreateUserRequest) -> User:
        """Create a user with an explicit role (admin only)."""
        return await self._create_user(
            email=data.email,
            name=data.name,
            password=data.password,
            role=data.role,
        )

    async def _create_user(
        self, email: str, name: str, password: str, role: UserRole
    ) -> User:
        if await self.get_user_by_email(email):
            raise UserExistsError

        user = User(
            email=email,
            name=name,
            password_hash=hash_password(password),
            role=role.value,
            is_active=True,
        )
        await self.session.aexecute(
            self._insert_user,
            [
                user.id,
                user.email,
                user.name,
                user.password_hash,
                user.role,
                user.is_active,
                user.created_at,
                user.updated_at,
            ],
        )
        logger.info("user_created", user_id=str(user.id), role=user.role)
        return user

    async def authenticate_user(self, email: str, password: str) -> User:
        """Authenticate user with email and password.

        Raises:
            InvalidCredentialsError: If email or password is wrong
            UserInactiveError: If user account is inactive
        """
        user = await self.get_user_by_email(email)
        if not user:
            raise InvalidCredentialsError

        is_valid, new_hash = verify_password(password, user.password_hash)
        if not is_valid:
            raise InvalidCredentialsError

        if not user.is_active:
            raise UserInactiveError

        # Update hash if needed (algorithm params changed)
        if new_hash:
            await self.session.aexecute(
                self._update_user_password,
                [new_hash, datetime.now(UTC), user.id],
            )
            user.password_hash = new_hash

        return user

    # ==========================================================================
    # Token Operations
    # ==========================================================================

    def create_token(self, user: User) -> TokenResponse:
        """Issue an access token for an authenticated user."""
        settings = get_settings()
        expires = timedelta(minutes=settings.auth_access_token_expire_minutes)
        token = create_access_token(
            {"sub": str(user.id), "email": user.email, "role": user.role},
            expires_delta=expires,
        )
        return TokenResponse(
            access_token=token,
            expires_in=int(expires.total_seconds()),
        )

    def to_response(self, user: User) -> UserResponse:
        """Convert User entity to response schema."""
        return UserResponse(
            id=user.id,
            email=user.email,
            name=user.name,
            role=UserRole(user.role),
            is_active=user.is_active,
            created_at=user.created_at,
        )
