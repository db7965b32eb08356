"""Authentication API endpoints.

Provides routes for:
- User registration and login
- Current user profile
- Admin user management
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from learnhub.auth.dependencies import AdminUser, CurrentUser
from learnhub.auth.schemas import (
    AdminCreateUserRequest,
    LoginRequest,
    RegisterRequest,
    TokenResponse,
    UserListResponse,
    UserResponse,
)
from learnhub.auth.service import AuthError, AuthService, UserNotFoundError


router = APIRouter(prefix="/v1/auth", tags=["auth"])


# ==============================================================================
# Dependency for AuthService
# ==============================================================================

# Module-level reference to be overridden by main.py
_auth_service_getter: Callable[[], AuthService] | None = None


def set_auth_service_getter(getter: Callable[[], AuthService]) -> None:
    """Set the auth service getter function.

    Called by main.py during app initialization.
    """
    global _auth_service_getter  # noqa: PLW0603 - Required for DI pattern
    _auth_service_getter = getter


def get_auth_service() -> AuthService:
    """Get AuthService instance."""
    if _auth_service_getter is None:
        raise RuntimeError(
            "AuthService not configured - call set_auth_service_getter first"
        )
    return _auth_service_getter()


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


# ==============================================================================
# Error Handling
# ==============================================================================


def handle_auth_error(error: AuthError) -> HTTPException:
    """Convert AuthError to HTTPException."""
    status_map = {
        "invalid_credentials": status.HTTP_401_UNAUTHORIZED,
        "user_inactive": status.HTTP_403_FORBIDDEN,
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "user_exists": status.HTTP_409_CONFLICT,
        "auth_error": status.HTTP_400_BAD_REQUEST,
    }

    headers = None
    if error.code == "invalid_credentials":
        headers = {"WWW-Authenticate": "Bearer"}

    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
        headers=headers,
    )


# ==============================================================================
# Public Endpoints
# ==============================================================================


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    data: RegisterRequest,
    auth_service: AuthServiceDep,
) -> UserResponse:
    """Register a new student account."""
    try:
        user = await auth_service.register_user(data)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.to_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    auth_service: AuthServiceDep,
) -> TokenResponse:
    """Authenticate and return an access token."""
    try:
        user = await auth_service.authenticate_user(data.email, data.password)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.create_token(user)


# ==============================================================================
# Authenticated Endpoints
# ==============================================================================


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: CurrentUser,
    auth_service: AuthServiceDep,
) -> UserResponse:
    """Get the current user's profile."""
    user = await auth_service.get_user_by_id(current_user.id)
    if not user:
        raise handle_auth_error(UserNotFoundError())
    return auth_service.to_response(user)


# ==============================================================================
# Admin Endpoints
# ==============================================================================


@router.get("/users", response_model=UserListResponse)
async def list_users(
    _admin: AdminUser,
    auth_service: AuthServiceDep,
) -> UserListResponse:
    """List all users (admin only)."""
    users = await auth_service.list_users()
    return UserListResponse(
        items=[auth_service.to_response(u) for u in users],
        total=len(users),
    )


@router.post(
    "/users",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def admin_create_user(
    data: AdminCreateUserRequest,
    _admin: AdminUser,
    auth_service: AuthServiceDep,
) -> UserResponse:
    """Create a user with an explicit role (admin only)."""
    try:
        user = await auth_service.admin_create_user(data)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return auth_service.to_response(user)
