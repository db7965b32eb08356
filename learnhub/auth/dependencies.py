"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current user extraction from JWT
- Role-based access control
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError

from learnhub.auth.permissions import Actor, UserRole, has_permission
from learnhub.auth.schemas import UserResponse
from learnhub.auth.security import decode_access_token
from learnhub.core.context import set_user_id


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_user(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> UserResponse:
    """Get current authenticated user from JWT token.

    The returned user's id is the session identity every service call
    receives as its acting user.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token)
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    user_id = payload["sub"]
    set_user_id(user_id)

    try:
        role = UserRole(payload["role"])
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    # Name is not stored in the token
    return UserResponse(
        id=user_id,
        email=payload["email"],
        name="",
        role=role,
        is_active=True,
    )


def require_permission(required_role: UserRole):
    """Create dependency requiring at least a permission level.

    Example:
        @router.get("/admin-area")
        async def admin_endpoint(
            user: Annotated[UserResponse, Depends(require_permission(UserRole.ADMIN))]
        ):
            ...
    """

    async def permission_checker(
        user: Annotated[UserResponse, Depends(get_current_user)],
    ) -> UserResponse:
        if not has_permission(user.role, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return permission_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

CurrentUser = Annotated[UserResponse, Depends(get_current_user)]
AdminUser = Annotated[UserResponse, Depends(require_permission(UserRole.ADMIN))]


async def get_current_actor(user: CurrentUser) -> Actor:
    """Session identity handed explicitly to service calls."""
    return Actor(id=user.id, role=user.role.value)


CurrentActor = Annotated[Actor, Depends(get_current_actor)]
