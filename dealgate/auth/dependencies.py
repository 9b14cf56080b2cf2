"""FastAPI auth dependencies: get_current_user, require_role."""

import hmac
import uuid

import sentry_sdk
import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dealgate.auth.tokens import decode_access_token
from dealgate.core.config import settings
from dealgate.core.database import get_db
from dealgate.core.errors import ForbiddenError, InvalidOperationError, UnauthenticatedError
from dealgate.models.core import User
from dealgate.models.enums import UserRole
from dealgate.schemas.auth import CurrentUser

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """
    Verify the bearer JWT and resolve the caller.

    Decodes JWT -> reads `sub` (internal user id) -> loads the active User row.
    """
    if credentials is None:
        raise UnauthenticatedError("Missing bearer token")

    try:
        payload = decode_access_token(credentials.credentials)
    except UnauthenticatedError:
        logger.warning("jwt_verification_failed")
        raise

    subject = payload.get("sub")
    try:
        user_id = uuid.UUID(str(subject))
    except ValueError as e:
        raise UnauthenticatedError("Token missing subject claim") from e

    result = await db.execute(
        select(User).where(User.id == user_id, User.is_active.is_(True))
    )
    user = result.scalar_one_or_none()
    if user is None:
        logger.warning("user_not_found_for_token", user_id=str(user_id))
        raise UnauthenticatedError("User not found or inactive")

    # PII-free: no email
    sentry_sdk.set_user({"id": str(user.id)})
    sentry_sdk.set_tag("user_role", user.role.value)

    return CurrentUser(user_id=user.id, role=user.role, email=user.email)


def require_role(allowed_roles: list[UserRole]):
    """
    Dependency factory: checks if current user has one of the allowed roles.

    Usage:
        @router.get("/ndas/admin", dependencies=[Depends(require_role([UserRole.ADMIN]))])
    """

    async def _check_role(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if current_user.role not in allowed_roles:
            raise ForbiddenError(
                f"Role '{current_user.role.value}' not authorized",
                detail={"required": [r.value for r in allowed_roles]},
            )
        return current_user

    return _check_role


async def verify_scan_callback(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> None:
    """Authenticate the virus scanner by its shared bearer secret."""
    if not settings.SCAN_WEBHOOK_TOKEN:
        raise InvalidOperationError("Virus scan callbacks are not configured")
    if credentials is None or not hmac.compare_digest(
        credentials.credentials.encode(), settings.SCAN_WEBHOOK_TOKEN.encode()
    ):
        logger.warning("scan_callback_rejected")
        raise UnauthenticatedError("Invalid scan callback token")
