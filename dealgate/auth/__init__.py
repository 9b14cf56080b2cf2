"""Auth package: bearer tokens and FastAPI dependencies."""

from dealgate.auth.dependencies import get_current_user, require_role
from dealgate.auth.tokens import create_access_token, decode_access_token

__all__ = [
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "require_role",
]
