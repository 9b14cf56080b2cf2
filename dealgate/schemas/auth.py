"""Auth schemas: CurrentUser."""

import uuid

from pydantic import BaseModel

from dealgate.models.enums import PRIVILEGED_ROLES, UserRole


class CurrentUser(BaseModel):
    """Lightweight caller context extracted from the JWT + DB lookup."""

    user_id: uuid.UUID
    role: UserRole
    email: str

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN
