# keep students away from the maintenance endpoints
from typing import List, Union
from fastapi import Depends

from labtrack.core.authentication import get_current_user
from labtrack.core.error_handling import ForbiddenError
from labtrack.src.models.users import User


def require_roles(allowed_roles: Union[str, List[str]]):
    if isinstance(allowed_roles, str):
        allowed_roles = [allowed_roles]
    allowed = [getattr(role, "value", role) for role in allowed_roles]

    async def check_roles(current_user: User = Depends(get_current_user)):
        if getattr(current_user.type, "value", current_user.type) not in allowed:
            roles_str = ", ".join(allowed)
            raise ForbiddenError(f"Access forbidden: Requires role(s) {roles_str}")
        return current_user

    return check_roles
