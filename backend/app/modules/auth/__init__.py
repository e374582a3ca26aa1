# Authentication module

from app.modules.auth.dependencies import (
    get_current_user,
    require_roles,
    require_permission,
)
from app.modules.auth.policy import authorize, enforce

__all__ = [
    # User authentication
    "get_current_user",
    "require_roles",
    "require_permission",
    # Ownership rules
    "authorize",
    "enforce",
]
