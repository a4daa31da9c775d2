# gateway/dependencies/__init__.py

from .database import get_db_connection
from .auth_utils import get_identity_provider, get_session_observer, get_current_user
from .permissions import get_authorization_guard, require_admin

__all__ = [
    "get_db_connection",
    "get_identity_provider",
    "get_session_observer",
    "get_current_user",
    "get_authorization_guard",
    "require_admin",
]
