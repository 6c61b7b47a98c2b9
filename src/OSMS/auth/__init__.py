# src/OSMS/auth/__init__.py
from .deps import client_ip, get_current_user, require_roles

__all__ = ["client_ip", "get_current_user", "require_roles"]
