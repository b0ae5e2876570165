"""
Users module - Minimal user identity referenced by other modules.
"""

from app.modules.users.models import User, UserRole

__all__ = ["User", "UserRole"]
