"""Common models package."""

from userstore_common.models.user import User

__all__ = ["User"]
