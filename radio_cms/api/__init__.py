"""
Admin API - HTTP boundary of the trash and recovery manager.
"""

from .app import create_application
from .security import Actor, Role, create_session_token, decode_session_token

__all__ = [
    "create_application",
    "Actor",
    "Role",
    "create_session_token",
    "decode_session_token",
]
