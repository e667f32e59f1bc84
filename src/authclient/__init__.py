"""
HTTP side of the auth client.

Modules:
- backend: client for the auth backend (/login, /register, /user/me)
- settings: environment-driven configuration
"""

__all__ = [
    "backend",
    "settings",
]
