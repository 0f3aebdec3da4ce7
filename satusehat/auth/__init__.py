"""Access token acquisition and caching."""

from satusehat.auth.cooldown import AuthCooldown
from satusehat.auth.manager import AuthManager
from satusehat.auth.store import AuthStore, InMemoryAuthStore, RedisAuthStore

__all__ = [
    "AuthManager",
    "AuthStore",
    "InMemoryAuthStore",
    "RedisAuthStore",
    "AuthCooldown",
]
