"""
Serving Module
"""
from .auth import AdminAllowList, AdminIdentity, SupabaseAuthClient, require_admin
from .cache import CacheManager, close_redis, get_redis, init_redis

__all__ = [
    "AdminAllowList",
    "AdminIdentity",
    "SupabaseAuthClient",
    "require_admin",
    "CacheManager",
    "init_redis",
    "close_redis",
    "get_redis",
]
