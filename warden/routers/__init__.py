"""API routers."""

from warden.routers.auth import router as auth_router
from warden.routers.users import router as users_router

__all__ = ["auth_router", "users_router"]
