"""API routers."""

from trackmoji.api.routes.health import router as health_router
from trackmoji.api.routes.transactions import router as transactions_router
from trackmoji.api.routes.users import router as users_router

__all__ = ["health_router", "transactions_router", "users_router"]
