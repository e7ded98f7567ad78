# portl/api/api.py

from fastapi import APIRouter
from portl.api.endpoints import (
    account,
    cart,
    checkout,
    cron,
    health,
    webhooks,
)

# Main router; mounted under /api by portl.main.
api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(cart.router, prefix="/cart")
api_router.include_router(checkout.router, prefix="/checkout")
api_router.include_router(account.router, prefix="/account")
api_router.include_router(webhooks.router, prefix="/webhooks")
api_router.include_router(cron.router, prefix="/cron")
