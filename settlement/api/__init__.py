from fastapi import APIRouter

from settlement.interfaces.http.routers import admin, agent, checkout, cron, health, transactions, wallet, webhooks


def create_api_router(prefix: str = "") -> APIRouter:
    router = APIRouter(prefix=prefix)
    router.include_router(checkout.router, prefix="/checkout", tags=["checkout"])
    router.include_router(wallet.router, prefix="/wallet", tags=["wallet"])
    router.include_router(transactions.router, prefix="/transactions", tags=["reconciliation"])
    router.include_router(webhooks.router, tags=["webhooks"])
    router.include_router(cron.router, prefix="/cron", tags=["cron"])
    router.include_router(agent.router, prefix="/agent", tags=["agent"])
    router.include_router(admin.router, prefix="/admin", tags=["admin"])
    router.include_router(health.router, tags=["health"])
    return router


__all__ = [
    "create_api_router",
]
