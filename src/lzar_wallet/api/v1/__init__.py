"""V1 REST API routes.

Combines all sub-routers under the ``/api/v1`` prefix.
"""

from fastapi import APIRouter

from lzar_wallet.api.v1.admin import router as admin_router
from lzar_wallet.api.v1.qr import router as qr_router
from lzar_wallet.api.v1.wallet import router as wallet_router
from lzar_wallet.api.v1.webhooks import router as webhooks_router

v1_router = APIRouter(prefix="/api/v1")

v1_router.include_router(wallet_router)
v1_router.include_router(qr_router)
v1_router.include_router(webhooks_router)
v1_router.include_router(admin_router)

__all__ = ["v1_router"]
