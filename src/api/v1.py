"""Centralized v1 API router — all module routers are included here."""

from fastapi import APIRouter

from src.modules.identity.router import router as identity_router
from src.modules.order.router import router as order_router
from src.modules.request_quote.router import router as request_quote_router
from src.modules.shipping.router import router as shipping_router

v1_router = APIRouter(prefix="/api/v1")
v1_router.include_router(identity_router)
v1_router.include_router(order_router)
v1_router.include_router(shipping_router)
v1_router.include_router(request_quote_router)
