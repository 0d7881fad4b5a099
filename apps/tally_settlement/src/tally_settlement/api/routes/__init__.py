"""API v1 router registration."""

from fastapi import APIRouter

from tally_settlement.api.routes import settle, settlements

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(settlements.router)
v1_router.include_router(settle.router)
