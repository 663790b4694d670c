"""Public-facing routes (APP_ROLE=public)."""

from fastapi import APIRouter

from immova.api.routes import bookings, calendar, cart, prices, settings

router = APIRouter()

router.include_router(calendar.router)
router.include_router(prices.router)
router.include_router(bookings.router)
router.include_router(cart.router)
router.include_router(settings.router)


@router.get("/health")
def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
