"""API v1 router - aggregates all v1 endpoints."""

from fastapi import APIRouter

from linkdeck.api.v1.admin.router import router as admin_router
from linkdeck.api.v1.auth import router as auth_router
from linkdeck.api.v1.categories import router as categories_router
from linkdeck.api.v1.favorites import router as favorites_router
from linkdeck.api.v1.links import router as links_router
from linkdeck.api.v1.site import router as site_router
from linkdeck.api.v1.tags import router as tags_router
from linkdeck.schemas.common import Envelope, ok

router = APIRouter(prefix="/api/v1")

# Include sub-routers
router.include_router(auth_router)
router.include_router(categories_router)
router.include_router(links_router)
router.include_router(tags_router)
router.include_router(favorites_router)
router.include_router(site_router)
router.include_router(admin_router)


@router.get("/health", response_model=Envelope[dict[str, str]])
async def health_check() -> Envelope[dict[str, str]]:
    """Health check endpoint."""
    return ok({"status": "healthy"})
