"""Admin router - every endpoint below requires the admin role."""

from fastapi import APIRouter, Depends

from linkdeck.api.v1.admin.categories import router as categories_router
from linkdeck.api.v1.admin.links import router as links_router
from linkdeck.api.v1.admin.site import router as site_router
from linkdeck.api.v1.admin.tags import router as tags_router
from linkdeck.api.v1.admin.tokens import router as tokens_router
from linkdeck.api.v1.admin.users import router as users_router
from linkdeck.core.deps import require_admin

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin)])

router.include_router(categories_router)
router.include_router(links_router)
router.include_router(tags_router)
router.include_router(users_router)
router.include_router(tokens_router)
router.include_router(site_router)
