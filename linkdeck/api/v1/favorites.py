"""Current user's favorites."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from linkdeck.core.database import get_async_session
from linkdeck.core.deps import CurrentUser
from linkdeck.schemas.common import Envelope, ok
from linkdeck.schemas.link import LinkResponse
from linkdeck.services import engagement_service

router = APIRouter(prefix="/favorites", tags=["favorites"])


@router.get("", response_model=Envelope[list[LinkResponse]])
async def list_favorites(
    user: CurrentUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope[list[LinkResponse]]:
    """Every link the caller has favorited, by ascending link id."""
    links = await engagement_service.list_favorites(session, user.id)
    return ok([LinkResponse.model_validate(link) for link in links])
