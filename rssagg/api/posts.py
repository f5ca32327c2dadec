from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from rssagg.api.deps import get_current_user_id
from rssagg.core.database import get_db
from rssagg.schemas import PostResponse
from rssagg.services.post_store import PostStore

router = APIRouter(prefix="/posts", tags=["Posts"])


@router.get(
    "",
    response_model=List[PostResponse],
    summary="List Recent Posts",
    description="The 50 newest posts across all of the user's feeds, newest first. Undated posts come last.",
)
async def list_posts(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await PostStore.list_recent(db, user_id)
