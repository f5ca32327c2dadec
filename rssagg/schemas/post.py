from pydantic import BaseModel
from datetime import datetime
from typing import Optional


class PostResponse(BaseModel):
    id: int
    feed_id: int
    title: str
    url: str
    published_at: Optional[datetime] = None

    class Config:
        from_attributes = True
