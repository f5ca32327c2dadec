from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class FeedBase(BaseModel):
    name: str = Field(min_length=1)
    url: str = Field(min_length=1)


class FeedCreate(FeedBase):
    pass


class FeedResponse(FeedBase):
    id: int
    user_id: int
    last_fetched: Optional[datetime] = None

    class Config:
        from_attributes = True
