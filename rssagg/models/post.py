from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from rssagg.core.database import Base


class Post(Base):
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True)
    feed_id = Column(Integer, ForeignKey("feeds.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    url = Column(String, unique=True, nullable=False)  # Dedup key for ingestion
    published_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    feed = relationship("Feed", back_populates="posts")
