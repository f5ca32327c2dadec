from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from rssagg.core.database import Base


class Feed(Base):
    __tablename__ = "feeds"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    url = Column(String, unique=True, nullable=False)  # Unique across all users
    last_fetched = Column(DateTime(timezone=True), nullable=True)  # Only the poller writes this

    # Relationships
    user = relationship("User", back_populates="feeds")
    posts = relationship("Post", back_populates="feed", cascade="all, delete-orphan", passive_deletes=True)
