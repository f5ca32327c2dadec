from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from rssagg.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String, unique=True, nullable=False, index=True)
    password = Column(String, nullable=False)  # bcrypt hash, never plaintext

    # Relationships
    feeds = relationship("Feed", back_populates="user", passive_deletes=True)
