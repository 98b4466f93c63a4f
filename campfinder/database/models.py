#models.py
"""
Database models for saved camps.
"""
from sqlalchemy import Column, DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class Favorite(Base):
    """
    A camp saved by a user; camp_id is the Airtable record id
    """
    __tablename__ = 'favorites'
    __table_args__ = (
        UniqueConstraint('user_id', 'camp_id', name='uq_favorites_user_camp'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    camp_id = Column(String, nullable=False)
    created_at = Column(DateTime, default=func.now())

    def __repr__(self):
        return f"<Favorite {self.user_id} {self.camp_id}>"
