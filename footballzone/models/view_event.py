"""Article view event model (write-only analytics)."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from footballzone.db.base import Base


class ViewEvent(Base):
    """One recorded article view. ``user_id`` is NULL for anonymous views.

    Rows are never deduplicated: a client retry records a second view.
    """
    __tablename__ = "article_views"

    id = Column(Integer, primary_key=True, autoincrement=True)
    article_id = Column(Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)
    session_id = Column(String(255), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    view_duration = Column(Integer, nullable=True)  # seconds
    completion_percent = Column(Integer, nullable=False, default=0)
    referrer = Column(String(500), nullable=True)
    device_type = Column(String(20), nullable=False, default="desktop")
    ip_address = Column(String(45), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
