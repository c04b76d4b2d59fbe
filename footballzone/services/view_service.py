"""View tracking: best-effort analytics that never fail the read path."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from footballzone.db.session import SessionLocal
from footballzone.models.article import Article
from footballzone.models.view_event import ViewEvent

logger = logging.getLogger("footballzone.views")

DEVICE_MOBILE = "mobile"
DEVICE_DESKTOP = "desktop"


def detect_device(user_agent: Optional[str]) -> str:
    """Crude user-agent heuristic: any "Mobile" substring means mobile."""
    if user_agent and "Mobile" in user_agent:
        return DEVICE_MOBILE
    return DEVICE_DESKTOP


def clamp_percent(value: Optional[int]) -> int:
    if value is None:
        return 0
    return max(0, min(100, int(value)))


@dataclass
class ViewEventData:
    article_id: int
    session_id: str
    user_id: Optional[int] = None
    view_duration: Optional[int] = None
    completion_percent: Optional[int] = 0
    referrer: Optional[str] = None
    device_type: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class ViewTracker:
    """Writes view events and read counters on its own session.

    Runs after the response has been sent (FastAPI background task), so it
    opens a fresh session instead of reusing the request's one. Nothing here
    raises: failures are logged and dropped.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def track(self, event: ViewEventData) -> bool:
        """Persist one view event. Returns whether it was stored."""
        db = self.session_factory()
        try:
            if db.get(Article, event.article_id) is None:
                logger.info("Ignoring view of unknown article %s", event.article_id)
                return False
            db.add(ViewEvent(
                article_id=event.article_id,
                session_id=event.session_id,
                user_id=event.user_id,
                view_duration=event.view_duration,
                completion_percent=clamp_percent(event.completion_percent),
                referrer=event.referrer,
                device_type=event.device_type or detect_device(event.user_agent),
                ip_address=event.ip_address,
            ))
            db.commit()
            return True
        except Exception:
            db.rollback()
            logger.exception("Failed to record view of article %s", event.article_id)
            return False
        finally:
            db.close()

    def count_read(self, article_id: int) -> None:
        """Increment ``view_count`` in one UPDATE statement."""
        db = self.session_factory()
        try:
            db.execute(
                update(Article)
                .where(Article.id == article_id)
                .values(view_count=Article.view_count + 1)
            )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to increment view count of article %s", article_id)
        finally:
            db.close()


view_tracker = ViewTracker(SessionLocal)


def get_view_tracker() -> ViewTracker:
    """FastAPI dependency; tests override it to bind their own session factory."""
    return view_tracker
