"""Per-article analytics read back from recorded view events."""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from footballzone.models.article import Article
from footballzone.models.view_event import ViewEvent

# A view counts as "completed" from this read-through percentage on
COMPLETION_THRESHOLD = 80
TOP_REFERRERS = 5


class AnalyticsService:

    @staticmethod
    def article_analytics(
        db: Session,
        article: Article,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Totals, engagement and breakdowns for one article's views.

        ``start`` and ``end`` bound ``created_at`` inclusively. ``viewCount`` is the
        article's read counter; ``totalViews`` counts tracked view events.
        """
        conditions = [ViewEvent.article_id == article.id]
        if start is not None:
            conditions.append(ViewEvent.created_at >= start)
        if end is not None:
            conditions.append(ViewEvent.created_at <= end)

        total, sessions, users, avg_duration, avg_completion, completed = (
            db.query(
                func.count(ViewEvent.id),
                func.count(func.distinct(ViewEvent.session_id)),
                func.count(func.distinct(ViewEvent.user_id)),
                func.avg(ViewEvent.view_duration),
                func.avg(ViewEvent.completion_percent),
                func.sum(case((ViewEvent.completion_percent >= COMPLETION_THRESHOLD, 1), else_=0)),
            )
            .filter(*conditions)
            .one()
        )

        by_device = dict(
            db.query(ViewEvent.device_type, func.count(ViewEvent.id))
            .filter(*conditions)
            .group_by(ViewEvent.device_type)
            .all()
        )

        referrer_count = func.count(ViewEvent.id)
        top_referrers = (
            db.query(ViewEvent.referrer, referrer_count)
            .filter(*conditions, ViewEvent.referrer.isnot(None))
            .group_by(ViewEvent.referrer)
            .order_by(referrer_count.desc(), ViewEvent.referrer.asc())
            .limit(TOP_REFERRERS)
            .all()
        )

        day = func.date(ViewEvent.created_at)
        over_time = (
            db.query(day, func.count(ViewEvent.id))
            .filter(*conditions)
            .group_by(day)
            .order_by(day)
            .all()
        )

        return {
            "id": article.id,
            "title": article.title,
            "slug": article.slug,
            "viewCount": article.view_count,
            "totalViews": total,
            "uniqueSessions": sessions,
            "uniqueUsers": users,
            "avgReadTime": round(float(avg_duration), 1) if avg_duration is not None else 0,
            "avgCompletion": round(float(avg_completion), 1) if avg_completion is not None else 0,
            "completionRate": round(100 * (completed or 0) / total, 1) if total else 0,
            "viewsByDevice": by_device,
            "topReferrers": [{"referrer": r, "views": n} for r, n in top_referrers],
            "viewsOverTime": [{"date": str(d), "views": n} for d, n in over_time],
        }


analytics_service = AnalyticsService()
