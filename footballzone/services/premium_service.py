"""Premium content: per-article access checks, previews and timed releases."""

import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from footballzone.core.access import (
    Access, Identity, decide_access, is_effectively_premium,
)
from footballzone.core.exceptions import NotFoundError
from footballzone.models.article import Article
from footballzone.services.article_service import ArticleService, article_service
from footballzone.services.subscription_service import SubscriptionService, subscription_service
from footballzone.utils.slug import make_excerpt
from footballzone.utils.timeutil import as_utc, utcnow

logger = logging.getLogger("footballzone.premium")

UPGRADE_URL = "/pricing"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return as_utc(value).isoformat() if value else None


def access_reason(article: Any, requester: Optional[Identity], decision: Access, now: datetime) -> str:
    """Human-readable reason for a FULL or EXCERPT_ONLY decision."""
    if not is_effectively_premium(article, now):
        return "Content released to free users" if article.is_premium else "Free content"
    if decision is Access.EXCERPT_ONLY:
        return "Premium subscription required"
    if requester is not None and requester.is_admin:
        return "Admin access"
    return "Premium subscription"


class PremiumService:
    """Wraps the access decision for premium-specific endpoints."""

    def __init__(self, articles: ArticleService, subscriptions: SubscriptionService):
        self.articles = articles
        self.subscriptions = subscriptions

    def _entitled(self, db: Session, requester: Optional[Identity]) -> bool:
        if requester is None or requester.is_admin:
            return False
        return self.subscriptions.is_entitled(db, requester)

    def _decide(self, db: Session, article_id: int, requester: Optional[Identity]):
        article = db.get(Article, article_id)
        if article is None:
            raise NotFoundError("Article not found")
        now = utcnow()
        decision = decide_access(article, requester, entitled=self._entitled(db, requester), now=now)
        if decision is Access.NOT_FOUND:
            raise NotFoundError("Article not found")
        return article, decision, now

    def check_access(self, db: Session, article_id: int, requester: Optional[Identity]) -> Dict[str, Any]:
        article, decision, now = self._decide(db, article_id, requester)
        has_access = decision is Access.FULL
        return {
            "articleId": article.id,
            "access": decision.value,
            "hasAccess": has_access,
            "requiresUpgrade": not has_access,
            "reason": access_reason(article, requester, decision, now),
            "releaseDate": _iso(article.premium_release_date),
            "upgradeUrl": None if has_access else UPGRADE_URL,
        }

    def preview(self, db: Session, article_id: int, requester: Optional[Identity]) -> Dict[str, Any]:
        """Teaser for an article; the body is only included with FULL access."""
        article, decision, _ = self._decide(db, article_id, requester)
        excerpt = article.excerpt or make_excerpt(article.content)
        return {
            "id": article.id,
            "title": article.title,
            "slug": article.slug,
            "excerpt": excerpt,
            "previewContent": article.content if decision is Access.FULL else excerpt,
            "access": decision.value,
            "isPremium": article.is_premium,
            "releaseDate": _iso(article.premium_release_date),
            "requiresSubscription": decision is Access.EXCERPT_ONLY,
            "zonesRequiringSubscription": sorted(
                z.zone.value for z in article.zones if z.requires_subscription
            ),
            "estimatedReadTime": article.read_time,
        }

    def current_subscription(self, db: Session, user_id: int) -> Optional[Dict[str, Any]]:
        subscription = self.subscriptions.get_current(db, user_id)
        if subscription is None:
            return None
        return self.subscriptions.describe(subscription).to_json()

    @staticmethod
    def scheduled_releases(db: Session, limit: int = 20) -> List[Dict[str, Any]]:
        """Premium articles that will age into free content, soonest first."""
        now = utcnow()
        rows = (
            db.query(Article)
            .filter(
                Article.is_premium.is_(True),
                Article.is_permanent_premium.is_(False),
                Article.premium_release_date > now,
            )
            .order_by(Article.premium_release_date.asc(), Article.id.asc())
            .limit(limit)
            .all()
        )
        scheduled = []
        for article in rows:
            release = as_utc(article.premium_release_date)
            scheduled.append({
                "id": article.id,
                "title": article.title,
                "slug": article.slug,
                "category": article.category.value,
                "status": article.status.value,
                "releaseDate": release.isoformat(),
                "daysUntilRelease": math.ceil((release - now).total_seconds() / 86400),
            })
        return scheduled

    def process_releases(self, db: Session) -> Dict[str, Any]:
        """Turn every due, non-permanent premium article into free content.

        Each article is committed on its own so one failure does not block
        the rest; failures are reported back instead of raised.
        """
        now = utcnow()
        due = (
            db.query(Article)
            .filter(
                Article.is_premium.is_(True),
                Article.is_permanent_premium.is_(False),
                Article.premium_release_date <= now,
            )
            .order_by(Article.id.asc())
            .all()
        )
        released: List[int] = []
        errors: List[str] = []
        for article in due:
            article_id, slug, title = article.id, article.slug, article.title
            try:
                article.is_premium = False
                article.premium_release_date = None
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                logger.exception("Failed to release article %s", article_id)
                errors.append(f"{title}: {e}")
                continue
            self.articles.invalidate(slug)
            released.append(article_id)
            logger.info("Released premium article %s (%s)", article_id, slug)
        return {"released": len(released), "articleIds": released, "errors": errors}


premium_service = PremiumService(article_service, subscription_service)
