"""Article service: filtered listing, search, lookup and authoring."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from footballzone.core.access import (
    Access, Identity, can_list_status, decide_access,
    ensure_can_create, ensure_can_modify,
)
from footballzone.core.config import Settings, settings
from footballzone.core.exceptions import ConflictError, NotFoundError, ValidationError
from footballzone.models.article import (
    Article, ArticleStatus, ArticleZoneSetting,
)
from footballzone.schemas.schemas import (
    ArticleCreate, ArticleFilters, ArticleOut, ArticleUpdate, SearchFilters,
)
from footballzone.services.cache_service import CacheService, cache_service
from footballzone.utils.slug import generate_slug, make_excerpt, unique_slug
from footballzone.utils.timeutil import utcnow

logger = logging.getLogger("footballzone.articles")

# optional columns an update may reset to NULL; null for any other field is ignored
CLEARABLE_FIELDS = frozenset({
    "excerpt", "featured_image_url", "subcategory", "premium_release_date",
    "custom_order", "seo_title", "seo_description",
})

SORT_COLUMNS = {
    "createdAt": Article.created_at,
    "updatedAt": Article.updated_at,
    "title": Article.title,
    "publishedAt": Article.published_at,
    "viewCount": Article.view_count,
}

# NULL custom_order sorts after every explicit position in both directions
_CUSTOM_ORDER_LAST_ASC = 1_000_000_000
_CUSTOM_ORDER_LAST_DESC = -1_000_000_000


def _order_by(sort_by: str, sort_order: str) -> list:
    if sort_by == "customOrder":
        sentinel = _CUSTOM_ORDER_LAST_ASC if sort_order == "asc" else _CUSTOM_ORDER_LAST_DESC
        column = func.coalesce(Article.custom_order, sentinel)
    else:
        column = SORT_COLUMNS.get(sort_by, Article.created_at)
    primary = column.asc() if sort_order == "asc" else column.desc()
    # id breaks ties so pages never overlap or skip rows
    return [primary, Article.id.asc()]


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _text_match(term: str):
    pattern = _like_pattern(term)
    return or_(
        Article.title.ilike(pattern, escape="\\"),
        Article.content.ilike(pattern, escape="\\"),
    )


def _visible_in_zone(zone):
    return Article.zones.any(
        and_(ArticleZoneSetting.zone == zone, ArticleZoneSetting.visible.is_(True))
    )


def present(
    payload: ArticleOut,
    requester: Optional[Identity],
    entitled: bool = False,
) -> Optional[ArticleOut]:
    """Apply the access decision to a payload; ``None`` means "not found"."""
    decision = decide_access(payload, requester, entitled=entitled)
    if decision is Access.NOT_FOUND:
        return None
    excerpt = payload.excerpt or make_excerpt(payload.content or "")
    if decision is Access.EXCERPT_ONLY:
        return payload.model_copy(update={
            "content": None,
            "excerpt": excerpt,
            "access": decision,
            "requires_subscription": True,
        })
    return payload.model_copy(update={"excerpt": excerpt, "access": decision})


class ArticleService:
    """Reads go through the cache; writes invalidate it."""

    def __init__(self, cache: CacheService, settings: Settings):
        self.cache = cache
        self.article_ttl = settings.CACHE_TTL_ARTICLE_SECONDS
        self.list_ttl = settings.CACHE_TTL_LIST_SECONDS
        self.search_ttl = settings.CACHE_TTL_SEARCH_SECONDS

    # ---- reads ----

    @staticmethod
    def get(db: Session, article_id: int) -> Article:
        """Get an article by id."""
        article = db.query(Article).filter(Article.id == article_id).first()
        if not article:
            raise NotFoundError("Article not found")
        return article

    def get_payload_by_slug(self, db: Session, slug: str) -> ArticleOut:
        """Ungated payload of the article with ``slug`` (any status)."""
        cache_key = f"article:{slug}"
        cached = self.cache.get_json(cache_key)
        if cached:
            return ArticleOut.model_validate(cached)

        article = db.query(Article).filter(Article.slug == slug).first()
        if not article:
            raise NotFoundError("Article not found")
        payload = ArticleOut.model_validate(article)
        self.cache.set_json(cache_key, payload.to_json(), self.article_ttl)
        return payload

    def list_articles(
        self,
        db: Session,
        filters: ArticleFilters,
        requester: Optional[Identity] = None,
    ) -> Tuple[List[ArticleOut], int]:
        """Filtered, sorted, paginated listing. Returns ``(items, total)``.

        Only admins may ask for a status other than PUBLISHED; for everyone
        else the status filter is forced to PUBLISHED.
        """
        status = filters.status if can_list_status(requester) and filters.status else ArticleStatus.PUBLISHED
        filters = filters.model_copy(update={"status": status})

        cache_key = filters.cache_key("articles")
        cached = self.cache.get_json(cache_key)
        if cached:
            return [ArticleOut.model_validate(d) for d in cached["items"]], cached["total"]

        query = db.query(Article).filter(Article.status == status)
        if filters.category:
            query = query.filter(Article.category == filters.category)
        if filters.is_premium is not None:
            query = query.filter(Article.is_premium.is_(filters.is_premium))
        if filters.zone:
            query = query.filter(_visible_in_zone(filters.zone))
        if filters.search and filters.search.strip():
            query = query.filter(_text_match(filters.search.strip()))

        total = query.count()
        rows = (
            query.order_by(*_order_by(filters.sort_by, filters.sort_order))
            .offset(filters.offset)
            .limit(filters.limit)
            .all()
        )
        items = [ArticleOut.model_validate(a) for a in rows]

        self.cache.set_json(
            cache_key,
            {"items": [i.to_json() for i in items], "total": total},
            self.list_ttl,
        )
        return items, total

    def search(self, db: Session, filters: SearchFilters) -> Tuple[List[ArticleOut], int]:
        """Full-text-ish search over published titles and bodies."""
        term = (filters.query or "").strip()
        if not term:
            raise ValidationError("Search query required")

        cache_key = filters.cache_key("search")
        cached = self.cache.get_json(cache_key)
        if cached:
            return [ArticleOut.model_validate(d) for d in cached["items"]], cached["total"]

        query = db.query(Article).filter(
            Article.status == ArticleStatus.PUBLISHED,
            _text_match(term),
        )
        if filters.category:
            query = query.filter(Article.category == filters.category)
        if filters.zone:
            query = query.filter(_visible_in_zone(filters.zone))

        total = query.count()
        rows = (
            query.order_by(Article.is_featured.desc(), Article.created_at.desc(), Article.id.asc())
            .offset(filters.offset)
            .limit(filters.limit)
            .all()
        )
        items = [ArticleOut.model_validate(a) for a in rows]

        self.cache.set_json(
            cache_key,
            {"items": [i.to_json() for i in items], "total": total},
            self.search_ttl,
        )
        return items, total

    # ---- writes ----

    @staticmethod
    def _slug_taken(db: Session, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(Article.id).filter(Article.slug == slug)
        if exclude_id is not None:
            query = query.filter(Article.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def _zone_rows(zones: List[Dict[str, Any]]) -> List[ArticleZoneSetting]:
        return [ArticleZoneSetting(**z) for z in zones]

    def _commit(self, db: Session, slug: str) -> None:
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise ConflictError(f"Article with slug '{slug}' already exists") from e

    def invalidate(self, *slugs: str) -> None:
        """Drop every cached listing and search page plus the given articles."""
        self.cache.invalidate_pattern("articles:*")
        self.cache.invalidate_pattern("search:*")
        for slug in slugs:
            self.cache.delete(f"article:{slug}")

    def create(self, db: Session, data: ArticleCreate, author: Identity) -> Article:
        """Create an article owned by ``author`` (COACH or ADMIN)."""
        ensure_can_create(author)

        fields = data.model_dump(exclude={"zones", "slug"})
        if data.slug:
            if self._slug_taken(db, data.slug):
                raise ConflictError(f"Article with slug '{data.slug}' already exists")
            slug = data.slug
        else:
            slug = unique_slug(generate_slug(data.title), lambda s: self._slug_taken(db, s))

        article = Article(slug=slug, author_id=author.id, **fields)
        article.zones = self._zone_rows([z.model_dump() for z in data.zones])
        if article.status == ArticleStatus.PUBLISHED:
            article.published_at = utcnow()

        db.add(article)
        self._commit(db, slug)
        db.refresh(article)
        self.invalidate(slug)
        logger.info("Article %s (%s) created by user %s", article.id, slug, author.id)
        return article

    def update(self, db: Session, article_id: int, data: ArticleUpdate, requester: Identity) -> Article:
        """Partial update by the author or an admin. Last write wins."""
        article = self.get(db, article_id)
        ensure_can_modify(article, requester)

        old_slug = article.slug
        changes = data.model_dump(exclude_unset=True)
        zones = changes.pop("zones", None)

        new_slug = changes.get("slug")
        if new_slug and new_slug != old_slug and self._slug_taken(db, new_slug, exclude_id=article.id):
            raise ConflictError(f"Article with slug '{new_slug}' already exists")

        for key, value in changes.items():
            if key == "tags" and value is None:
                value = []
            elif value is None and key not in CLEARABLE_FIELDS:
                continue
            setattr(article, key, value)

        if article.status == ArticleStatus.PUBLISHED and article.published_at is None:
            article.published_at = utcnow()

        if zones is not None:
            # flush the removals first so re-added zones do not hit uq_article_zone
            article.zones.clear()
            db.flush()
            article.zones.extend(self._zone_rows(zones))

        self._commit(db, article.slug)
        db.refresh(article)
        self.invalidate(old_slug, article.slug)
        logger.info("Article %s updated by user %s", article.id, requester.id)
        return article

    def delete(self, db: Session, article_id: int, requester: Identity) -> None:
        """Physically delete an article (author or admin)."""
        article = self.get(db, article_id)
        ensure_can_modify(article, requester)
        slug = article.slug
        db.delete(article)
        db.commit()
        self.invalidate(slug)
        logger.info("Article %s (%s) deleted by user %s", article_id, slug, requester.id)


article_service = ArticleService(cache_service, settings)
