"""Articles API router: listing, search, lookup, authoring, view tracking and analytics."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as SchemaValidationError
from sqlalchemy.orm import Session

from footballzone.core.access import Identity, ensure_can_view_analytics
from footballzone.core.exceptions import NotFoundError
from footballzone.core.middleware import client_ip
from footballzone.core.security import get_current_identity, get_optional_identity
from footballzone.db.session import get_db
from footballzone.models.article import ArticleStatus
from footballzone.schemas.schemas import (
    ArticleCreate, ArticleFilters, ArticleOut, ArticleUpdate,
    Pagination, SearchFilters, TrackViewRequest,
)
from footballzone.services.analytics_service import analytics_service
from footballzone.services.article_service import article_service, present
from footballzone.services.subscription_service import subscription_service
from footballzone.services.view_service import ViewEventData, ViewTracker, get_view_tracker

router = APIRouter(prefix="/articles", tags=["articles"])


def list_filters(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = None,
    zone: Optional[str] = None,
    is_premium: Optional[bool] = Query(None, alias="isPremium"),
    status_: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
) -> ArticleFilters:
    """Build the listing filter value from query parameters."""
    try:
        return ArticleFilters(
            page=page, limit=limit, category=category, zone=zone,
            is_premium=is_premium, status=status_, search=search,
            sort_by=sort_by, sort_order=sort_order,
        )
    except SchemaValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))


def search_filters(
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    zone: Optional[str] = None,
    category: Optional[str] = None,
) -> SearchFilters:
    try:
        return SearchFilters(query=q or "", page=page, limit=limit, zone=zone, category=category)
    except SchemaValidationError as e:
        raise RequestValidationError(e.errors(include_url=False, include_context=False))


def _entitled(db: Session, identity: Optional[Identity]) -> bool:
    if identity is None or identity.is_admin:
        return False
    return subscription_service.is_entitled(db, identity)


def _gated(db: Session, items, identity: Optional[Identity]) -> list:
    entitled = _entitled(db, identity)
    gated = (present(item, identity, entitled) for item in items)
    return [item.to_json() for item in gated if item is not None]


@router.get("")
async def list_articles(
    filters: ArticleFilters = Depends(list_filters),
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    """Paginated article listing. Non-admins only ever see PUBLISHED articles."""
    items, total = article_service.list_articles(db, filters, identity)
    return {
        "success": True,
        "data": _gated(db, items, identity),
        "pagination": Pagination.build(filters.page, filters.limit, total).model_dump(),
    }


@router.get("/search")
async def search_articles(
    filters: SearchFilters = Depends(search_filters),
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    """Search published articles by title and content (``q`` is required)."""
    items, total = article_service.search(db, filters)
    return {
        "success": True,
        "data": _gated(db, items, identity),
        "pagination": Pagination.build(filters.page, filters.limit, total).model_dump(),
        "query": filters.query.strip(),
    }


@router.get("/{slug}")
async def get_article(
    slug: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
    tracker: ViewTracker = Depends(get_view_tracker),
):
    """Single article by slug, gated for the caller."""
    payload = article_service.get_payload_by_slug(db, slug)
    article = present(payload, identity, _entitled(db, identity))
    if article is None:
        raise NotFoundError("Article not found")

    if article.status == ArticleStatus.PUBLISHED:
        background_tasks.add_task(tracker.count_read, article.id)
    return {"success": True, "data": article.to_json()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_article(
    body: ArticleCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Create an article (COACH or ADMIN)."""
    article = article_service.create(db, body, identity)
    return {
        "success": True,
        "message": "Article created successfully",
        "data": ArticleOut.model_validate(article).to_json(),
    }


@router.put("/{article_id}")
async def update_article(
    article_id: int,
    body: ArticleUpdate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Partial update (author or ADMIN). ``zones`` replaces the whole set."""
    article = article_service.update(db, article_id, body, identity)
    return {
        "success": True,
        "message": "Article updated successfully",
        "data": ArticleOut.model_validate(article).to_json(),
    }


@router.delete("/{article_id}")
async def delete_article(
    article_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Delete an article (author or ADMIN)."""
    article_service.delete(db, article_id, identity)
    return {"success": True, "message": "Article deleted successfully"}


@router.post("/{article_id}/track")
async def track_view(
    article_id: int,
    body: TrackViewRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    identity: Optional[Identity] = Depends(get_optional_identity),
    tracker: ViewTracker = Depends(get_view_tracker),
):
    """Record a view. Always succeeds; storage happens after the response."""
    event = ViewEventData(
        article_id=article_id,
        session_id=body.session_id,
        user_id=identity.id if identity else None,
        view_duration=body.view_duration,
        completion_percent=body.completion_percent,
        referrer=body.referrer or request.headers.get("referer"),
        device_type=body.device_type,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    background_tasks.add_task(tracker.track, event)
    return {"success": True, "message": "View tracked"}


@router.get("/{article_id}/analytics")
async def article_analytics(
    article_id: int,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """View statistics for one article (its author or ADMIN)."""
    article = article_service.get(db, article_id)
    ensure_can_view_analytics(article, identity)
    return {
        "success": True,
        "data": analytics_service.article_analytics(db, article, start_date, end_date),
    }
