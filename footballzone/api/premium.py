"""Premium API router: access checks, previews, subscription and releases."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from footballzone.core.access import Identity, ensure_author_role
from footballzone.core.security import get_current_identity, get_optional_identity, require_admin
from footballzone.db.session import get_db
from footballzone.services.premium_service import premium_service

router = APIRouter(prefix="/premium", tags=["premium"])


@router.get("/content/{article_id}/access")
async def check_content_access(
    article_id: int,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    """Whether the caller may read the full article, and why."""
    return {"success": True, "data": premium_service.check_access(db, article_id, identity)}


@router.get("/content/{article_id}/preview")
async def content_preview(
    article_id: int,
    db: Session = Depends(get_db),
    identity: Optional[Identity] = Depends(get_optional_identity),
):
    return {"success": True, "data": premium_service.preview(db, article_id, identity)}


@router.get("/subscription")
async def my_subscription(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """The caller's current subscription, or ``null``."""
    return {"success": True, "data": premium_service.current_subscription(db, identity.id)}


@router.get("/scheduled")
async def scheduled_releases(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Upcoming premium-to-free releases (COACH or ADMIN)."""
    ensure_author_role(identity)
    return {"success": True, "data": premium_service.scheduled_releases(db, limit)}


@router.post("/releases/process")
async def process_releases(
    db: Session = Depends(get_db),
    admin: Identity = Depends(require_admin),
):
    """Release every premium article whose date has passed (ADMIN only)."""
    result = premium_service.process_releases(db)
    return {
        "success": not result["errors"],
        "message": f"Released {result['released']} articles",
        "data": result,
    }
