"""Admin API router: user management, platform stats and health."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from footballzone.core.access import Identity
from footballzone.core.security import auth_service, require_admin
from footballzone.db.session import get_db
from footballzone.models.article import Article, ArticleStatus
from footballzone.models.user import User
from footballzone.models.view_event import ViewEvent
from footballzone.schemas.schemas import AdminUserUpdate, Pagination, UserOut
from footballzone.services.cache_service import cache_service

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users")
async def admin_list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: Identity = Depends(require_admin),
):
    """List all users (admin only)."""
    users, total = auth_service.list_users(db, page, limit)
    return {
        "success": True,
        "data": [UserOut.model_validate(u).to_json() for u in users],
        "pagination": Pagination.build(page, limit, total).model_dump(),
    }


@router.put("/users/{user_id}")
async def admin_update_user(
    user_id: int,
    body: AdminUserUpdate,
    db: Session = Depends(get_db),
    admin: Identity = Depends(require_admin),
):
    """Update a user's role, name, or status (admin only)."""
    user = auth_service.update_user(db, user_id, body, admin.id)
    return {
        "success": True,
        "message": "User updated",
        "data": UserOut.model_validate(user).to_json(),
    }


@router.get("/stats")
async def admin_stats(
    db: Session = Depends(get_db),
    admin: Identity = Depends(require_admin),
):
    """Users by role, articles by status, recorded views."""
    users_by_role = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())
    articles_by_status = dict(
        db.query(Article.status, func.count(Article.id)).group_by(Article.status).all()
    )
    return {
        "success": True,
        "data": {
            "users": {
                "total": sum(users_by_role.values()),
                "byRole": {role.value: n for role, n in users_by_role.items()},
            },
            "articles": {
                "total": sum(articles_by_status.values()),
                "byStatus": {s.value: articles_by_status.get(s, 0) for s in ArticleStatus},
            },
            "views": db.query(func.count(ViewEvent.id)).scalar() or 0,
        },
    }


@router.get("/health")
async def admin_health(db: Session = Depends(get_db)):
    """Database and cache status."""
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        database = "unavailable"
    cache = "ok" if cache_service.health_check() else ("disabled" if not cache_service.enabled else "unavailable")
    return {
        "success": database == "ok",
        "data": {"database": database, "cache": cache},
    }
