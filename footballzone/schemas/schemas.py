"""Pydantic schemas for API request/response serialization.

Wire format is camelCase (``isPremium``, ``sortBy``...); Python code uses
snake_case field names and the aliases are generated.
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from footballzone.core.access import Access
from footballzone.models.article import ArticleCategory, ArticleStatus, ZoneType
from footballzone.models.subscription import SubscriptionStatus
from footballzone.models.user import UserRole

MAX_ZONES = 5
NAME_PATTERN = r"^[a-zA-ZàáâäčđèéêëìíîïñòóôöšüùúûýžА-Яа-яЁёЍѝ\s'-]+$"
SLUG_PATTERN = r"^[a-z0-9-]+$"
URL_PATTERN = r"^https?://\S+$"

SortField = Literal["createdAt", "updatedAt", "title", "publishedAt", "viewCount", "customOrder"]
SortOrder = Literal["asc", "desc"]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


def _upper(value: Any) -> Any:
    return value.upper() if isinstance(value, str) else value


# ---- Auth ----
class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)
    name: str = Field(..., min_length=2, max_length=100, pattern=NAME_PATTERN)
    accept_terms: bool
    avatar_url: Optional[str] = Field(None, pattern=URL_PATTERN)
    bio: Optional[str] = Field(None, max_length=500)


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(CamelModel):
    logout_all: bool = False


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=256)


class ProfileUpdate(CamelModel):
    """Self-service profile edit; role and status are admin-only."""
    name: Optional[str] = Field(None, min_length=2, max_length=100, pattern=NAME_PATTERN)
    avatar_url: Optional[str] = Field(None, pattern=URL_PATTERN)
    bio: Optional[str] = Field(None, max_length=500)


# ---- User ----
class UserOut(CamelModel):
    id: int
    email: str
    name: str
    role: UserRole
    is_active: bool = True
    email_verified: bool = False
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None


class AuthorOut(CamelModel):
    id: int
    name: str
    avatar_url: Optional[str] = None


class AdminUserUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    role: Optional[UserRole] = None
    is_active: Optional[bool] = None

    @field_validator("role", mode="before")
    @classmethod
    def _role_upper(cls, value):
        return _upper(value)


# ---- Zones ----
class ZoneSettingIn(CamelModel):
    zone: ZoneType
    visible: bool = True
    requires_subscription: bool = False
    free_after_date: Optional[datetime] = None

    @field_validator("zone", mode="before")
    @classmethod
    def _zone_upper(cls, value):
        return _upper(value)


class ZoneSettingOut(CamelModel):
    zone: ZoneType
    visible: bool
    requires_subscription: bool
    free_after_date: Optional[datetime] = None


def _check_zones(zones: Optional[List[ZoneSettingIn]]) -> Optional[List[ZoneSettingIn]]:
    if zones is None:
        return zones
    seen = [z.zone for z in zones]
    if len(seen) != len(set(seen)):
        raise ValueError("the same zone may not be listed twice")
    return zones


# ---- Article ----
class ArticleCreate(CamelModel):
    title: str = Field(..., min_length=3, max_length=255)
    slug: Optional[str] = Field(None, min_length=3, max_length=255, pattern=SLUG_PATTERN)
    excerpt: Optional[str] = Field(None, max_length=500)
    content: str = Field(..., min_length=10)
    featured_image_url: Optional[str] = Field(None, pattern=URL_PATTERN)
    category: ArticleCategory
    subcategory: Optional[str] = Field(None, max_length=100)
    tags: List[str] = []
    read_time: int = Field(5, ge=1, le=240)
    is_premium: bool = False
    premium_release_date: Optional[datetime] = None
    is_permanent_premium: bool = False
    is_featured: bool = False
    custom_order: Optional[int] = None
    status: ArticleStatus = ArticleStatus.DRAFT
    seo_title: Optional[str] = Field(None, max_length=255)
    seo_description: Optional[str] = Field(None, max_length=320)
    zones: List[ZoneSettingIn] = Field(..., min_length=1, max_length=MAX_ZONES)

    @field_validator("category", "status", mode="before")
    @classmethod
    def _category_upper(cls, value):
        return _upper(value)

    @field_validator("zones")
    @classmethod
    def _zones_unique(cls, value):
        return _check_zones(value)


class ArticleUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    slug: Optional[str] = Field(None, min_length=3, max_length=255, pattern=SLUG_PATTERN)
    excerpt: Optional[str] = Field(None, max_length=500)
    content: Optional[str] = Field(None, min_length=10)
    featured_image_url: Optional[str] = Field(None, pattern=URL_PATTERN)
    category: Optional[ArticleCategory] = None
    subcategory: Optional[str] = Field(None, max_length=100)
    tags: Optional[List[str]] = None
    read_time: Optional[int] = Field(None, ge=1, le=240)
    is_premium: Optional[bool] = None
    premium_release_date: Optional[datetime] = None
    is_permanent_premium: Optional[bool] = None
    is_featured: Optional[bool] = None
    custom_order: Optional[int] = None
    status: Optional[ArticleStatus] = None
    seo_title: Optional[str] = Field(None, max_length=255)
    seo_description: Optional[str] = Field(None, max_length=320)
    zones: Optional[List[ZoneSettingIn]] = Field(None, min_length=1, max_length=MAX_ZONES)

    @field_validator("category", "status", mode="before")
    @classmethod
    def _category_upper(cls, value):
        return _upper(value)

    @field_validator("zones")
    @classmethod
    def _zones_unique(cls, value):
        return _check_zones(value)


class ArticleOut(CamelModel):
    id: int
    slug: str
    title: str
    excerpt: Optional[str] = None
    content: Optional[str] = None
    featured_image_url: Optional[str] = None
    category: ArticleCategory
    subcategory: Optional[str] = None
    tags: List[str] = []
    status: ArticleStatus
    is_premium: bool
    is_permanent_premium: bool
    premium_release_date: Optional[datetime] = None
    is_featured: bool = False
    read_time: int
    custom_order: Optional[int] = None
    view_count: int = 0
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    author_id: int
    author: Optional[AuthorOut] = None
    zones: List[ZoneSettingOut] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    published_at: Optional[datetime] = None
    access: Access = Access.FULL
    requires_subscription: bool = False


# ---- Query / filters ----
class ArticleFilters(BaseModel):
    """Listing request. Every filter is optional; absent means "do not filter"."""
    model_config = ConfigDict(frozen=True)

    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    category: Optional[ArticleCategory] = None
    zone: Optional[ZoneType] = None
    is_premium: Optional[bool] = None
    status: Optional[ArticleStatus] = None
    search: Optional[str] = None
    sort_by: SortField = "createdAt"
    sort_order: SortOrder = "desc"

    @field_validator("category", "zone", "status", mode="before")
    @classmethod
    def _enum_upper(cls, value):
        return _upper(value)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def cache_key(self, prefix: str) -> str:
        return f"{prefix}:{self.model_dump_json()}"


class SearchFilters(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)
    zone: Optional[ZoneType] = None
    category: Optional[ArticleCategory] = None

    @field_validator("category", "zone", mode="before")
    @classmethod
    def _enum_upper(cls, value):
        return _upper(value)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def cache_key(self, prefix: str) -> str:
        return f"{prefix}:{self.model_dump_json()}"


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=math.ceil(total / limit))


# ---- Premium ----
class SubscriptionOut(CamelModel):
    id: int
    plan_id: str
    status: SubscriptionStatus
    current_period_start: datetime
    current_period_end: datetime
    cancel_at_period_end: bool = False
    is_active: bool = False
    days_remaining: int = 0


# ---- View tracking ----
class TrackViewRequest(CamelModel):
    session_id: str = Field(..., min_length=1, max_length=255)
    view_duration: Optional[int] = Field(None, ge=0)
    completion_percent: int = 0
    referrer: Optional[str] = Field(None, max_length=500)
    device_type: Optional[str] = Field(None, max_length=20)

    @field_validator("completion_percent", mode="before")
    @classmethod
    def _default_percent(cls, value: Any) -> Any:
        return 0 if value is None else value
