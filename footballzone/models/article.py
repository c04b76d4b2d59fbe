"""Article and per-zone visibility models."""

import enum

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, JSON,
    ForeignKey, Enum, UniqueConstraint, Index, func
)
from sqlalchemy.orm import relationship

from footballzone.db.base import Base


class ArticleStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ARCHIVED = "ARCHIVED"


class ArticleCategory(str, enum.Enum):
    TACTICS = "TACTICS"
    TECHNIQUE = "TECHNIQUE"
    TRAINING = "TRAINING"
    FITNESS = "FITNESS"
    CONDITIONING = "CONDITIONING"
    PSYCHOLOGY = "PSYCHOLOGY"
    NUTRITION = "NUTRITION"
    INJURY_PREVENTION = "INJURY_PREVENTION"
    COACHING = "COACHING"
    YOUTH_DEVELOPMENT = "YOUTH_DEVELOPMENT"
    PERIODIZATION = "PERIODIZATION"
    MANAGEMENT = "MANAGEMENT"
    EQUIPMENT = "EQUIPMENT"
    RULES = "RULES"
    NEWS = "NEWS"
    INTERVIEWS = "INTERVIEWS"
    ANALYSIS = "ANALYSIS"
    OTHER = "OTHER"


class ZoneType(str, enum.Enum):
    READ = "READ"
    COACH = "COACH"
    PLAYER = "PLAYER"
    PARENT = "PARENT"
    SERIES = "SERIES"


class Article(Base):
    """A piece of content published into one or more zones."""
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(255), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    excerpt = Column(String(500), nullable=True)
    content = Column(Text, nullable=False)
    featured_image_url = Column(String(500), nullable=True)
    category = Column(Enum(ArticleCategory), nullable=False, index=True)
    subcategory = Column(String(100), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    status = Column(Enum(ArticleStatus), nullable=False, default=ArticleStatus.DRAFT, index=True)
    is_premium = Column(Boolean, default=False, nullable=False)
    is_permanent_premium = Column(Boolean, default=False, nullable=False)
    premium_release_date = Column(DateTime(timezone=True), nullable=True)
    is_featured = Column(Boolean, default=False, nullable=False)
    read_time = Column(Integer, nullable=False, default=5)  # minutes
    custom_order = Column(Integer, nullable=True)
    view_count = Column(Integer, nullable=False, default=0)
    seo_title = Column(String(255), nullable=True)
    seo_description = Column(String(320), nullable=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=True)

    author = relationship("User", back_populates="articles", lazy="joined")
    zones = relationship(
        "ArticleZoneSetting",
        back_populates="article",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ArticleZoneSetting.id",
    )

    __table_args__ = (
        Index("ix_articles_status_created_at", "status", "created_at"),
    )


class ArticleZoneSetting(Base):
    """Visibility and subscription settings of an article inside one zone."""
    __tablename__ = "article_zone_settings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    article_id = Column(Integer, ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True)
    zone = Column(Enum(ZoneType), nullable=False)
    visible = Column(Boolean, default=True, nullable=False)
    requires_subscription = Column(Boolean, default=False, nullable=False)
    free_after_date = Column(DateTime(timezone=True), nullable=True)

    article = relationship("Article", back_populates="zones")

    __table_args__ = (
        UniqueConstraint("article_id", "zone", name="uq_article_zone"),
    )
