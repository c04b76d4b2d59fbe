"""User model."""

import enum

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Enum, func
from sqlalchemy.orm import relationship

from footballzone.db.base import Base


class UserRole(str, enum.Enum):
    FREE = "FREE"
    PLAYER = "PLAYER"
    COACH = "COACH"
    PARENT = "PARENT"
    ADMIN = "ADMIN"


class User(Base):
    """Platform user. Holds exactly one role at a time."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.FREE)
    avatar_url = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)
    token_version = Column(Integer, default=0, nullable=False)  # bumped by logout-all
    login_attempts = Column(Integer, default=0, nullable=False)
    locked_until = Column(DateTime(timezone=True), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    accepted_terms_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    articles = relationship("Article", back_populates="author", lazy="dynamic")
    subscriptions = relationship(
        "Subscription", back_populates="user", lazy="selectin", cascade="all, delete-orphan"
    )
