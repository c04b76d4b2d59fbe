"""Auth service: registration, login, token refresh, user management."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from footballzone.core.config import Settings
from footballzone.core.exceptions import (
    AccountLockedError, AuthenticationError, AuthorizationError,
    ConflictError, NotFoundError, ValidationError,
)
from footballzone.core.passwords import PasswordService
from footballzone.core.tokens import AccessClaims, TokenService
from footballzone.models.user import User, UserRole
from footballzone.schemas.schemas import AdminUserUpdate, ProfileUpdate, RegisterRequest
from footballzone.utils.timeutil import as_utc, utcnow

logger = logging.getLogger("footballzone.auth")

INVALID_CREDENTIALS = "Invalid email or password"


def claims_for(user: User) -> AccessClaims:
    return AccessClaims(user_id=user.id, email=user.email, role=user.role, name=user.name)


class AuthService:
    """Handles authentication and user management."""

    def __init__(self, settings: Settings, passwords: PasswordService, tokens: TokenService):
        self.passwords = passwords
        self.tokens = tokens
        self.max_attempts = settings.MAX_LOGIN_ATTEMPTS
        self.lock_duration = timedelta(minutes=settings.LOGIN_LOCK_MINUTES)

    def _token_bundle(self, user: User) -> Dict[str, Any]:
        access, refresh, expires_at = self.tokens.issue_pair(claims_for(user), user.token_version)
        return {"access_token": access, "refresh_token": refresh, "expires_at": expires_at}

    @staticmethod
    def _find_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email.strip().lower()).first()

    def create_user(
        self,
        db: Session,
        email: str,
        password: str,
        name: str,
        role: UserRole = UserRole.FREE,
        accepted_terms_at: Optional[datetime] = None,
        **profile: Any,
    ) -> User:
        """Create a new user after checking password strength and uniqueness."""
        email = email.strip().lower()
        strength = self.passwords.validate_strength(password)
        if not strength.valid:
            raise ValidationError("; ".join(strength.errors))
        if self._find_by_email(db, email):
            raise ConflictError("User with this email already exists")

        user = User(
            email=email,
            password_hash=self.passwords.hash(password),
            name=name.strip(),
            role=role,
            is_active=True,
            accepted_terms_at=accepted_terms_at,
            **profile,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("User %s registered as %s", user.id, user.role.value)
        return user

    def register(self, db: Session, data: RegisterRequest) -> Tuple[User, Dict[str, Any]]:
        """Self-service signup. New users always start as FREE."""
        if not data.accept_terms:
            raise ValidationError("You must accept the terms and conditions")
        user = self.create_user(
            db,
            email=data.email,
            password=data.password,
            name=data.name,
            accepted_terms_at=utcnow(),
            avatar_url=data.avatar_url,
            bio=data.bio,
        )
        return user, self._token_bundle(user)

    def _register_failure(self, db: Session, user: User) -> None:
        user.login_attempts = (user.login_attempts or 0) + 1
        if user.login_attempts >= self.max_attempts:
            user.locked_until = utcnow() + self.lock_duration
            user.login_attempts = 0
            logger.warning("User %s locked after %s failed logins", user.id, self.max_attempts)
        db.commit()

    def authenticate(self, db: Session, email: str, password: str) -> Tuple[User, Dict[str, Any]]:
        """Check credentials and return the user with a fresh token pair.

        Raises:
            AuthenticationError: unknown email or wrong password.
            AccountLockedError: too many recent failures.
            AuthorizationError: the account is deactivated.
        """
        user = self._find_by_email(db, email)
        if not user:
            raise AuthenticationError(INVALID_CREDENTIALS)

        now = utcnow()
        locked_until = as_utc(user.locked_until)
        if locked_until and locked_until > now:
            minutes = max(1, int((locked_until - now).total_seconds() // 60) + 1)
            raise AccountLockedError(f"Account is locked. Try again in {minutes} minutes")

        if not self.passwords.verify(password, user.password_hash):
            self._register_failure(db, user)
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not user.is_active:
            raise AuthorizationError("Account is deactivated")

        if self.passwords.needs_rehash(user.password_hash):
            user.password_hash = self.passwords.hash(password)
            logger.info("Rehashed password of user %s", user.id)

        user.login_attempts = 0
        user.locked_until = None
        user.last_login_at = now
        db.commit()
        db.refresh(user)
        return user, self._token_bundle(user)

    def refresh(self, db: Session, refresh_token: str) -> Dict[str, Any]:
        """Trade a refresh token for a new pair.

        Role and email always come from the stored user, never the token.
        """
        claims = self.tokens.verify_refresh_token(refresh_token)
        user = db.get(User, claims.user_id)
        if not user or not user.is_active:
            raise AuthenticationError("User not found or deactivated")
        if claims.token_version is not None and claims.token_version != user.token_version:
            raise AuthenticationError("Refresh token has been revoked")
        return self._token_bundle(user)

    @staticmethod
    def logout(db: Session, user_id: int, logout_all: bool = False) -> None:
        """Bumping ``token_version`` invalidates every outstanding refresh token."""
        if not logout_all:
            return
        user = db.get(User, user_id)
        if user:
            user.token_version = (user.token_version or 0) + 1
            db.commit()
            logger.info("User %s logged out of all sessions", user_id)

    def change_password(self, db: Session, user_id: int, current_password: str, new_password: str) -> Dict[str, Any]:
        """Replace the password and revoke every outstanding refresh token.

        Returns a fresh token pair so the calling session stays signed in.
        """
        user = self.get_user(db, user_id)
        if not self.passwords.verify(current_password, user.password_hash):
            raise ValidationError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must be different from the current password")
        strength = self.passwords.validate_strength(new_password)
        if not strength.valid:
            raise ValidationError("; ".join(strength.errors))

        user.password_hash = self.passwords.hash(new_password)
        user.token_version = (user.token_version or 0) + 1
        db.commit()
        db.refresh(user)
        logger.info("User %s changed password", user.id)
        return self._token_bundle(user)

    def update_profile(self, db: Session, user_id: int, data: ProfileUpdate) -> User:
        """Name, avatar and bio. ``null`` clears avatar and bio; a null name is ignored."""
        user = self.get_user(db, user_id)
        changes = data.model_dump(exclude_unset=True)
        if changes.get("name") is None:
            changes.pop("name", None)
        else:
            changes["name"] = changes["name"].strip()
        for key, value in changes.items():
            setattr(user, key, value)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def get_user(db: Session, user_id: int) -> User:
        """Get a user by id."""
        user = db.get(User, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    def list_users(db: Session, page: int = 1, limit: int = 20) -> Tuple[List[User], int]:
        """List all users with pagination."""
        total = db.query(User).count()
        users = (
            db.query(User)
            .order_by(User.created_at.desc(), User.id.asc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return users, total

    def update_user(self, db: Session, user_id: int, data: AdminUserUpdate, admin_id: int) -> User:
        """Administrative change of name, role or active flag."""
        user = self.get_user(db, user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if user.id == admin_id and (
            changes.get("role", UserRole.ADMIN) != UserRole.ADMIN or changes.get("is_active") is False
        ):
            raise ValidationError("Administrators cannot demote or deactivate themselves")
        for key, value in changes.items():
            setattr(user, key, value)
        db.commit()
        db.refresh(user)
        logger.info("Admin %s updated user %s: %s", admin_id, user_id, sorted(changes))
        return user
