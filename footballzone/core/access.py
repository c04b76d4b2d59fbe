"""Article access control.

Every read and write handler goes through the functions here instead of
checking roles inline.

Read decision for ``(article, requester)``:

1. Not PUBLISHED -> NOT_FOUND, except for an ADMIN or the article's author
   (single-item lookup only; listings never show unpublished work).
2. ``effective premium`` = ``is_premium`` unless ``premium_release_date`` has
   passed and the article is not ``is_permanent_premium``.
3. Not effectively premium -> FULL.
4. Entitled subscriber or ADMIN -> FULL.
5. Otherwise -> EXCERPT_ONLY.
"""

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from footballzone.core.exceptions import AuthorizationError
from footballzone.models.article import ArticleStatus
from footballzone.models.user import UserRole
from footballzone.utils.timeutil import as_utc, utcnow

AUTHOR_ROLES = frozenset({UserRole.COACH, UserRole.ADMIN})


class Access(str, enum.Enum):
    FULL = "FULL"
    EXCERPT_ONLY = "EXCERPT_ONLY"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as currently stored (not as the token says)."""
    id: int
    email: str
    role: UserRole
    name: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def is_effectively_premium(article: Any, now: Optional[datetime] = None) -> bool:
    """Premium flag after time-based release to free users."""
    if not article.is_premium:
        return False
    if article.is_permanent_premium:
        return True
    release = as_utc(article.premium_release_date)
    if release is None:
        return True
    return (now or utcnow()) < release


def can_preview(article: Any, requester: Optional[Identity]) -> bool:
    """Admins and the author may open unpublished work by slug."""
    if requester is None:
        return False
    return requester.is_admin or requester.id == article.author_id


def decide_access(
    article: Any,
    requester: Optional[Identity],
    *,
    entitled: bool = False,
    now: Optional[datetime] = None,
) -> Access:
    """Decide what ``requester`` may see of ``article``.

    ``article`` may be an ORM row or a serialized payload; only attributes are
    read. ``entitled`` says whether the requester holds an active subscription.
    """
    if article.status != ArticleStatus.PUBLISHED and not can_preview(article, requester):
        return Access.NOT_FOUND

    if not is_effectively_premium(article, now):
        return Access.FULL
    if requester is not None and (entitled or requester.is_admin):
        return Access.FULL
    return Access.EXCERPT_ONLY


def can_list_status(requester: Optional[Identity]) -> bool:
    """Only admins may list articles in a status other than PUBLISHED."""
    return requester is not None and requester.is_admin


def ensure_author_role(requester: Identity) -> None:
    """COACH or ADMIN: the roles that write and schedule content."""
    if requester.role not in AUTHOR_ROLES:
        raise AuthorizationError(
            "Access denied. Required roles: " + ", ".join(sorted(r.value for r in AUTHOR_ROLES))
        )


def ensure_can_create(requester: Identity) -> None:
    ensure_author_role(requester)


def ensure_can_modify(article: Any, requester: Identity) -> None:
    """Authors may change their own articles; admins may change any."""
    if requester.is_admin:
        return
    if requester.id == article.author_id and requester.role in AUTHOR_ROLES:
        return
    raise AuthorizationError("You do not have permission to modify this article")


def ensure_can_view_analytics(article: Any, requester: Identity) -> None:
    """The article's author or any admin."""
    if requester.is_admin or requester.id == article.author_id:
        return
    raise AuthorizationError("You do not have permission to view analytics for this article")
