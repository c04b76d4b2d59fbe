from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from footballzone.core.access import (
    Access, Identity, decide_access, ensure_author_role, ensure_can_create,
    ensure_can_modify, ensure_can_view_analytics, is_effectively_premium,
)
from footballzone.core.exceptions import AuthorizationError
from footballzone.models.article import ArticleStatus
from footballzone.models.user import UserRole

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

ADMIN = Identity(id=1, email="admin@footballzone.bg", role=UserRole.ADMIN, name="Админ")
AUTHOR = Identity(id=2, email="coach@footballzone.bg", role=UserRole.COACH, name="Треньор")
READER = Identity(id=3, email="player@footballzone.bg", role=UserRole.PLAYER, name="Играч")


def article(**overrides):
    values = dict(
        status=ArticleStatus.PUBLISHED,
        is_premium=False,
        is_permanent_premium=False,
        premium_release_date=None,
        author_id=AUTHOR.id,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.mark.parametrize("status", [ArticleStatus.DRAFT, ArticleStatus.ARCHIVED])
def test_unpublished_is_hidden_from_everyone_but_author_and_admin(status):
    draft = article(status=status)
    assert decide_access(draft, None, now=NOW) is Access.NOT_FOUND
    assert decide_access(draft, READER, now=NOW) is Access.NOT_FOUND
    assert decide_access(draft, AUTHOR, now=NOW) is Access.FULL
    assert decide_access(draft, ADMIN, now=NOW) is Access.FULL


def test_free_article_is_full_for_anonymous():
    assert decide_access(article(), None, now=NOW) is Access.FULL


def test_premium_article_is_excerpt_only_without_entitlement():
    premium = article(is_premium=True)
    assert decide_access(premium, None, now=NOW) is Access.EXCERPT_ONLY
    assert decide_access(premium, READER, now=NOW) is Access.EXCERPT_ONLY


def test_entitlement_or_admin_unlocks_premium():
    premium = article(is_premium=True)
    assert decide_access(premium, READER, entitled=True, now=NOW) is Access.FULL
    assert decide_access(premium, ADMIN, now=NOW) is Access.FULL


def test_entitlement_needs_an_identity():
    assert decide_access(article(is_premium=True), None, entitled=True, now=NOW) is Access.EXCERPT_ONLY


def test_released_premium_ages_into_free():
    released = article(is_premium=True, premium_release_date=NOW - timedelta(days=1))
    assert is_effectively_premium(released, NOW) is False
    assert decide_access(released, None, now=NOW) is Access.FULL


def test_release_date_in_future_keeps_premium():
    pending = article(is_premium=True, premium_release_date=NOW + timedelta(days=1))
    assert decide_access(pending, None, now=NOW) is Access.EXCERPT_ONLY


def test_release_boundary_is_inclusive():
    assert is_effectively_premium(article(is_premium=True, premium_release_date=NOW), NOW) is False


def test_permanent_premium_never_ages():
    evergreen = article(
        is_premium=True,
        is_permanent_premium=True,
        premium_release_date=NOW - timedelta(days=365),
    )
    assert decide_access(evergreen, None, now=NOW) is Access.EXCERPT_ONLY
    assert decide_access(evergreen, READER, now=NOW) is Access.EXCERPT_ONLY


def test_naive_release_date_is_read_as_utc():
    naive = article(is_premium=True, premium_release_date=datetime(2024, 5, 1))
    assert is_effectively_premium(naive, NOW) is False


def test_only_coaches_and_admins_create():
    ensure_can_create(AUTHOR)
    ensure_can_create(ADMIN)
    with pytest.raises(AuthorizationError):
        ensure_can_create(READER)


def test_modify_requires_ownership_or_admin():
    own = article(author_id=AUTHOR.id)
    ensure_can_modify(own, AUTHOR)
    ensure_can_modify(own, ADMIN)
    with pytest.raises(AuthorizationError):
        ensure_can_modify(own, Identity(id=9, email="c2@footballzone.bg", role=UserRole.COACH, name="Друг"))


def test_demoted_author_loses_modify_rights():
    demoted = Identity(id=AUTHOR.id, email=AUTHOR.email, role=UserRole.FREE, name=AUTHOR.name)
    with pytest.raises(AuthorizationError):
        ensure_can_modify(article(author_id=AUTHOR.id), demoted)


def test_author_role_names_the_required_roles():
    ensure_author_role(AUTHOR)
    with pytest.raises(AuthorizationError) as exc:
        ensure_author_role(READER)
    assert exc.value.message == "Access denied. Required roles: ADMIN, COACH"
    assert exc.value.status_code == 403


def test_analytics_visible_to_author_and_admin():
    own = article(author_id=AUTHOR.id)
    ensure_can_view_analytics(own, AUTHOR)
    ensure_can_view_analytics(own, ADMIN)
    with pytest.raises(AuthorizationError):
        ensure_can_view_analytics(own, READER)
