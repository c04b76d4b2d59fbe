import math
from datetime import datetime, timedelta, timezone

import pytest

from footballzone.core.config import Settings
from footballzone.models import (
    Article, ArticleCategory, ArticleStatus, ArticleZoneSetting, SubscriptionStatus,
    UserRole, ZoneType,
)
from footballzone.schemas.schemas import ArticleFilters, SearchFilters
from footballzone.services.article_service import ArticleService, article_service
from footballzone.services.cache_service import CacheService

API = "/api/v1/articles"


@pytest.fixture()
def coach(make_user):
    return make_user(UserRole.COACH, email="coach@footballzone.bg")


@pytest.fixture()
def admin(make_user):
    return make_user(UserRole.ADMIN, email="admin@footballzone.bg")


# ---- listing ----

def test_pagination_counts_after_filtering(client, coach, make_article):
    for _ in range(23):
        make_article(coach)
    for _ in range(4):
        make_article(coach, category=ArticleCategory.NUTRITION)

    body = client.get(API, params={"page": 3, "limit": 10}).json()
    assert body["success"] is True
    assert len(body["data"]) == 7
    assert body["pagination"] == {"page": 3, "limit": 10, "total": 27, "pages": 3}

    body = client.get(API, params={"category": "nutrition", "limit": 3}).json()
    assert body["pagination"]["total"] == 4
    assert body["pagination"]["pages"] == math.ceil(4 / 3)


def test_page_past_the_end_is_empty(client, coach, make_article):
    make_article(coach)
    body = client.get(API, params={"page": 5}).json()
    assert body["data"] == []
    assert body["pagination"]["total"] == 1


@pytest.mark.parametrize("params", [{"page": 0}, {"limit": 101}, {"sortBy": "random"}, {"category": "GOSSIP"}])
def test_invalid_listing_parameters(client, params):
    resp = client.get(API, params=params)
    assert resp.status_code == 400
    assert resp.json()["error"]["message"].startswith("Validation Error")


def test_unpublished_articles_never_listed_for_non_admins(client, coach, admin, make_article, auth_header):
    published = make_article(coach)
    make_article(coach, status=ArticleStatus.DRAFT)
    make_article(coach, status=ArticleStatus.ARCHIVED)

    for headers in ({}, auth_header(coach)):
        body = client.get(API, headers=headers).json()
        assert [a["id"] for a in body["data"]] == [published.id]
        body = client.get(API, params={"status": "DRAFT"}, headers=headers).json()
        assert [a["id"] for a in body["data"]] == [published.id]

    body = client.get(API, params={"status": "DRAFT"}, headers=auth_header(admin)).json()
    assert [a["status"] for a in body["data"]] == ["DRAFT"]


def test_default_sort_is_newest_first(client, coach, make_article):
    first = make_article(coach)
    second = make_article(coach)
    third = make_article(coach)
    body = client.get(API).json()
    assert [a["id"] for a in body["data"]] == [third.id, second.id, first.id]

    body = client.get(API, params={"sortBy": "createdAt", "sortOrder": "asc"}).json()
    assert [a["id"] for a in body["data"]] == [first.id, second.id, third.id]


def test_ties_break_on_id_so_pages_never_overlap(client, coach, make_article):
    same_time = datetime(2024, 3, 1, tzinfo=timezone.utc)
    ids = [make_article(coach, created_at=same_time).id for _ in range(5)]

    seen = []
    for page in (1, 2, 3):
        body = client.get(API, params={"page": page, "limit": 2}).json()
        seen.extend(a["id"] for a in body["data"])
    assert seen == sorted(ids)


def test_custom_order_puts_unordered_last(client, coach, make_article):
    second = make_article(coach, custom_order=2)
    unordered = make_article(coach)
    first = make_article(coach, custom_order=1)

    body = client.get(API, params={"sortBy": "customOrder", "sortOrder": "asc"}).json()
    assert [a["id"] for a in body["data"]] == [first.id, second.id, unordered.id]

    body = client.get(API, params={"sortBy": "customOrder", "sortOrder": "desc"}).json()
    assert [a["id"] for a in body["data"]] == [second.id, first.id, unordered.id]


def test_zone_filter_requires_visible_setting(client, coach, make_article):
    shown = make_article(coach, zones=[ZoneType.COACH])
    make_article(coach, zones=[ArticleZoneSetting(zone=ZoneType.COACH, visible=False)])
    make_article(coach, zones=[ZoneType.PARENT])

    body = client.get(API, params={"zone": "coach"}).json()
    assert [a["id"] for a in body["data"]] == [shown.id]


def test_listing_search_and_premium_filter(client, coach, make_article):
    match = make_article(coach, title="Пресинг в средата", is_premium=True)
    make_article(coach, title="Пресинг отзад")
    make_article(coach, title="Хранене")

    body = client.get(API, params={"search": "пресинг", "isPremium": "true"}).json()
    assert [a["id"] for a in body["data"]] == [match.id]


# ---- premium gating ----

def test_permanent_premium_is_excerpt_only_for_anonymous(client, coach, make_article):
    article = make_article(
        coach,
        is_premium=True,
        is_permanent_premium=True,
        premium_release_date=datetime(2020, 1, 1, tzinfo=timezone.utc),
    )
    data = client.get(f"{API}/{article.slug}").json()["data"]
    assert data["access"] == "EXCERPT_ONLY"
    assert data["content"] is None
    assert data["excerpt"]
    assert data["requiresSubscription"] is True


def test_released_premium_is_free(client, coach, make_article):
    article = make_article(
        coach,
        is_premium=True,
        premium_release_date=datetime.now(timezone.utc) - timedelta(days=1),
    )
    data = client.get(f"{API}/{article.slug}").json()["data"]
    assert data["access"] == "FULL"
    assert data["content"] == article.content


def test_excerpt_is_derived_when_missing(client, coach, make_article):
    article = make_article(coach, is_premium=True, excerpt=None, content="<p>Първи абзац за пресинга.</p>")
    data = client.get(f"{API}/{article.slug}").json()["data"]
    assert data["content"] is None
    assert data["excerpt"] == "Първи абзац за пресинга."


def test_subscription_unlocks_premium(client, make_user, coach, make_article, subscribe, auth_header):
    article = make_article(coach, is_premium=True, is_permanent_premium=True)
    reader = make_user(UserRole.PLAYER)

    data = client.get(f"{API}/{article.slug}", headers=auth_header(reader)).json()["data"]
    assert data["access"] == "EXCERPT_ONLY"

    subscribe(reader)
    data = client.get(f"{API}/{article.slug}", headers=auth_header(reader)).json()["data"]
    assert data["access"] == "FULL"
    assert data["content"] == article.content


@pytest.mark.parametrize(
    "status,days_left",
    [(SubscriptionStatus.ACTIVE, -1), (SubscriptionStatus.CANCELED, 30), (SubscriptionStatus.PAST_DUE, 30)],
)
def test_lapsed_subscription_does_not_unlock(client, make_user, coach, make_article, subscribe, auth_header,
                                            status, days_left):
    article = make_article(coach, is_premium=True)
    reader = make_user(UserRole.PARENT)
    subscribe(reader, status=status, days_left=days_left)
    data = client.get(f"{API}/{article.slug}", headers=auth_header(reader)).json()["data"]
    assert data["access"] == "EXCERPT_ONLY"


def test_admin_reads_premium_in_listing(client, admin, coach, make_article, auth_header):
    make_article(coach, is_premium=True, is_permanent_premium=True)
    anonymous = client.get(API).json()["data"][0]
    privileged = client.get(API, headers=auth_header(admin)).json()["data"][0]
    assert anonymous["content"] is None
    assert privileged["content"] is not None


def test_gating_applies_after_cache_hit(client, make_user, coach, make_article, subscribe, auth_header, monkeypatch):
    from test_cache_service import FakeRedis

    cache = CacheService("redis://unused:6379/0", enabled=True)
    cache._client = FakeRedis()
    monkeypatch.setattr(article_service, "cache", cache)

    make_article(coach, is_premium=True)
    reader = make_user(UserRole.PLAYER)
    subscribe(reader)

    assert client.get(API).json()["data"][0]["access"] == "EXCERPT_ONLY"
    assert any(k.startswith("articles:") for k in cache.client.store)
    assert client.get(API, headers=auth_header(reader)).json()["data"][0]["access"] == "FULL"


def test_cache_ttls_come_from_settings(db, coach, make_article):
    from test_cache_service import FakeRedis

    cache = CacheService("redis://unused:6379/0", enabled=True)
    cache._client = FakeRedis()
    service = ArticleService(cache, Settings(
        CACHE_TTL_ARTICLE_SECONDS=11, CACHE_TTL_LIST_SECONDS=22, CACHE_TTL_SEARCH_SECONDS=33,
    ))
    article = make_article(coach, title="Тактика 4-4-2")

    service.get_payload_by_slug(db, article.slug)
    service.list_articles(db, ArticleFilters())
    service.search(db, SearchFilters(query="тактика"))

    ttls = cache.client.ttls
    assert ttls[f"article:{article.slug}"] == 11
    assert {ttl for key, ttl in ttls.items() if key.startswith("articles:")} == {22}
    assert {ttl for key, ttl in ttls.items() if key.startswith("search:")} == {33}


# ---- single lookup ----

def test_unknown_slug_is_404(client):
    resp = client.get(f"{API}/no-such-article")
    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": {"message": "Article not found"}}


def test_draft_visible_only_to_author_and_admin(client, make_user, coach, admin, make_article, auth_header):
    draft = make_article(coach, status=ArticleStatus.DRAFT)
    other = make_user(UserRole.COACH)

    assert client.get(f"{API}/{draft.slug}").status_code == 404
    assert client.get(f"{API}/{draft.slug}", headers=auth_header(other)).status_code == 404
    assert client.get(f"{API}/{draft.slug}", headers=auth_header(coach)).status_code == 200
    assert client.get(f"{API}/{draft.slug}", headers=auth_header(admin)).status_code == 200


def test_reading_increments_view_count(client, db, coach, make_article):
    article = make_article(coach)
    client.get(f"{API}/{article.slug}")
    client.get(f"{API}/{article.slug}")
    db.expire_all()
    assert db.get(Article, article.id).view_count == 2


def test_bad_optional_token_reads_as_anonymous(client, coach, make_article):
    article = make_article(coach)
    resp = client.get(f"{API}/{article.slug}", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 200


# ---- search ----

@pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "   "}])
def test_search_requires_query(client, params):
    resp = client.get(f"{API}/search", params=params)
    assert resp.status_code == 400
    assert resp.json()["error"]["message"] == "Search query required"


def test_search_matches_title_or_content_case_insensitively(client, coach, make_article):
    by_title = make_article(coach, title="Тактика при корнери")
    by_content = make_article(coach, title="Статия", content="<p>Модерната ТАКТИКА на защитата.</p>")
    make_article(coach, title="Хранене", content="<p>Без връзка с темата.</p>")
    make_article(coach, title="Тактика чернова", status=ArticleStatus.DRAFT)

    body = client.get(f"{API}/search", params={"q": "тактика"}).json()
    assert body["query"] == "тактика"
    assert sorted(a["id"] for a in body["data"]) == sorted([by_title.id, by_content.id])
    assert body["pagination"]["total"] == 2


def test_search_escapes_like_wildcards(client, coach, make_article):
    percent = make_article(coach, title="Успеваемост 100% от дузпи")
    make_article(coach, title="Обикновена статия")
    body = client.get(f"{API}/search", params={"q": "%"}).json()
    assert [a["id"] for a in body["data"]] == [percent.id]


def test_search_orders_featured_first(client, coach, make_article):
    plain = make_article(coach, title="Пас и движение")
    featured = make_article(coach, title="Пас в коридор", is_featured=True)
    body = client.get(f"{API}/search", params={"q": "пас"}).json()
    assert [a["id"] for a in body["data"]] == [featured.id, plain.id]


# ---- authoring ----

def _new_article(**overrides):
    payload = {
        "title": "Основи на пресинга",
        "content": "<p>Пресингът е колективно действие на целия отбор.</p>",
        "category": "tactics",
        "tags": ["пресинг"],
        "status": "PUBLISHED",
        "zones": [{"zone": "read"}, {"zone": "coach", "requiresSubscription": True}],
    }
    payload.update(overrides)
    return payload


def test_coach_creates_article_with_generated_slug(client, coach, auth_header):
    resp = client.post(API, json=_new_article(), headers=auth_header(coach))
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["slug"] == "osnovi-na-presinga"
    assert data["authorId"] == coach.id
    assert data["publishedAt"] is not None
    assert {z["zone"] for z in data["zones"]} == {"READ", "COACH"}

    again = client.post(API, json=_new_article(), headers=auth_header(coach)).json()["data"]
    assert again["slug"] == "osnovi-na-presinga-2"


def test_draft_has_no_published_at(client, coach, auth_header):
    data = client.post(API, json=_new_article(status="DRAFT"), headers=auth_header(coach)).json()["data"]
    assert data["publishedAt"] is None


def test_create_requires_authentication(client):
    resp = client.post(API, json=_new_article())
    assert resp.status_code == 401
    assert resp.json()["error"]["message"] == "Access token required"


@pytest.mark.parametrize("role", [UserRole.FREE, UserRole.PLAYER, UserRole.PARENT])
def test_non_author_roles_cannot_create(client, make_user, auth_header, role):
    resp = client.post(API, json=_new_article(), headers=auth_header(make_user(role)))
    assert resp.status_code == 403


def test_duplicate_explicit_slug_conflicts(client, coach, auth_header):
    client.post(API, json=_new_article(slug="presing"), headers=auth_header(coach))
    resp = client.post(API, json=_new_article(slug="presing"), headers=auth_header(coach))
    assert resp.status_code == 409


@pytest.mark.parametrize(
    "zones",
    [
        [],
        [{"zone": "READ"}, {"zone": "read"}],
        [{"zone": z} for z in ("READ", "COACH", "PLAYER", "PARENT", "SERIES", "READ")],
    ],
)
def test_zone_set_is_validated(client, coach, auth_header, zones):
    resp = client.post(API, json=_new_article(zones=zones), headers=auth_header(coach))
    assert resp.status_code == 400


def test_author_updates_and_replaces_zones(client, coach, make_article, auth_header):
    article = make_article(coach, zones=[ZoneType.READ, ZoneType.COACH])
    resp = client.put(
        f"{API}/{article.id}",
        json={"title": "Ново заглавие", "zones": [{"zone": "COACH", "visible": False}, {"zone": "PLAYER"}]},
        headers=auth_header(coach),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["title"] == "Ново заглавие"
    assert data["slug"] == article.slug
    assert [(z["zone"], z["visible"]) for z in data["zones"]] == [("COACH", False), ("PLAYER", True)]


def test_publishing_a_draft_stamps_published_at(client, coach, make_article, auth_header):
    draft = make_article(coach, status=ArticleStatus.DRAFT)
    data = client.put(f"{API}/{draft.id}", json={"status": "PUBLISHED"}, headers=auth_header(coach)).json()["data"]
    assert data["publishedAt"] is not None


def test_other_coach_cannot_modify(client, make_user, coach, make_article, auth_header):
    article = make_article(coach)
    intruder = make_user(UserRole.COACH)
    assert client.put(f"{API}/{article.id}", json={"title": "Чуждо"}, headers=auth_header(intruder)).status_code == 403
    assert client.delete(f"{API}/{article.id}", headers=auth_header(intruder)).status_code == 403


def test_admin_may_modify_any_article(client, admin, coach, make_article, auth_header):
    article = make_article(coach)
    resp = client.put(f"{API}/{article.id}", json={"isFeatured": True}, headers=auth_header(admin))
    assert resp.status_code == 200
    assert resp.json()["data"]["isFeatured"] is True


def test_update_unknown_article_is_404(client, admin, auth_header):
    assert client.put(f"{API}/999", json={"title": "Нищо"}, headers=auth_header(admin)).status_code == 404


def test_delete_removes_article(client, coach, make_article, auth_header):
    article = make_article(coach)
    resp = client.delete(f"{API}/{article.id}", headers=auth_header(coach))
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    assert client.get(f"{API}/{article.slug}").status_code == 404


# ---- bearer handling ----

def test_expired_and_invalid_tokens_are_told_apart(client, coach):
    from footballzone.core.security import token_service
    from footballzone.services.auth_service import claims_for

    expired = token_service.issue_access_token(claims_for(coach), expires_in=timedelta(seconds=-30))
    resp = client.post(API, json=_new_article(), headers={"Authorization": f"Bearer {expired}"})
    assert resp.json()["error"]["message"] == "Access token expired"

    resp = client.post(API, json=_new_article(), headers={"Authorization": "Bearer nonsense"})
    assert resp.json()["error"]["message"] == "Invalid access token"

    resp = client.post(API, json=_new_article(), headers={"Authorization": "bearer nonsense"})
    assert resp.json()["error"]["message"] == "Access token required"


def test_deactivated_user_token_is_rejected(client, db, coach, auth_header):
    headers = auth_header(coach)
    coach.is_active = False
    db.commit()
    resp = client.post(API, json=_new_article(), headers=headers)
    assert resp.status_code == 401
