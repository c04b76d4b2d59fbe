"""Seed sample Bulgarian articles for demo purposes."""

from datetime import timedelta

from sqlalchemy.orm import Session

from footballzone.models.article import (
    Article, ArticleCategory, ArticleStatus, ArticleZoneSetting, ZoneType,
)
from footballzone.models.user import User, UserRole
from footballzone.utils.slug import generate_slug, make_excerpt
from footballzone.utils.timeutil import utcnow

SAMPLE_ARTICLES = [
    {
        "title": "Тактика 4-3-3: основни принципи",
        "content": (
            "<p>Схемата 4-3-3 разчита на широчина в атака и компактност в средата на терена. "
            "Крилата държат линията, а централните полузащитници контролират темпото.</p>"
        ),
        "category": ArticleCategory.TACTICS,
        "tags": ["тактика", "4-3-3", "схеми"],
        "zones": [ZoneType.READ, ZoneType.COACH],
        "is_featured": True,
        "custom_order": 1,
    },
    {
        "title": "Пресинг след загуба на топката",
        "content": (
            "<p>Контрапресингът през първите пет секунди след загуба е най-ефективният момент "
            "за връщане на топката. Играчите най-близо до топката атакуват веднага.</p>"
        ),
        "category": ArticleCategory.TACTICS,
        "tags": ["пресинг", "защита"],
        "zones": [ZoneType.COACH],
        "is_premium": True,
        "is_permanent_premium": True,
    },
    {
        "title": "Подготовка за мач: хранене и сън",
        "content": (
            "<p>Последното хранене трябва да е три до четири часа преди мача. Сънят през "
            "нощта преди двубоя е по-важен от всяка тренировка в деня на мача.</p>"
        ),
        "category": ArticleCategory.NUTRITION,
        "tags": ["хранене", "възстановяване"],
        "zones": [ZoneType.PLAYER, ZoneType.PARENT],
        "is_premium": True,
        "release_in_days": -1,
    },
    {
        "title": "Как да подкрепяме детето от трибуните",
        "content": (
            "<p>Родителите са най-важната публика. Похвалата за усилието, а не за резултата, "
            "изгражда увереност и любов към играта.</p>"
        ),
        "category": ArticleCategory.PSYCHOLOGY,
        "tags": ["родители", "психология"],
        "zones": [ZoneType.PARENT, ZoneType.READ],
    },
    {
        "title": "Упражнения за първо докосване",
        "content": (
            "<p>Серия от упражнения по двойки за първо докосване с вътрешна и външна част "
            "на стъпалото. Подходящи за възраст от 10 години нагоре.</p>"
        ),
        "category": ArticleCategory.TECHNIQUE,
        "tags": ["техника", "упражнения"],
        "zones": [ZoneType.PLAYER, ZoneType.COACH],
        "status": ArticleStatus.DRAFT,
    },
]


def seed_articles(db: Session) -> int:
    """Insert the sample articles that are not there yet. Returns how many were added."""
    author = (
        db.query(User)
        .filter(User.role.in_([UserRole.ADMIN, UserRole.COACH]))
        .order_by(User.id)
        .first()
    )
    if not author:
        print("⚠️  No author found. Run seed_admin first.")
        return 0

    now = utcnow()
    added = 0
    for sample in SAMPLE_ARTICLES:
        slug = generate_slug(sample["title"])
        if db.query(Article.id).filter(Article.slug == slug).first():
            continue

        status = sample.get("status", ArticleStatus.PUBLISHED)
        release = sample.get("release_in_days")
        article = Article(
            slug=slug,
            title=sample["title"],
            excerpt=make_excerpt(sample["content"]),
            content=sample["content"],
            category=sample["category"],
            tags=sample["tags"],
            status=status,
            is_premium=sample.get("is_premium", False),
            is_permanent_premium=sample.get("is_permanent_premium", False),
            premium_release_date=now + timedelta(days=release) if release is not None else None,
            is_featured=sample.get("is_featured", False),
            custom_order=sample.get("custom_order"),
            read_time=5,
            author_id=author.id,
            published_at=now if status == ArticleStatus.PUBLISHED else None,
        )
        article.zones = [ArticleZoneSetting(zone=zone) for zone in sample["zones"]]
        db.add(article)
        added += 1

    db.commit()
    print(f"✅ Seeded {added} sample articles")
    return added
