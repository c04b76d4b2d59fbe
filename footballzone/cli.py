"""FootballZone CLI tool (footballzone)."""

import typer

app = typer.Typer(name="footballzone", help="FootballZone API CLI")
db_app = typer.Typer(help="Database management commands")
app.add_typer(db_app, name="db")


def _server_connection():
    """Connect to the MySQL server named by DATABASE_URL, without selecting a database."""
    import pymysql
    from sqlalchemy.engine import make_url
    from footballzone.core.config import settings

    url = make_url(settings.DATABASE_URL)
    if not url.drivername.startswith("mysql"):
        typer.echo(f"❌ {url.drivername} databases are created on first connect; nothing to do")
        raise typer.Exit(1)
    conn = pymysql.connect(
        host=url.host or "localhost",
        port=url.port or 3306,
        user=url.username,
        password=url.password or "",
    )
    return conn, url.database


@db_app.command("create")
def db_create():
    """Create the MySQL database if it doesn't exist."""
    conn, db_name = _server_connection()
    try:
        cursor = conn.cursor()
        cursor.execute(f"CREATE DATABASE IF NOT EXISTS `{db_name}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci")
        conn.commit()
        typer.echo(f"✅ Database '{db_name}' created (or already exists)")
    finally:
        conn.close()


@db_app.command("init")
def db_init():
    """Create all tables."""
    from footballzone.db.base import Base
    from footballzone.db.session import engine
    import footballzone.models  # noqa: F401  (registers the tables)

    Base.metadata.create_all(bind=engine)
    typer.echo(f"✅ Tables ready: {', '.join(sorted(Base.metadata.tables))}")


@db_app.command("seed")
def db_seed():
    """Seed the admin user and sample articles."""
    from footballzone.db.session import SessionLocal
    from footballzone.db.seeds.seed_admin import seed_admin
    from footballzone.db.seeds.seed_articles import seed_articles

    db = SessionLocal()
    try:
        seed_admin(db)
        seed_articles(db)
    finally:
        db.close()
    typer.echo("✅ All seeds applied")


@db_app.command("reset")
def db_reset(yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation")):
    """Drop and recreate all tables (DANGER)."""
    if not yes and not typer.confirm("⚠️  This will DROP every table. Continue?"):
        raise typer.Abort()
    from footballzone.db.base import Base
    from footballzone.db.session import engine
    import footballzone.models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    typer.echo("✅ Database reset")


@app.command("create-admin")
def create_admin(
    email: str = typer.Argument(..., help="Admin email"),
    name: str = typer.Option("Администратор", help="Display name"),
    password: str = typer.Option(..., prompt=True, hide_input=True, confirmation_prompt=True),
):
    """Create an ADMIN account."""
    from footballzone.core.exceptions import FootballZoneError
    from footballzone.core.security import auth_service
    from footballzone.db.session import SessionLocal
    from footballzone.models.user import UserRole

    db = SessionLocal()
    try:
        user = auth_service.create_user(
            db, email=email, password=password, name=name,
            role=UserRole.ADMIN, email_verified=True,
        )
    except FootballZoneError as e:
        typer.echo(f"❌ {e.message}")
        raise typer.Exit(1)
    finally:
        db.close()
    typer.echo(f"✅ Created admin {user.email} (id {user.id})")


@app.command("release-premium")
def release_premium():
    """Release due premium articles to free readers (run from cron)."""
    from footballzone.db.session import SessionLocal
    from footballzone.services.premium_service import premium_service

    db = SessionLocal()
    try:
        result = premium_service.process_releases(db)
    finally:
        db.close()
    typer.echo(f"✅ Released {result['released']} premium articles")
    for error in result["errors"]:
        typer.echo(f"❌ {error}")
    if result["errors"]:
        raise typer.Exit(1)


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload"),
):
    """Start the API server."""
    import uvicorn
    from sqlalchemy import text
    from sqlalchemy.exc import SQLAlchemyError
    from footballzone.db.session import engine

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        typer.echo(f"❌ Database connection failed: {e}")
        raise typer.Exit(1)

    uvicorn.run("footballzone.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
