from sqlmodel import create_engine, SQLModel
from sqlalchemy.engine import Engine

from mev_shield.core.config import settings


def make_engine(database_url: str) -> Engine:
    """Create the engine for the KV table; SQLite needs cross-thread access."""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=False,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        database_url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=300,  # Managed Postgres drops idle connections
        pool_timeout=30,
    )


# Engine is lazy: nothing connects until the SQL backend is used
engine = make_engine(settings.DATABASE_URL)


def create_db_and_tables(bind: Engine | None = None):
    # Import models so their tables are registered on the metadata
    from mev_shield import models  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
