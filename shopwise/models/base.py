"""
Engine, session factory and declarative base

DATABASE_URL points at the hosted Postgres project in deployments and at a
local sqlite file for development and tests.
"""
import os

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import NullPool

from shopwise.config import get_settings
from shopwise.utils.logger import log

settings = get_settings()


def _resolve_url(url: str) -> str:
    """Make relative sqlite paths absolute so the working directory doesn't matter."""
    prefix = "sqlite:///"
    if url.startswith(prefix) and not url.startswith(prefix + "/"):
        return prefix + os.path.abspath(url[len(prefix):])
    return url


def make_engine(url: str) -> Engine:
    url = _resolve_url(url)
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 30},
            poolclass=NullPool,
        )
    # Hosted Postgres caps connections per project
    return create_engine(url, pool_pre_ping=True, pool_size=3, max_overflow=5, pool_recycle=300)


engine = make_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Request-scoped session for FastAPI dependencies."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _add_missing_columns():
    """
    ALTER TABLE ... ADD COLUMN for model columns an older database lacks.

    create_all() only creates whole tables, so columns added to products,
    sales_data or inventory_alerts after first deploy would otherwise be missing.
    """
    inspector = inspect(engine)
    statements = []
    for table_name, table in Base.metadata.tables.items():
        if not inspector.has_table(table_name):
            continue
        present = {c["name"] for c in inspector.get_columns(table_name)}
        for col in table.columns:
            if col.name not in present:
                col_type = col.type.compile(dialect=engine.dialect)
                statements.append(f"ALTER TABLE {table_name} ADD COLUMN {col.name} {col_type}")

    if not statements:
        return
    with engine.begin() as conn:
        for sql in statements:
            log.info(f"Schema update: {sql}")
            conn.execute(text(sql))


def init_db():
    """Create the three tables and patch in any new columns."""
    import shopwise.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
    _add_missing_columns()
