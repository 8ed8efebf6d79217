"""
Database session management
"""
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from app.core.config import settings
from app.db.base import Base


def configure_sqlite(bind: Engine) -> None:
    """
    Enforce foreign keys and let SQLAlchemy own BEGIN on SQLite connections,
    so rollbacks and SAVEPOINTs behave as they do on PostgreSQL.
    """
    @event.listens_for(bind, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(bind, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")


engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=False
)

if engine.dialect.name == "sqlite":
    configure_sqlite(engine)


def create_sqlite_schema() -> None:
    """Create all tables for SQLite databases (local runs); other databases use Alembic."""
    if engine.dialect.name == "sqlite":
        import app.models  # noqa: F401  registers every table on Base.metadata
        Base.metadata.create_all(bind=engine)


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
