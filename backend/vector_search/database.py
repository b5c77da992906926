"""Database connection and session management."""

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


# SQLite connection settings for better concurrency
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Set SQLite pragmas for concurrent access and cascading deletes."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")  # Write-Ahead Logging for better concurrency
    cursor.execute("PRAGMA busy_timeout=30000")  # Wait up to 30 seconds if locked
    cursor.execute("PRAGMA synchronous=NORMAL")  # Balance between safety and speed
    cursor.execute("PRAGMA foreign_keys=ON")  # Embeddings cascade with their product
    cursor.close()


def create_db_engine(database_url: str, echo: bool = False, **kwargs) -> Engine:
    """Create an engine, registering SQLite pragmas when needed."""
    db_engine = create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,  # Check connections before use
        **kwargs,
    )
    if db_engine.dialect.name == "sqlite":
        event.listen(db_engine, "connect", set_sqlite_pragma)
    return db_engine


def create_session_factory(db_engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(db_engine, expire_on_commit=False)


def init_db(db_engine: Engine) -> None:
    """Create the catalog tables and any embeddings table registered on the metadata."""
    # Import models so they register with Base.metadata
    import vector_search.models  # noqa: F401

    Base.metadata.create_all(db_engine)

