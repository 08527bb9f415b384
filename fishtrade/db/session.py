from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import sessionmaker

from fishtrade.core.config import settings


def configure_sqlite_engine(engine: Engine) -> None:
    """Serialise SQLite writers by opening every transaction with BEGIN IMMEDIATE.

    pysqlite's own transaction handling is disabled so the BEGIN emitted here is
    the only one, which also makes SAVEPOINT work as expected.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def configure_postgres_engine(engine: Engine, *, lock_timeout_ms: int) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute(f"SET lock_timeout = {int(lock_timeout_ms)}")
        cursor.close()
        dbapi_connection.commit()


def build_engine(database_url: str) -> Engine:
    engine_kwargs: dict[str, object] = {
        # Detect and recover from stale pooled connections.
        "pool_pre_ping": True,
    }
    is_sqlite = database_url.lower().startswith("sqlite")
    if is_sqlite:
        engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
    else:
        # Tune SQLAlchemy pool for networked databases (e.g., Neon/Postgres).
        engine_kwargs.update(
            {
                "pool_size": settings.db_pool_size,
                "max_overflow": settings.db_max_overflow,
                "pool_timeout": settings.db_pool_timeout_seconds,
                "pool_recycle": settings.db_pool_recycle_seconds,
            }
        )

    engine = create_engine(database_url, **engine_kwargs)
    if is_sqlite:
        configure_sqlite_engine(engine)
    elif engine.dialect.name == "postgresql":
        configure_postgres_engine(engine, lock_timeout_ms=settings.db_lock_timeout_ms)
    return engine


engine = build_engine(settings.database_url_normalized)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
