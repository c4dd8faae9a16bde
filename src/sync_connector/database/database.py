"""Database connection management for the SQL destination."""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import StaticPool

from ..config.settings import get_settings
from ..utils.logging import get_logger


logger = get_logger("database")


def _enable_sqlite_transactions(engine: Engine):
    """Let SQLAlchemy, not pysqlite, emit BEGIN so SAVEPOINTs nest correctly."""

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


class DatabaseManager:
    """Database engine and connection manager."""

    def __init__(self, database_url: Optional[str] = None, engine: Optional[Engine] = None):
        """Initialize database manager."""
        self.settings = get_settings()
        self.database_url = database_url or self.settings.database.url

        if engine is not None:
            self.engine = engine
        elif self.database_url.startswith("sqlite"):
            self.engine = create_engine(
                self.database_url,
                poolclass=StaticPool,
                connect_args={
                    "check_same_thread": False,
                    "timeout": 20
                },
                echo=False
            )
        else:
            # PostgreSQL or other databases
            self.engine = create_engine(
                self.database_url,
                pool_size=self.settings.database.pool_size,
                pool_pre_ping=True,
                pool_recycle=300,
                echo=False
            )

        if self.engine.dialect.name == "sqlite":
            _enable_sqlite_transactions(self.engine)

        logger.info("Database manager initialized", dialect=self.engine.dialect.name)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def connect(self) -> Connection:
        """Check out a connection from the pool."""
        return self.engine.connect()

    @contextmanager
    def connection_scope(self) -> Generator[Connection, None, None]:
        """Provide a transactional scope around a series of statements."""
        connection = self.connect()
        try:
            with connection.begin():
                yield connection
        except Exception as e:
            logger.error("Database transaction rolled back", error=str(e))
            raise
        finally:
            connection.close()

    def test_connection(self):
        """Run a no-op query; raises if the database is unreachable."""
        with self.connection_scope() as connection:
            connection.execute(text("SELECT 1"))

    def dispose(self):
        """Close pooled connections."""
        self.engine.dispose()
        logger.info("Database connections closed")
