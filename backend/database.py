"""
Database engine and session helpers.

Engines and session factories are created explicitly and handed to the
services that need them; nothing here is a process-wide connection.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)


def _ensure_sqlite_directory(url: str):
    """Create the parent directory of a file-based SQLite database."""
    parsed = make_url(url)
    if parsed.get_backend_name() != 'sqlite':
        return
    database = parsed.database
    if not database or database == ':memory:' or database.startswith('file:'):
        return
    directory = Path(database).parent
    if not directory.exists():
        directory.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created database directory {directory}")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA foreign_keys = ON')
    cursor.close()


def _disable_pysqlite_transaction_handling(dbapi_connection, connection_record):
    # pysqlite never opens a transaction before DDL; SQLAlchemy emits BEGIN instead
    dbapi_connection.isolation_level = None


def _emit_sqlite_begin(connection):
    connection.exec_driver_sql('BEGIN')


def create_db_engine(database_url: str, echo: bool = False,
                     sqlite_foreign_keys: bool = True) -> Engine:
    """
    Create a SQLAlchemy engine for the given URL.

    For SQLite the database directory is created on demand and foreign key
    enforcement is switched on for every new connection. With the pysqlite
    driver, transactions are started by an explicit BEGIN so schema changes
    roll back together with everything else.
    """
    _ensure_sqlite_directory(database_url)
    engine = create_engine(database_url, echo=echo)

    if engine.dialect.name == 'sqlite':
        if engine.dialect.driver == 'pysqlite':
            event.listen(engine, 'connect', _disable_pysqlite_transaction_handling)
            event.listen(engine, 'begin', _emit_sqlite_begin)
        if sqlite_foreign_keys:
            event.listen(engine, 'connect', _enable_sqlite_foreign_keys)

    logger.debug(f"Created engine for {engine.url.render_as_string(hide_password=True)}")
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to ``engine``."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Commits on success, rolls back on any exception and always closes
    the session.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
