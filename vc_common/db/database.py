# SPDX-FileCopyrightText: 2024 Swiss Confederation
#
# SPDX-License-Identifier: MIT

from functools import cache
import logging

from sqlalchemy import create_engine, inspect, event, Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.schema import CreateSchema

#################
# DB Definition #
#################

_logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _setup_postgres(engine: Engine, db_schema: str) -> None:
    @event.listens_for(engine, "connect", insert=True)
    def set_search_path(dbapi_connection, connection_record):
        """
        Setting Session search path every time a new connection is made
        https://docs.sqlalchemy.org/en/20/dialects/postgresql.html#setting-alternate-search-paths-on-connect
        """
        existing_autocommit = dbapi_connection.autocommit
        dbapi_connection.autocommit = True
        cursor = dbapi_connection.cursor()
        cursor.execute("SET SESSION search_path TO '%s'" % db_schema)
        cursor.close()
        dbapi_connection.autocommit = existing_autocommit

    inspector = inspect(engine)
    if db_schema not in inspector.get_schema_names():
        with engine.connect() as conn:
            conn.execute(CreateSchema(db_schema, if_not_exists=True))
            conn.commit()


def _setup_sqlite(engine: Engine) -> None:
    """
    pysqlite defers BEGIN until the first write, so two readers upgrading to writers
    deadlock instead of waiting. Take the write lock when the transaction starts.
    https://docs.sqlalchemy.org/en/20/dialects/sqlite.html#serializable-isolation-savepoints-transactional-ddl
    """

    @event.listens_for(engine, "connect")
    def disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@cache
def _setup_db(db_connection_string: str, db_schema: str) -> tuple[Engine, sessionmaker]:
    """Sets up a DB connection, with the schema for postgres"""
    if db_connection_string.startswith("sqlite"):
        engine = create_engine(db_connection_string, connect_args={"check_same_thread": False, "timeout": 30})
        _setup_sqlite(engine)
    else:
        engine = create_engine(db_connection_string)
        _setup_postgres(engine, db_schema)

    _session_local = sessionmaker(bind=engine, expire_on_commit=False)
    return engine, _session_local


def session_factory(db_connection_string: str, db_schema: str) -> sessionmaker:
    """Returns the (cached) session factory for the connection"""
    _engine, _session_local = _setup_db(db_connection_string, db_schema)
    return _session_local


def create_schema(db_connection_string: str, db_schema: str) -> None:
    """Creates all tables registered on Base which do not yet exist"""
    engine, _session_local = _setup_db(db_connection_string, db_schema)
    Base.metadata.create_all(engine)
    _logger.info("Database tables created")

