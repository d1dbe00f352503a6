from __future__ import annotations
from contextlib import contextmanager
import typing as t

from mysql.connector import errorcode
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from dbscript.config import Environment


def _is_missing_database(err: DBAPIError) -> bool:
    return getattr(err.orig, "errno", None) == errorcode.ER_BAD_DB_ERROR


def _create_database(env: Environment) -> None:
    server = create_engine(
        env.sqlalchemy_url(with_database=False), isolation_level="AUTOCOMMIT"
    )
    database = env.sqlalchemy_url().database
    try:
        with server.connect() as tmp:
            print(f"[dbscript] Database {database!r} not found – creating ...")
            quoted = tmp.dialect.identifier_preparer.quote(database)
            tmp.execute(
                text(
                    f"CREATE DATABASE {quoted} "
                    "DEFAULT CHARACTER SET utf8mb4 "
                    "COLLATE utf8mb4_unicode_ci"
                )
            )
    finally:
        server.dispose()


@contextmanager
def connection(env: Environment) -> t.Iterator[Connection]:
    """
    Context‑manager that yields a SQLAlchemy **connection already inside the
    target database**, committing on a clean exit.  If a MySQL database does
    not yet exist (error 1049), it will be created automatically for
    non‑production environments.

    Auto‑creation is only enabled when ``env.allow_destructive`` is *True*
    (typically dev / CI boxes) so that production mis‑spells still fail loudly.
    """
    engine = create_engine(env.sqlalchemy_url())
    try:
        try:
            conn = engine.connect()
        except DBAPIError as err:
            if _is_missing_database(err) and env.allow_destructive:
                _create_database(env)
                # Retry now that DB exists
                conn = engine.connect()
            else:
                # Bubble up anything else (bad credentials, network failure, etc.)
                raise

        try:
            yield conn
            conn.commit()
        finally:
            conn.close()
    finally:
        engine.dispose()


@contextmanager
def session(env: Environment) -> t.Iterator[Session]:
    """Same as :func:`connection` but yields an ORM session bound to it."""
    with connection(env) as conn:
        with Session(bind=conn) as sess:
            yield sess
            sess.commit()
