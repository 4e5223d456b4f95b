"""Database URL handling and connection opening.

Users supply either a JDBC URL (``jdbc:postgresql://host:5432/db``), as the
generated Spring project would use, or a SQLAlchemy URL
(``postgresql+psycopg://host/db``, ``sqlite:///schema.db``).  The
introspector needs the SQLAlchemy form, Liquibase needs the JDBC form.
"""

from __future__ import annotations

import asyncio
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Connection, Engine, make_url
from sqlalchemy.exc import ArgumentError, NoSuchModuleError, SQLAlchemyError
from sqlalchemy.pool import NullPool

from servicegen.config import DatabaseCredentials
from servicegen.errors import DatabaseConnectionError

JDBC_PREFIX = "jdbc:"

# Bare backend name -> SQLAlchemy driver name
_DEFAULT_DRIVERS: dict[str, str] = {
    "postgresql": "postgresql+psycopg",
    "postgres": "postgresql+psycopg",
}

# SQLAlchemy backend -> JDBC subprotocol
_JDBC_SUBPROTOCOLS: dict[str, str] = {
    "postgresql": "postgresql",
    "mysql": "mysql",
    "mariadb": "mariadb",
    "mssql": "sqlserver",
    "oracle": "oracle:thin",
}


def to_sqlalchemy_url(credentials: DatabaseCredentials) -> URL:
    """Build the SQLAlchemy URL for *credentials*.

    The username and password always come from the credentials, never from
    the URL text.

    Raises:
        DatabaseConnectionError: If the URL cannot be parsed.
    """
    raw = credentials.url
    if raw.startswith(JDBC_PREFIX):
        raw = raw[len(JDBC_PREFIX):]
    try:
        url = make_url(raw)
    except ArgumentError as exc:
        raise DatabaseConnectionError(f"Invalid database URL {credentials.url!r}: {exc}") from exc

    drivername = _DEFAULT_DRIVERS.get(url.drivername, url.drivername)
    if url.get_backend_name() == "sqlite":
        return url.set(drivername=drivername)
    return url.set(
        drivername=drivername,
        username=credentials.username,
        password=credentials.password.get_secret_value(),
    )


def to_jdbc_url(credentials: DatabaseCredentials) -> str:
    """Return the JDBC form of the credentials' URL (without user/password)."""
    if credentials.url.startswith(JDBC_PREFIX):
        return credentials.url

    url = to_sqlalchemy_url(credentials)
    backend = url.get_backend_name()
    if backend == "sqlite":
        return f"jdbc:sqlite:{url.database or ''}"

    subprotocol = _JDBC_SUBPROTOCOLS.get(backend, backend)
    host = url.host or "localhost"
    port = f":{url.port}" if url.port else ""
    query = "&".join(
        f"{key}={value}"
        for key, values in sorted(url.query.items())
        for value in ((values,) if isinstance(values, str) else values)
    )
    jdbc = f"jdbc:{subprotocol}://{host}{port}/{url.database or ''}"
    return f"{jdbc}?{query}" if query else jdbc


def create_schema_engine(credentials: DatabaseCredentials, timeout: float) -> Engine:
    """Create a pool-less engine for a one-off introspection.

    Raises:
        DatabaseConnectionError: If the URL is invalid or its driver is not
            installed.
    """
    url = to_sqlalchemy_url(credentials)
    connect_args: dict[str, Any] = {}
    if url.get_backend_name() in ("postgresql", "mysql", "mariadb"):
        connect_args["connect_timeout"] = max(1, int(timeout))
    elif url.get_backend_name() == "sqlite":
        # opened, reflected and closed on different worker threads
        connect_args["check_same_thread"] = False
    try:
        return create_engine(url, poolclass=NullPool, connect_args=connect_args)
    except (ArgumentError, NoSuchModuleError, ImportError) as exc:
        raise DatabaseConnectionError(f"Cannot create database engine: {exc}") from exc


async def open_connection(engine: Engine, timeout: float) -> Connection:
    """Open a connection, bounded by *timeout* seconds.

    The driver's own ``connect_timeout`` bounds the worker thread; a
    connection that still arrives after *timeout* is closed as soon as it
    does.

    Raises:
        DatabaseConnectionError: On timeout, refused connection or rejected
            credentials.
    """
    pending = asyncio.ensure_future(asyncio.to_thread(engine.connect))
    try:
        return await asyncio.wait_for(asyncio.shield(pending), timeout=timeout)
    except asyncio.TimeoutError as exc:
        pending.add_done_callback(_close_late_connection)
        raise DatabaseConnectionError(
            f"Timed out after {timeout:g}s connecting to {engine.url.render_as_string()}"
        ) from exc
    except SQLAlchemyError as exc:
        raise DatabaseConnectionError(
            f"Cannot connect to {engine.url.render_as_string()}: {exc}"
        ) from exc


def _close_late_connection(pending: asyncio.Future) -> None:
    if pending.cancelled() or pending.exception() is not None:
        return
    pending.result().close()
