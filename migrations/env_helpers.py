"""Database URL helpers for Alembic migrations.

Extracted so they can be tested without triggering alembic.context at import time.
"""

from __future__ import annotations

import os
from urllib.parse import quote_plus, urlencode, urlparse, urlunparse

from psycopg2.extensions import parse_dsn

_DRIVER_SCHEME = "postgresql+psycopg2"


def _libpq_dsn_to_url(dsn: str) -> str:
    """Convert a libpq key=value DSN to a SQLAlchemy URL.

    Unix-socket hosts (starting with "/") go to the ``host`` query argument:
    postgresql+psycopg2://USER:PASS@/DB?host=/var/run/postgresql
    """
    tokens = parse_dsn(dsn)
    if not tokens.get("password"):
        db_password = os.environ.get("DB_PASSWORD", "")
        if db_password:
            tokens["password"] = db_password

    user = quote_plus(tokens.get("user", ""))
    password = quote_plus(tokens.get("password", ""))
    dbname = quote_plus(tokens.get("dbname", ""))
    host = tokens.get("host", "localhost")
    port = tokens.get("port", "5432")

    if host.startswith("/"):
        return f"{_DRIVER_SCHEME}://{user}:{password}@/{dbname}?{urlencode({'host': host})}"
    return f"{_DRIVER_SCHEME}://{user}:{password}@{host}:{port}/{dbname}"


def _normalize_url(url: str) -> str:
    """Force the psycopg2 driver and inject DB_PASSWORD when the URL has none."""
    scheme, _, rest = url.partition("://")
    if scheme in ("postgres", "postgresql"):
        url = f"{_DRIVER_SCHEME}://{rest}"

    db_password = os.environ.get("DB_PASSWORD", "")
    parsed = urlparse(url)
    if db_password and not parsed.password:
        netloc = f"{quote_plus(parsed.username or '')}:{quote_plus(db_password)}@{parsed.hostname or ''}"
        if parsed.port:
            netloc += f":{parsed.port}"
        url = urlunparse(parsed._replace(netloc=netloc))
    return url


def get_database_url() -> str:
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is required to run migrations")
    if "://" in url:
        return _normalize_url(url)
    return _libpq_dsn_to_url(url)
