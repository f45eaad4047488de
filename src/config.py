"""Configuration settings for the unit of work."""

import logging
import os


def get_postgres_uri():
    """Get PostgreSQL connection URI from environment variables."""
    host = os.environ.get("DB_HOST", "localhost")
    port = os.environ.get("DB_PORT", "5432")
    password = os.environ.get("DB_PASSWORD", "uow_pass")
    user = os.environ.get("DB_USER", "uow_user")
    db_name = os.environ.get("DB_NAME", "uow_db")
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{db_name}"


def get_isolation_level():
    """Get the transaction isolation level applied when a transaction begins."""
    return os.environ.get("DB_ISOLATION_LEVEL", "REPEATABLE READ")


def get_lock_timeout():
    """
    Get how long a unit of work waits for a busy transaction, in seconds.

    Unset or empty means fail fast instead of waiting.
    """
    value = os.environ.get("UOW_LOCK_TIMEOUT", "").strip()
    if not value:
        return None
    return float(value)


def get_log_level():
    return os.environ.get("LOG_LEVEL", "INFO").upper()


def configure_logging():
    logging.basicConfig(
        level=getattr(logging, get_log_level()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
