import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from config import get_settings
from errors import InternalError
from database_schemas import (
    USERS_TABLE_SCHEMA,
    SESSIONS_TABLE_SCHEMA,
    POSTS_TABLE_SCHEMA,
    POST_LIKES_TABLE_SCHEMA,
    COMMENTS_TABLE_SCHEMA,
    FOLLOWS_TABLE_SCHEMA,
    INDEXES_SCHEMA,
)

logger = logging.getLogger(__name__)


def new_id() -> str:
    """24 hex characters, the identifier format accepted by every route."""
    return uuid.uuid4().hex[:24]


def utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


@contextmanager
def get_db():
    """Yield a connection; store failures leaving the block become InternalError."""
    conn = sqlite3.connect(get_settings().DATABASE_PATH, timeout=10)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    except sqlite3.Error as exc:
        logger.exception("Database operation failed")
        raise InternalError() from exc
    finally:
        conn.close()


def init_db():
    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute(USERS_TABLE_SCHEMA)
        cursor.execute(SESSIONS_TABLE_SCHEMA)
        cursor.execute(POSTS_TABLE_SCHEMA)
        cursor.execute(POST_LIKES_TABLE_SCHEMA)
        cursor.execute(COMMENTS_TABLE_SCHEMA)
        cursor.execute(FOLLOWS_TABLE_SCHEMA)
        for statement in INDEXES_SCHEMA:
            cursor.execute(statement)
        conn.commit()


if __name__ == "__main__":
    init_db()
