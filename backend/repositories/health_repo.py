"""Repository helpers for health checks."""

from db_utils import connection as sa_connection
from extensions import db


def check_database_connection() -> bool:
    """Execute a lightweight database ping."""
    conn = sa_connection(db.engine)
    try:
        return conn.execute("SELECT 1").scalar() == 1
    finally:
        conn.close()
