import logging

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_security import Security
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import text

logger = logging.getLogger(__name__)


class MonitoredSQLAlchemy(SQLAlchemy):
    """SQLAlchemy with a connectivity probe for the health endpoint."""

    def health_check(self) -> bool:
        """Perform a health check on the database connection."""
        try:
            result = self.session.execute(text("SELECT 1")).scalar()
            return result == 1
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False


db = MonitoredSQLAlchemy()
limiter = Limiter(key_func=get_remote_address)
security = Security()
