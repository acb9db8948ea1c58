"""Initialize database tables."""
from sqlmodel import SQLModel
import logging

from app.models.goal import Goal  # noqa: F401
from app.models.task import Task  # noqa: F401
from app.models.task_completion import TaskCompletion  # noqa: F401
from app.db.config import engine

logger = logging.getLogger(__name__)


def init_db(bind=None):
    """Create all tables in the database."""
    logger.info("[DB INIT] Creating all tables...")
    SQLModel.metadata.create_all(bind or engine)
    logger.info("[DB INIT] Tables created successfully.")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
