"""Database initialization script."""

from src.circulation.core.services import DbManageService, DbSessionService
from src.circulation.runtime.config import ConfigData


def init_db(config: ConfigData | None = None) -> list[str]:
    """Create all database tables and return their names."""
    database_service = DbSessionService(config)
    try:
        manager = DbManageService(database_service.engine)
        manager.create_all()
        return manager.table_names()
    finally:
        database_service.dispose()


if __name__ == "__main__":
    init_db()
