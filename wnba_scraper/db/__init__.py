"""
Database models and store handle.

Import models from their module:
    from wnba_scraper.db.models import WnbaGame, WnbaTeam

Session management:
    from wnba_scraper.db import Store
"""

from .base import Base
from .integrity import integrity_checks_suspended
from .models import DEPENDENCY_ORDER, RESET_ORDER, GameStatus
from .session import Store, create_store_engine

__all__ = [
    "Base",
    "DEPENDENCY_ORDER",
    "GameStatus",
    "RESET_ORDER",
    "Store",
    "create_store_engine",
    "integrity_checks_suspended",
]
