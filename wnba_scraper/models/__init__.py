"""Common typed models shared across the pipeline."""

from .schemas import (
    CATEGORY_ORDER,
    RECORD_TYPES,
    Category,
    GameRecord,
    PlayerGameStatRecord,
    PlayRecord,
    ProviderRecord,
    TeamRecord,
)

__all__ = [
    "Category",
    "CATEGORY_ORDER",
    "RECORD_TYPES",
    "TeamRecord",
    "GameRecord",
    "PlayRecord",
    "PlayerGameStatRecord",
    "ProviderRecord",
]
