"""Sources: tracked creators per account."""

from src.sources.repository import SourcesRepository
from src.sources.schemas import Source

__all__ = [
    "Source",
    "SourcesRepository",
]
