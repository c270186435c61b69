"""Data ingestion module - upstream feed fetching and schemas."""

from src.ingestion.schemas import Platform, RemoteItem, VideoRecord

__all__ = [
    "Platform",
    "RemoteItem",
    "VideoRecord",
]
