"""Videos: persisted items and batch reconciliation."""

from src.videos.reconciler import ReconcileResult, VideoReconciler
from src.videos.repository import VideoRepository

__all__ = [
    "ReconcileResult",
    "VideoReconciler",
    "VideoRepository",
]
