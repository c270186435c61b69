"""
FastAPI sync service.

Provides:
- GET|POST /api/cron-sync - Scheduled sync, guarded by the shared secret
- GET /health - Service health check
"""

from src.api.app import create_app

__all__ = ["create_app"]
