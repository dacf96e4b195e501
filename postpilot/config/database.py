"""
Database Configuration and Connection Management

This module handles Firestore database connections for the PostPilot
application. When the memory backend is configured no connection is made
and callers fall back to in-process storage.
"""

from typing import Optional

import firebase_admin
import structlog
from firebase_admin import credentials, firestore
from google.cloud import firestore as firestore_client

from postpilot.config.settings import get_settings

logger = structlog.get_logger(__name__)


class DatabaseManager:
    """Singleton database manager for Firestore connections."""

    _instance: Optional["DatabaseManager"] = None
    _db: Optional[firestore_client.Client] = None
    _initialized: bool = False

    def __new__(cls) -> "DatabaseManager":
        """Create singleton instance."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def _initialize_firestore(self) -> None:
        """Initialize Firestore database connection."""
        settings = get_settings()
        self._initialized = True

        if settings.storage_backend != "firestore":
            logger.info("Using in-memory storage", backend=settings.storage_backend)
            self._db = None
            return

        try:
            # Check if Firebase app is already initialized
            firebase_admin.get_app()
        except ValueError:
            if settings.google_application_credentials:
                cred = credentials.Certificate(settings.google_application_credentials)
                firebase_admin.initialize_app(cred, {
                    'projectId': settings.google_cloud_project,
                })
            else:
                firebase_admin.initialize_app(options={
                    'projectId': settings.google_cloud_project,
                })

        try:
            self._db = firestore.client(database_id=settings.firestore_database_id)
        except Exception as e:
            logger.warning(
                "Firestore initialization failed, using in-memory storage",
                error=str(e)
            )
            self._db = None

    @property
    def db(self) -> Optional[firestore_client.Client]:
        """Get Firestore database client."""
        if not self._initialized:
            self._initialize_firestore()
        return self._db

    async def health_check(self) -> bool:
        """Check database connection health."""
        if self.db is None:
            return True

        try:
            test_ref = self.db.collection('health_check').limit(1)
            list(test_ref.stream())
            return True
        except Exception as e:
            logger.error("Firestore health check failed", error=str(e))
            return False


# Global database manager instance
db_manager = DatabaseManager()


def get_database() -> Optional[firestore_client.Client]:
    """Get the Firestore database client, or None for in-memory storage."""
    return db_manager.db
