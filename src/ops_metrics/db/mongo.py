from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import RLock
from typing import Optional

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)


DEFAULT_DB_NAME = "rides"


@dataclass(frozen=True)
class MongoCollections:
    """Convenience wrapper for the collections the dashboard reads."""

    rides: Collection
    drivers: Collection
    users: Collection
    ratings: Collection


class MongoManager:
    """
    MongoDB connection manager.

    Maintains one MongoClient for the operational database the dashboard reads from.
    """

    def __init__(self, mongo_uri: str, db_name: str = DEFAULT_DB_NAME):
        self._mongo_uri = mongo_uri
        self._db_name = db_name
        self._client: Optional[MongoClient] = None
        self._lock = RLock()

    def connect(self) -> None:
        """Initialize the Mongo client if needed."""
        with self._lock:
            if self._client is not None:
                return
            # MongoClient is thread-safe and manages internal pooling.
            self._client = MongoClient(self._mongo_uri, connect=True, tz_aware=True)

    # PUBLIC_INTERFACE
    def ping(self, timeout_ms: int = 1500) -> bool:
        """
        Ping the configured MongoDB to validate connectivity.

        This backs the system health connectivity probe.
        """
        try:
            if self._client is None:
                self.connect()
            assert self._client is not None
            self._client.admin.command("ping", maxTimeMS=int(max(250, timeout_ms)))
            return True
        except PyMongoError:
            logger.exception("Mongo ping failed (PyMongoError)")
            return False

    def close(self) -> None:
        """Close the Mongo client."""
        with self._lock:
            if self._client is not None:
                try:
                    self._client.close()
                except PyMongoError:
                    logger.exception("Error closing MongoClient")
                self._client = None

    def db(self) -> Database:
        """Return the operational database handle."""
        if self._client is None:
            self.connect()
        assert self._client is not None
        return self._client[self._db_name]

    def collections(self) -> MongoCollections:
        db = self.db()
        return MongoCollections(
            rides=db["rides"],
            drivers=db["drivers"],
            users=db["users"],
            ratings=db["ratings"],
        )

    def init_indexes(self) -> None:
        """Create the indexes backing the dashboard query shapes (idempotent)."""
        cols = self.collections()

        # ---- Rides ----
        # Ride stats per window and active-ride counts.
        cols.rides.create_index([("status", ASCENDING), ("createdAt", DESCENDING)], name="idx_rides_status_createdAt")
        cols.rides.create_index([("createdAt", DESCENDING)], name="idx_rides_createdAt_desc")
        # Revenue windows and stuck-ride detection both key on last update.
        cols.rides.create_index([("status", ASCENDING), ("updatedAt", DESCENDING)], name="idx_rides_status_updatedAt")

        # ---- Drivers ----
        cols.drivers.create_index([("status", ASCENDING)], name="idx_drivers_status")

        # ---- Users ----
        cols.users.create_index([("lastLogin", DESCENDING)], name="idx_users_lastLogin_desc")
        cols.users.create_index([("createdAt", DESCENDING)], name="idx_users_createdAt_desc")

        # ---- Ratings ----
        cols.ratings.create_index([("ratedByUserId", ASCENDING)], name="idx_ratings_ratedByUserId")
