from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from pymongo.errors import PyMongoError

from src.ops_metrics.db.mongo import MongoManager
from src.ops_metrics.errors import DataSourceError
from src.ops_metrics.services.data_source import (
    RIDE_COMPLETED,
    RIDE_IN_PROGRESS,
    DailyRevenue,
    RevenueAggregate,
)

logger = logging.getLogger(__name__)


async def _run_in_thread(func, *args, **kwargs):
    """Run blocking pymongo calls in a worker thread, translating driver errors."""
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    except PyMongoError as exc:
        raise DataSourceError(f"Mongo query failed: {exc}") from exc


def _safe_float(v: Any, default: float = 0.0) -> float:
    try:
        return float(v)
    except Exception:
        return default


def _range(start: Optional[datetime], end: Optional[datetime]) -> Dict[str, datetime]:
    bounds: Dict[str, datetime] = {}
    if start is not None:
        bounds["$gte"] = start
    if end is not None:
        bounds["$lt"] = end
    return bounds


class MongoDataSource:
    """DataSource over the operational MongoDB (rides, drivers, users, ratings)."""

    def __init__(self, mongo: MongoManager):
        self._mongo = mongo

    # Collection handles are resolved inside the worker thread: the first call builds the
    # MongoClient, which can block on SRV/DNS lookups and raise ConfigurationError.
    async def _count(self, collection: str, query: Dict[str, Any]) -> int:
        return int(await _run_in_thread(lambda: self._mongo.db()[collection].count_documents(query)))

    async def _aggregate(self, collection: str, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return await _run_in_thread(lambda: list(self._mongo.db()[collection].aggregate(pipeline)))

    async def _find(self, collection: str, query: Dict[str, Any], **kwargs) -> List[Dict[str, Any]]:
        return await _run_in_thread(lambda: list(self._mongo.db()[collection].find(query, **kwargs)))

    async def count_rides(
        self,
        *,
        statuses: Optional[Iterable[str]] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> int:
        query: Dict[str, Any] = {}
        if statuses is not None:
            query["status"] = {"$in": list(statuses)}
        created = _range(created_from, created_to)
        if created:
            query["createdAt"] = created
        return await self._count("rides", query)

    async def aggregate_ride_revenue(self, updated_from: datetime, updated_to: datetime) -> RevenueAggregate:
        # updatedAt stands in for the completion time.
        pipeline = [
            {"$match": {"status": RIDE_COMPLETED, "updatedAt": _range(updated_from, updated_to)}},
            {"$group": {"_id": None, "sum": {"$sum": {"$toDouble": "$farePrice"}}, "count": {"$sum": 1}}},
        ]
        docs = await self._aggregate("rides", pipeline)
        if not docs:
            return RevenueAggregate(sum=0.0, count=0)
        return RevenueAggregate(sum=_safe_float(docs[0].get("sum")), count=int(docs[0].get("count") or 0))

    async def sample_completed_fares(self, limit: int) -> List[float]:
        docs = await self._find(
            "rides",
            {"status": RIDE_COMPLETED},
            projection={"_id": 0, "farePrice": 1},
            limit=max(1, int(limit)),
        )
        return [_safe_float(d.get("farePrice")) for d in docs]

    async def count_drivers(self, status: str) -> int:
        return await self._count("drivers", {"status": status})

    async def list_driver_ratings(self) -> List[float]:
        docs = await self._find(
            "drivers",
            {"averageRating": {"$ne": None}},
            projection={"_id": 0, "averageRating": 1},
        )
        return [_safe_float(d.get("averageRating")) for d in docs if d.get("averageRating") is not None]

    async def count_users(
        self,
        *,
        last_login_from: Optional[datetime] = None,
        last_login_to: Optional[datetime] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
    ) -> int:
        query: Dict[str, Any] = {}
        last_login = _range(last_login_from, last_login_to)
        if last_login:
            query["lastLogin"] = last_login
        created = _range(created_from, created_to)
        if created:
            query["createdAt"] = created
        return await self._count("users", query)

    async def list_user_rating_averages(self) -> List[float]:
        # One average per rating author; the dashboard then averages these averages.
        pipeline = [
            {"$group": {"_id": "$ratedByUserId", "avg": {"$avg": {"$toDouble": "$ratingValue"}}}},
        ]
        docs = await self._aggregate("ratings", pipeline)
        return [_safe_float(d.get("avg")) for d in docs if d.get("avg") is not None]

    async def probe_connectivity(self) -> bool:
        return bool(await asyncio.to_thread(self._mongo.ping))

    async def count_stuck_rides(self, updated_before: datetime) -> int:
        return await self._count("rides", {"status": RIDE_IN_PROGRESS, "updatedAt": {"$lt": updated_before}})

    async def revenue_by_day(self, updated_from: datetime, updated_to: datetime, tz_name: str) -> List[DailyRevenue]:
        pipeline = [
            {"$match": {"status": RIDE_COMPLETED, "updatedAt": _range(updated_from, updated_to)}},
            {
                "$group": {
                    "_id": {"$dateToString": {"format": "%Y-%m-%d", "date": "$updatedAt", "timezone": tz_name}},
                    "amount": {"$sum": {"$toDouble": "$farePrice"}},
                    "count": {"$sum": 1},
                }
            },
            {"$sort": {"_id": 1}},
        ]
        docs = await self._aggregate("rides", pipeline)
        return [
            DailyRevenue(
                day=date.fromisoformat(d["_id"]),
                amount=_safe_float(d.get("amount")),
                count=int(d.get("count") or 0),
            )
            for d in docs
            if d.get("_id")
        ]
