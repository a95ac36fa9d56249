from __future__ import annotations

from dataclasses import dataclass

from src.ops_metrics.config import BackendConfig
from src.ops_metrics.db.mongo import MongoManager
from src.ops_metrics.services.cache import TTLCache
from src.ops_metrics.services.dashboard_service import DashboardService
from src.ops_metrics.services.mongo_source import MongoDataSource


@dataclass
class AppState:
    """Typed container for the shared singletons a host application holds."""

    config: BackendConfig
    mongo: MongoManager
    cache: TTLCache
    dashboard: DashboardService


# PUBLIC_INTERFACE
def build_state(config: BackendConfig) -> AppState:
    """Wire the Mongo manager, cache and dashboard service from config."""
    mongo = MongoManager(config.mongo_uri, config.mongo_db_name)
    cache = TTLCache(config.cache_ttl_sec)
    dashboard = DashboardService(MongoDataSource(mongo), config, cache=cache)
    return AppState(config=config, mongo=mongo, cache=cache, dashboard=dashboard)


# PUBLIC_INTERFACE
def close_state(state: AppState) -> None:
    """Release the Mongo client and drop cached dashboard data."""
    state.cache.clear()
    state.mongo.close()
