# src/project_tms/storage/factory.py

from __future__ import annotations

import logging

from ..config import Settings
from ..core.ports import PersistenceGateway
from .fallback import FallbackGateway
from .json_files import JsonFileGateway
from .local_cache import LocalCacheGateway
from .remote import RemoteGateway

logger = logging.getLogger(__name__)


def build_gateway(settings: Settings) -> PersistenceGateway:
    """
    Pick the storage backend for settings.storage_mode:
    - local:  SQLite key/value cache only
    - files:  JSON files in settings.storage_dir
    - remote: file server API, falling back to the local cache when unreachable
    """
    mode = settings.storage_mode
    if mode == "files":
        gateway: PersistenceGateway = JsonFileGateway(settings.storage_dir)
    elif mode == "remote":
        gateway = FallbackGateway(
            RemoteGateway(settings.api_url, timeout=settings.request_timeout_seconds),
            LocalCacheGateway(settings.cache_db_path),
        )
    else:
        gateway = LocalCacheGateway(settings.cache_db_path)

    logger.info("Storage mode: %s", mode)
    return gateway
