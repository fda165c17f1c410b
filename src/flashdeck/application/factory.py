"""
Scheduler Factory
Assembles a fully wired Scheduler from configuration.
"""

import logging
import random

from flashdeck.application.algorithm import ReviewAlgorithm
from flashdeck.application.config import AppConfig
from flashdeck.application.scheduler import Scheduler
from flashdeck.domain.ports import ItemStore
from flashdeck.infrastructure.adapters.json_store import JsonItemStore
from flashdeck.infrastructure.adapters.memory_store import MemoryItemStore
from flashdeck.infrastructure.catalog import load_catalog

logger = logging.getLogger(__name__)


def get_item_store(config: AppConfig) -> ItemStore:
    """
    Returns the ItemStore implementation selected by config.backend.
    """
    if config.backend == "memory":
        return MemoryItemStore(items=load_catalog(config.catalog_path))

    return JsonItemStore(
        catalog_path=config.catalog_path,
        progress_path=config.progress_path,
    )


async def build_scheduler(config: AppConfig, store: ItemStore | None = None) -> Scheduler:
    """
    Construct store, algorithm and scheduler in dependency order.

    Algorithm settings are layered: AppConfig.algorithm first, then any
    overrides persisted in the store.
    """
    store = store or get_item_store(config)

    algo_config = config.algorithm
    try:
        algo_config = algo_config.merged(await store.load_algorithm_overrides())
    except Exception as e:
        logger.warning(f"Ignoring stored algorithm settings: {e}")

    # Independent streams for interval jitter and tier selection
    jitter_rng = random.Random(config.seed)
    choice_rng = random.Random(None if config.seed is None else config.seed + 1)

    algorithm = ReviewAlgorithm(config=algo_config, rng=jitter_rng)
    return Scheduler(store=store, algorithm=algorithm, rng=choice_rng)
