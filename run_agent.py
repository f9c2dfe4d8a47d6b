#!/usr/bin/env python3
"""Standalone CLI to run the whale-watch source pipelines.

Usage:
    python run_agent.py <agent_name> [agent_name ...]
    python run_agent.py clob_whales onchain kalshi
    python run_agent.py --all
    python run_agent.py --schedule

Designed for GitHub Actions, cron jobs, or manual CLI execution. Each
agent writes its JSON artifact; exit status is 1 when any agent errored.
"""

import sys
import time
import logging

from config import load_config
from db.database import DatabaseManager
from db.queries import TradeQueries
from agents import ALL_AGENTS
from agents.registry import AgentRegistry
from clients.kalshi_client import KalshiClient
from clients.polygon_client import PolygonClient
from clients.polymarket_client import PolymarketClient
from pipeline.cache import MemoryCache

logger = logging.getLogger(__name__)

AGENT_CLASSES = {cls().name: cls for cls in ALL_AGENTS}


def build_context(config, cache=None):
    """Build the shared context dict that agents expect."""
    db = DatabaseManager(db_path=config.db_path, database_url=config.database_url)
    return {
        "config": config,
        "db": db,
        "queries": TradeQueries(db),
        "polymarket": PolymarketClient(config.polymarket),
        "kalshi": KalshiClient(config.kalshi),
        "polygon": PolygonClient(config.polygon),
        # Long-lived: market enrichment survives across cycles.
        "cache": cache if cache is not None else MemoryCache(),
    }


def run_scheduler(config):
    from scheduler.runner import SchedulerRunner

    cache = MemoryCache()
    registry = AgentRegistry.from_classes(ALL_AGENTS, config=config)
    runner = SchedulerRunner(
        registry,
        context_factory=lambda: build_context(config, cache=cache),
        config=config.scheduler,
    )
    runner.start()
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        runner.stop()


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if len(sys.argv) < 2:
        print("Usage: python run_agent.py <agent_name> [agent_name ...]")
        print("       python run_agent.py --all")
        print("       python run_agent.py --schedule")
        print(f"Available agents: {', '.join(AGENT_CLASSES.keys())}")
        sys.exit(1)

    config = load_config()

    if "--schedule" in sys.argv:
        run_scheduler(config)
        return

    # Determine which agents to run
    if "--all" in sys.argv:
        agent_names = list(AGENT_CLASSES.keys())
    else:
        agent_names = sys.argv[1:]

    # Validate agent names
    for name in agent_names:
        if name not in AGENT_CLASSES:
            print(f"Unknown agent: {name}")
            print(f"Available: {', '.join(AGENT_CLASSES.keys())}")
            sys.exit(1)

    context = build_context(config)

    # Register only the requested agents
    registry = AgentRegistry.from_classes(
        (AGENT_CLASSES[name] for name in agent_names), config=config)

    # Sources are independent; one failing never stops the rest.
    results = registry.run_all(context)
    for result in results:
        logger.info(
            "Agent '%s' completed: %s (%d items in %.1fs)",
            result.agent_name, result.status.value,
            result.items_processed, result.duration_seconds,
        )

    if registry.failed(results):
        sys.exit(1)


if __name__ == "__main__":
    main()
