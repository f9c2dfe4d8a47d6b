"""APScheduler integration for periodic source pipelines.

One interval job per registered agent. A cycle never overlaps the previous
run of the same agent: APScheduler's ``max_instances=1`` covers jobs it
launches, and the in-flight set covers manual ``run_now`` calls racing a
scheduled tick. Every run gets a fresh context, so per-cycle caches never
outlive their cycle.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional, Set

from apscheduler.schedulers.background import BackgroundScheduler

from agents.base import AgentResult
from agents.registry import AgentRegistry
from config import SchedulerConfig

logger = logging.getLogger(__name__)


class SchedulerRunner:
    def __init__(self, registry: AgentRegistry,
                 context_factory: Callable[[], Dict[str, Any]],
                 config: Optional[SchedulerConfig] = None) -> None:
        self.registry = registry
        self.context_factory = context_factory
        self.config = config or SchedulerConfig()
        self.scheduler = BackgroundScheduler()
        self._running = False
        self._in_flight: Set[str] = set()
        self._lock = threading.Lock()

    def interval_for(self, agent_name: str) -> Optional[int]:
        return getattr(self.config, f"{agent_name}_interval_minutes", None)

    def run_now(self, agent_name: str) -> Optional[AgentResult]:
        """Run one agent cycle unless the previous one is still going.

        Returns None for a skipped tick.
        """
        with self._lock:
            if agent_name in self._in_flight:
                logger.warning("Skipping '%s': previous cycle still running", agent_name)
                return None
            self._in_flight.add(agent_name)

        try:
            context = self.context_factory()
            result = self.registry.run_one(agent_name, context)
            logger.info(
                "Agent '%s' completed: %s (%d items in %.1fs)",
                agent_name, result.status.value,
                result.items_processed, result.duration_seconds,
            )
            if result.error:
                logger.error("Agent '%s' error: %s", agent_name, result.error)
            return result
        except Exception:
            logger.exception("Failed to run agent '%s'", agent_name)
            return None
        finally:
            with self._lock:
                self._in_flight.discard(agent_name)

    def is_in_flight(self, agent_name: str) -> bool:
        with self._lock:
            return agent_name in self._in_flight

    def setup(self) -> None:
        """Configure scheduled jobs for each agent."""
        for agent_name in self.registry.agent_names:
            interval = self.interval_for(agent_name)
            if not interval:
                logger.warning("No interval configured for '%s', not scheduling", agent_name)
                continue
            self.scheduler.add_job(
                self.run_now,
                "interval",
                minutes=interval,
                args=[agent_name],
                id=f"agent_{agent_name}",
                name=f"{agent_name.replace('_', ' ').title()} Agent",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            logger.info("Scheduled '%s' agent every %d minutes", agent_name, interval)

    def start(self) -> None:
        """Start the scheduler."""
        if not self._running:
            self.setup()
            self.scheduler.start()
            self._running = True
            logger.info("Scheduler started.")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self._running:
            self.scheduler.shutdown(wait=False)
            self._running = False
            logger.info("Scheduler stopped.")

    @property
    def is_running(self) -> bool:
        return self._running

    def get_jobs(self) -> list:
        """Return list of scheduled jobs."""
        return self.scheduler.get_jobs()
