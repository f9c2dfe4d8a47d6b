"""Base agent framework with lifecycle management.

Each agent is one source pipeline:
- compute(context): fetch, normalize, classify, rank and summarize into a
  RankedResult. Raises SourceError only when the whole source failed.
- execute(context): compute, then write the envelope artifact.
- run(context): lifecycle wrapper with status tracking, timing and error
  capture; the result is stored in the context for downstream consumers.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from db.models import RankedResult
from pipeline.errors import PersistenceFailure, SourceError
from pipeline.sink import to_envelope, write_artifact

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AgentStatus(Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class AgentResult:
    agent_name: str
    status: AgentStatus = AgentStatus.IDLE
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_seconds: float = 0.0
    data: Dict[str, Any] = field(default_factory=dict)
    summary: str = ""
    error: Optional[str] = None
    items_processed: int = 0


@dataclass
class BatchOutcome:
    """Per-market fan-out results, in input order."""
    results: List[Any] = field(default_factory=list)
    failures: int = 0
    errors: List[str] = field(default_factory=list)


class BaseAgent(ABC):
    """Abstract base agent with lifecycle management."""

    artifact_name: Optional[str] = None

    def __init__(self, name: str, config: Any = None) -> None:
        self.name = name
        self.config = config
        self.status = AgentStatus.IDLE
        self.last_result: Optional[AgentResult] = None

    @abstractmethod
    def compute(self, context: Dict[str, Any]) -> RankedResult:
        """Build this source's ranked result. Implemented by subclasses."""
        ...

    def artifact_path(self, context: Dict[str, Any]) -> Optional[Path]:
        if not self.artifact_name:
            return None
        return Path(context["config"].output.data_dir) / self.artifact_name

    def execute(self, context: Dict[str, Any]) -> AgentResult:
        ranked = self.compute(context)
        envelope = to_envelope(ranked)
        data: Dict[str, Any] = {
            "envelope": envelope,
            "failures": ranked.failures,
        }

        path = self.artifact_path(context)
        if path is not None:
            try:
                write_artifact(path, envelope)
                data["artifact"] = str(path)
            except PersistenceFailure as exc:
                # The in-memory result is still good; only durability failed.
                logger.error("Agent '%s' could not persist: %s", self.name, exc)
                data["persistence_error"] = str(exc)

        failure_note = f" ({ranked.failures} failed sub-queries)" if ranked.failures else ""
        return AgentResult(
            agent_name=self.name,
            status=AgentStatus.SUCCESS,
            items_processed=ranked.count,
            summary=f"Ranked {ranked.count} records{failure_note}.",
            data=data,
        )

    def _failed(self, exc: Exception) -> AgentResult:
        return AgentResult(agent_name=self.name, status=AgentStatus.ERROR,
                           error=str(exc))

    def run(self, context: Dict[str, Any]) -> AgentResult:
        """Lifecycle wrapper: timing, error capture, status tracking.

        Never raises; a failed source comes back as an ERROR result.
        """
        self.status = AgentStatus.RUNNING
        started = datetime.now(timezone.utc)

        try:
            result = self.execute(context)
        except SourceError as exc:
            logger.error("Agent '%s' source failed: %s", self.name, exc)
            result = self._failed(exc)
        except Exception as exc:
            logger.exception("Agent '%s' crashed", self.name)
            result = self._failed(exc)

        completed = datetime.now(timezone.utc)
        result.started_at = started.isoformat()
        result.completed_at = completed.isoformat()
        result.duration_seconds = (completed - started).total_seconds()
        self.status = result.status

        logger.info(
            "Agent '%s' %s in %.1fs: %s",
            self.name, result.status.value, result.duration_seconds,
            result.error or result.summary,
        )

        # Downstream consumers in the same cycle read results from the context.
        context[f"result_{self.name}"] = result
        self.last_result = result
        return result

    # ── Per-market fan-out ───────────────────────────────────

    def _collect_batch(self, items: Sequence[T],
                       fetch: Callable[[T], Any],
                       label: Callable[[T], str] = str,
                       max_workers: int = 1,
                       delay: float = 0.0) -> BatchOutcome:
        """Run ``fetch`` for every item; one failure never aborts the rest.

        Sequential (with ``delay`` between calls) when ``max_workers`` is 1,
        otherwise a bounded thread pool. Results come back in input order
        either way, so completion order never leaks into ranking.
        """
        slots: List[Any] = [None] * len(items)
        ok = [False] * len(items)
        outcome = BatchOutcome()

        def record_failure(position: int, exc: Exception) -> None:
            outcome.failures += 1
            message = f"{label(items[position])}: {exc}"
            outcome.errors.append(message)
            logger.warning("Agent '%s' sub-query failed: %s", self.name, message)

        if max_workers <= 1:
            for position, item in enumerate(items):
                if position and delay > 0:
                    time.sleep(delay)
                try:
                    slots[position] = fetch(item)
                    ok[position] = True
                except Exception as exc:
                    record_failure(position, exc)
        else:
            with ThreadPoolExecutor(max_workers=max_workers) as executor:
                futures = [executor.submit(fetch, item) for item in items]
                for position, future in enumerate(futures):
                    try:
                        slots[position] = future.result()
                        ok[position] = True
                    except Exception as exc:
                        record_failure(position, exc)

        outcome.results = [slots[i] for i in range(len(items)) if ok[i]]
        return outcome
