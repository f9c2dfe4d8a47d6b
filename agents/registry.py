"""Agent registry for orchestration.

Holds one agent per source pipeline. Sources are independent: running
them in sequence never lets one source's failure stop the next, since each
agent's ``run`` captures its own errors into its AgentResult.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional, Type

from .base import AgentResult, AgentStatus, BaseAgent


class AgentRegistry:
    def __init__(self) -> None:
        self._agents: OrderedDict[str, BaseAgent] = OrderedDict()

    @classmethod
    def from_classes(cls, agent_classes: Iterable[Type[BaseAgent]],
                     config: Any = None) -> AgentRegistry:
        registry = cls()
        for agent_cls in agent_classes:
            registry.register(agent_cls(config=config))
        return registry

    def register(self, agent: BaseAgent) -> None:
        """Register an agent by its name."""
        self._agents[agent.name] = agent

    def get(self, name: str) -> Optional[BaseAgent]:
        return self._agents.get(name)

    @property
    def agents(self) -> List[BaseAgent]:
        return list(self._agents.values())

    @property
    def agent_names(self) -> List[str]:
        return list(self._agents.keys())

    def run_all(self, context: Dict[str, Any]) -> List[AgentResult]:
        """Execute all agents sequentially in registration order."""
        return [agent.run(context) for agent in self._agents.values()]

    def run_one(self, name: str, context: Dict[str, Any]) -> AgentResult:
        """Execute a single agent by name."""
        agent = self._agents.get(name)
        if not agent:
            raise KeyError(f"Agent '{name}' not registered.")
        return agent.run(context)

    @staticmethod
    def failed(results: Iterable[AgentResult]) -> List[AgentResult]:
        return [r for r in results if r.status == AgentStatus.ERROR]
