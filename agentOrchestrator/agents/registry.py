"""Agent Registry - in-memory catalog of agent definitions.

Query modes:
- get(name): by unique name
- find(capability): by capability tag
- get_by_skill(skill): by skill tag
- get_by_type(fragment): by name fragment (e.g. "review")

The registry is shared across all workflow runs. It is read-heavy with rare
mutation, so every operation holds one re-entrant lock: a reader never sees a
half-applied registration, and list results are copies rather than live views.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from agentOrchestrator.utils.error_handler import AgentConfigurationError, UnknownAgentError

from .executors import as_executor
from .interfaces import Executor
from .schema import AgentDefinition

LOGGER = logging.getLogger(__name__)


class AgentRegistry:
    """Agent registry keyed by agent name.

    Architecture:
    - _agents: registered definitions (insertion ordered)
    - _instances: executor instance cache (one per agent, created on demand)
    """

    def __init__(self, definitions: Iterable[AgentDefinition] = ()):
        self._lock = threading.RLock()
        self._agents: Dict[str, AgentDefinition] = {}
        self._instances: Dict[str, Executor] = {}
        for definition in definitions:
            self.register(definition)

    # ========== Registration Methods ==========

    def register(self, definition: AgentDefinition) -> None:
        """Register an agent; re-registering a name replaces the old definition.

        Args:
            definition: Agent definition
        """
        with self._lock:
            replaced = definition.name in self._agents
            self._agents[definition.name] = definition
            # A new definition may carry a new factory
            self._instances.pop(definition.name, None)
        LOGGER.debug(f"{'Re-registered' if replaced else 'Registered'} agent: {definition.name}")

    def unregister(self, name: str) -> None:
        """Remove an agent if present (no-op otherwise)."""
        with self._lock:
            removed = self._agents.pop(name, None)
            self._instances.pop(name, None)
        if removed is not None:
            LOGGER.debug(f"Unregistered agent: {name}")

    # ========== Query Methods ==========

    def get(self, name: str) -> Optional[AgentDefinition]:
        """Get agent definition by name.

        Returns:
            Agent definition, or None if not registered
        """
        with self._lock:
            return self._agents.get(name)

    def require(self, name: str) -> AgentDefinition:
        """Get agent definition by name, raising if unknown.

        Raises:
            UnknownAgentError: Agent is not registered
        """
        definition = self.get(name)
        if definition is None:
            raise UnknownAgentError(name)
        return definition

    def find(self, capability: str) -> List[AgentDefinition]:
        """Find agents whose capability set contains ``capability``."""
        with self._lock:
            return [agent for agent in self._agents.values() if agent.has_capability(capability)]

    def get_by_skill(self, skill: str) -> List[AgentDefinition]:
        """Find agents whose skill set contains ``skill``."""
        with self._lock:
            return [agent for agent in self._agents.values() if agent.has_skill(skill)]

    def get_by_type(self, agent_type: str) -> List[AgentDefinition]:
        """Find agents whose name contains ``agent_type`` (e.g. "review")."""
        with self._lock:
            return [agent for agent in self._agents.values() if agent_type in agent.name]

    def list_all(self) -> List[AgentDefinition]:
        """Snapshot of all registered agents; later mutations are not reflected."""
        with self._lock:
            return list(self._agents.values())

    def names(self) -> List[str]:
        with self._lock:
            return list(self._agents)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._agents

    def __len__(self) -> int:
        with self._lock:
            return len(self._agents)

    # ========== Instance Management ==========

    def get_executor(self, name: str) -> Executor:
        """Get the executor for an agent (created once via its factory, then cached).

        Args:
            name: Agent name

        Returns:
            Executor instance

        Raises:
            UnknownAgentError: Agent is not registered
            AgentConfigurationError: Agent has no factory or the factory failed
        """
        with self._lock:
            definition = self._agents.get(name)
            if definition is None:
                raise UnknownAgentError(name)

            instance = self._instances.get(name)
            if instance is not None:
                return instance

            if definition.factory is None:
                raise AgentConfigurationError(f"Agent '{name}' has no executor factory")

            try:
                instance = as_executor(definition.factory())
            except Exception as e:
                raise AgentConfigurationError(f"Failed to create executor for '{name}': {e}") from e

            self._instances[name] = instance
        LOGGER.info(f"Created executor instance: {name}")
        return instance

    # ========== Validation ==========

    def validate_tags(
        self,
        known_capabilities: Optional[Iterable[str]] = None,
        known_skills: Optional[Iterable[str]] = None,
    ) -> List[str]:
        """Check every agent's tags against a closed vocabulary.

        Args:
            known_capabilities: Allowed capability tags (None skips the check)
            known_skills: Allowed skill tags (None skips the check)

        Returns:
            List of problems, empty when all tags are known
        """
        problems: List[str] = []
        capabilities = set(known_capabilities) if known_capabilities is not None else None
        skills = set(known_skills) if known_skills is not None else None

        for agent in self.list_all():
            if capabilities is not None:
                for tag in sorted(agent.capabilities - capabilities):
                    problems.append(f"{agent.name}: unknown capability '{tag}'")
            if skills is not None:
                for tag in sorted(agent.skills - skills):
                    problems.append(f"{agent.name}: unknown skill '{tag}'")
        return problems

    # ========== Statistics ==========

    def get_stats(self) -> Dict[str, Any]:
        """Get registry statistics."""
        with self._lock:
            return {
                "registered": len(self._agents),
                "cached_instances": len(self._instances),
                "capabilities": len({c for a in self._agents.values() for c in a.capabilities}),
                "skills": len({s for a in self._agents.values() for s in a.skills}),
            }
