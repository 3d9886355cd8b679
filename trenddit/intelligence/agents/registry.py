"""Registry of available intelligence agents."""

import asyncio
from typing import Optional
import logging

from .base import IntelligenceAgent
from ..models.analysis import Context


logger = logging.getLogger(__name__)


class AgentRegistry:
    """
    Map from agent type to agent instance.

    Constructed explicitly and passed to whoever needs it; cleared when the
    owning service shuts down.
    """

    def __init__(self, agents: Optional[list[IntelligenceAgent]] = None):
        self._agents: dict[str, IntelligenceAgent] = {}
        for agent in agents or []:
            self.register(agent)

    def __len__(self) -> int:
        return len(self._agents)

    def register(self, agent: IntelligenceAgent):
        """Register an agent, replacing any agent of the same type."""
        metadata = agent.get_metadata()
        if metadata.type in self._agents:
            logger.info(f"Replacing agent: {metadata.type}")
        self._agents[metadata.type] = agent
        logger.info(f"Registered agent: {metadata.type} v{metadata.version}")

    def unregister(self, agent_type: str) -> bool:
        if agent_type in self._agents:
            del self._agents[agent_type]
            logger.info(f"Unregistered agent: {agent_type}")
            return True
        return False

    def get(self, agent_type: str) -> Optional[IntelligenceAgent]:
        return self._agents.get(agent_type)

    def get_all(self) -> list[IntelligenceAgent]:
        return list(self._agents.values())

    def get_available(self, context: Context) -> list[IntelligenceAgent]:
        """Agents whose can_handle accepts the context."""
        available = []
        for agent in self.get_all():
            try:
                if agent.can_handle(context):
                    available.append(agent)
            except Exception as e:
                logger.error(f"can_handle failed for {agent.agent_type}: {e}")
        return available

    async def get_healthy(self) -> list[IntelligenceAgent]:
        """
        Run all health checks concurrently.
        Agents whose check raises or returns a falsy value are left out.
        """
        agents = self.get_all()
        if not agents:
            return []

        results = await asyncio.gather(
            *(agent.health_check() for agent in agents),
            return_exceptions=True,
        )

        healthy = []
        for agent, result in zip(agents, results):
            if isinstance(result, Exception):
                logger.error(f"Health check error for {agent.agent_type}: {result}")
            elif result:
                healthy.append(agent)
            else:
                logger.warning(f"Agent unhealthy: {agent.agent_type}")
        return healthy

    def clear(self):
        self._agents.clear()
