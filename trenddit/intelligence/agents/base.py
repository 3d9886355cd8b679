"""Base class for intelligence agents."""

from abc import ABC, abstractmethod
import logging

from ..models.analysis import AgentMetadata, Analysis, Context, Outcome, ReasoningStep


logger = logging.getLogger(__name__)


class IntelligenceAgent(ABC):
    """
    Abstract base class for analysis agents.
    All agents must implement analyze, learn, get_confidence and
    get_reasoning_chain.
    """

    def __init__(self, agent_type: str, version: str = "1.0.0", capabilities: list[str] | None = None):
        self.agent_type = agent_type
        self.version = version
        self.capabilities = list(capabilities or [])

    @abstractmethod
    async def analyze(self, context: Context) -> Analysis:
        """
        Analyze a context.

        Args:
            context: Company, audience and question for this call

        Returns:
            Complete analysis with its reasoning chain
        """
        pass

    @abstractmethod
    async def learn(self, outcome: Outcome):
        """Adjust the confidence baseline from an observed outcome."""
        pass

    @abstractmethod
    def get_confidence(self) -> float:
        pass

    @abstractmethod
    def get_reasoning_chain(self) -> list[ReasoningStep]:
        """Reasoning steps of the most recently finished analyze call."""
        pass

    def can_handle(self, context: Context) -> bool:
        return True

    def get_metadata(self) -> AgentMetadata:
        return AgentMetadata(
            type=self.agent_type,
            version=self.version,
            capabilities=list(self.capabilities),
        )

    async def health_check(self) -> bool:
        """
        Liveness probe. Subclasses override _check_health for real checks.
        """
        try:
            return bool(await self._check_health())
        except Exception as e:
            logger.error(f"Health check failed for {self.agent_type}: {e}")
            return False

    async def _check_health(self) -> bool:
        return True
