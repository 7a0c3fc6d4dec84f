"""Abstract base for text-generation backends used by participant turns."""

from abc import ABC, abstractmethod

from focus_group.models import ModelResponse


class ProviderError(Exception):
    """Raised when a generation call fails."""

    def __init__(self, provider_name: str, message: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"[{provider_name}] {message}")


class AIProvider(ABC):
    """A fallible, latency-bearing text generator."""

    @abstractmethod
    def name(self) -> str:
        """Return the short provider name (e.g. 'claude', 'synthetic')."""
        ...

    @abstractmethod
    def model_string(self) -> str:
        ...

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        round_number: int,
        archetype: str | None = None,
    ) -> ModelResponse:
        """Generate a short reply for the given prompt.

        Args:
            prompt: The full prompt text to send.
            round_number: The discussion round (1-indexed, 0 for health checks).
            archetype: Persona archetype the reply is spoken as. Only backends
                that keep their own persona profiles use it.

        Raises:
            ProviderError: On API failure, timeout, or empty response.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources. Most SDK clients need nothing here."""
        return None
