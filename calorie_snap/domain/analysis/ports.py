"""
Ports (Interfaces) for the analysis pipeline.

Design Pattern: Ports & Adapters (Hexagonal Architecture)
"""

from typing import Optional, Protocol, runtime_checkable

from calorie_snap.domain.analysis.models import ImagePayload


@runtime_checkable
class IVisionModel(Protocol):
    """
    Port for the external vision-language model.

    Given a text prompt and an inline image, returns free-form text that
    usually, not always, embeds JSON.
    """

    model: str

    async def invoke(
        self,
        prompt: str,
        payload: ImagePayload,
        timeout_s: Optional[float] = None,
    ) -> str:
        """
        Raises:
            AnalysisTimeoutError: Deadline expired
            ConfigurationError: Credential rejected
        """
        ...

    async def close(self) -> None: ...
