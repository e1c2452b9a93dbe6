from __future__ import annotations

from abc import ABC, abstractmethod


class TextGenerator(ABC):
    """Opaque text-generation provider: prompt in, text out."""

    @abstractmethod
    async def generate(self, prompt: str, system: str | None = None) -> str:
        ...

    async def aclose(self) -> None:
        """Release any underlying connections. Default does nothing."""
