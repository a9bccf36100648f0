"""Speech responder abstract base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Mapping, Sequence


class SpeechResponder(ABC):
    """Language-model collaborator proposing the next utterance or a JSON order."""

    name: str

    @abstractmethod
    async def generate_reply(self, history: Sequence[Mapping[str, str]]) -> str:
        """Return the assistant reply for a role/content message history."""

    def describe(self) -> str:
        return self.__doc__ or self.name
