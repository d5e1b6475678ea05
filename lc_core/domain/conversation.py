from typing import List, Optional, Protocol, Sequence

from .models import ChatMessage


class HistoryStore(Protocol):
    def load(self) -> Optional[List[ChatMessage]]:
        ...

    def save(self, messages: Sequence[ChatMessage], max_history: int) -> None:
        ...

    def clear(self) -> bool:
        ...

    def show(self) -> str:
        ...
