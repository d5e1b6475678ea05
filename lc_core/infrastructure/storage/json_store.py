import json
import os
from pathlib import Path
from typing import List, Optional, Sequence
from uuid import uuid4

from lc_core.config.settings import memory_path
from lc_core.domain.codec import messages_from_payload, messages_to_payload
from lc_core.domain.conversation import HistoryStore
from lc_core.domain.exceptions import BusinessError, CorruptHistoryError, MalformedMessageError
from lc_core.domain.models import ChatMessage
from lc_core.infrastructure.logging.logger import logger


MAX_DISPLAY_LENGTH = 500
ROLE_LABELS = {"user": "User", "assistant": "Assistant", "system": "System"}
SEPARATOR = "-" * 41


class JsonHistoryStore(HistoryStore):
    """把最近若干轮对话保存为一个 JSON 数组文件。"""

    def __init__(self, path: str | Path | None = None):
        self._path = Path(path) if path else memory_path()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[List[ChatMessage]]:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise CorruptHistoryError(code="CORRUPT_HISTORY", message=f"Failed to read {self._path}: {e}")
        try:
            return messages_from_payload(data)
        except MalformedMessageError as e:
            raise CorruptHistoryError(code="CORRUPT_HISTORY", message=f"Invalid history in {self._path}: {e.message}")

    def save(self, messages: Sequence[ChatMessage], max_history: int) -> None:
        """保存非 system 消息中最近的 max_history 轮（2 * max_history 条）。"""

        kept = [m for m in messages if m.role != "system"]
        limit = 2 * max_history
        kept = kept[-limit:] if limit > 0 else []
        tmp_path = self._path.with_name(f"{self._path.name}.{uuid4().hex}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(messages_to_payload(kept), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
            os.replace(tmp_path, self._path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            raise BusinessError(code="STORE_WRITE_ERROR", message=str(e))

    def clear(self) -> bool:
        """删除历史文件；返回是否真的删除了文件，文件不存在也算成功。"""

        if not self._path.exists():
            return False
        try:
            self._path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise BusinessError(code="STORE_DELETE_ERROR", message=str(e))
        return True

    def show(self) -> str:
        try:
            messages = self.load()
        except CorruptHistoryError as e:
            logger.warning(f"Ignoring corrupt history: {e.message}", extra={"extra": {"code": e.code}})
            messages = None
        return format_history(messages or [])


def format_history(messages: Sequence[ChatMessage]) -> str:
    if not messages:
        return "No conversation history found."
    lines = ["Conversation History:", SEPARATOR]
    for msg in messages:
        lines.append(f"[{ROLE_LABELS.get(msg.role, msg.role)}]:")
        content = msg.content
        if len(content) > MAX_DISPLAY_LENGTH:
            content = content[:MAX_DISPLAY_LENGTH] + "... [truncated]"
        lines.append(content)
        lines.append("")
    lines.append(SEPARATOR)
    lines.append(f"Total messages: {len(messages)}")
    return "\n".join(lines)
