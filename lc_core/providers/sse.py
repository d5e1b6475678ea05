"""SSE 流解析。

OpenAI 兼容接口的流式响应形如：

    data: {"choices":[{"delta":{"content":"Hi"}}]}

    data: [DONE]

这里逐行处理，把 choices[0].delta.content 作为增量交给 sink。
单行 JSON 损坏只记 debug 日志并跳过，不影响整条流。
"""

import json
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from lc_core.infrastructure.logging.logger import logger
from lc_core.providers.base import StreamSink


DATA_PREFIX = "data: "
DONE_TOKEN = "[DONE]"


@dataclass
class SSEOutcome:
    """一次流解析的结果：累积文本，以及是否收到了 [DONE]。"""

    text: str
    done: bool


def consume_sse_lines(lines: Iterable[str], sink: StreamSink) -> SSEOutcome:
    parts = []
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith(":"):
            continue
        if not line.startswith(DATA_PREFIX):
            continue
        data = line[len(DATA_PREFIX):].strip()
        if data == DONE_TOKEN:
            sink.on_delta("", True)
            return SSEOutcome(text="".join(parts), done=True)
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            logger.debug(f"Error parsing data: {e}", extra={"extra": {"line": data[:200]}})
            continue
        delta = extract_delta(payload)
        if delta:
            parts.append(delta)
            sink.on_delta(delta, False)
    return SSEOutcome(text="".join(parts), done=False)


def extract_delta(payload: Any) -> Optional[str]:
    """取出 choices[0].delta.content，结构不符时返回 None。"""

    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    if isinstance(content, str):
        return content
    return None
