"""ChatMessage 与 JSON 对象之间的双向转换。

请求体里的 messages 数组和本地历史文件使用同一种格式
（[{"role": ..., "content": ...}, ...]），因此历史可以原样回放。
"""

from typing import Any, Dict, List, Sequence

from lc_core.domain.exceptions import MalformedMessageError
from lc_core.domain.models import ROLES, ChatMessage


def message_to_payload(message: ChatMessage) -> Dict[str, str]:
    return {"role": message.role, "content": message.content}


def message_from_payload(payload: Any) -> ChatMessage:
    """把单个 JSON 对象解析为 ChatMessage，字段缺失或类型不对时抛 MalformedMessageError。"""

    if not isinstance(payload, dict):
        raise MalformedMessageError(
            code="MALFORMED_MESSAGE",
            message=f"message must be an object, got {type(payload).__name__}",
        )
    role = payload.get("role")
    content = payload.get("content")
    if not isinstance(role, str) or not isinstance(content, str):
        raise MalformedMessageError(
            code="MALFORMED_MESSAGE",
            message="message requires string fields 'role' and 'content'",
        )
    if role not in ROLES:
        raise MalformedMessageError(code="MALFORMED_MESSAGE", message=f"unknown role: {role!r}")
    return ChatMessage(role=role, content=content)


def messages_to_payload(messages: Sequence[ChatMessage]) -> List[Dict[str, str]]:
    return [message_to_payload(m) for m in messages]


def messages_from_payload(payload: Any) -> List[ChatMessage]:
    if not isinstance(payload, list):
        raise MalformedMessageError(
            code="MALFORMED_MESSAGE",
            message=f"messages must be an array, got {type(payload).__name__}",
        )
    return [message_from_payload(item) for item in payload]
