"""统一的对话与结果数据模型。

- ChatMessage: 一条对话消息（system/user/assistant），创建后不可变。
- ChatCompletionResult: 一次 chat/completions 调用的最终结果。

消息序列直接使用 List[ChatMessage]，顺序即时间顺序。
"""

from dataclasses import dataclass
from typing import Literal, Optional


# LLM 消息角色类型（与 OpenAI 兼容接口的 role 字段对应）
Role = Literal["system", "user", "assistant"]

ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class ChatMessage:
    """一条对话消息，既用于请求体，也用于本地历史文件。"""

    role: Role
    content: str


@dataclass(frozen=True)
class ChatCompletionResult:
    """一次对话调用的结果。

    - success: 是否成功。
    - full_response: 成功时为完整回答（已去除首尾空白），可能为空串。
    - error: 失败时的描述；成功时恒为 None。
    """

    success: bool
    full_response: str = ""
    error: Optional[str] = None

    @classmethod
    def ok(cls, text: str) -> "ChatCompletionResult":
        return cls(success=True, full_response=(text or "").strip())

    @classmethod
    def fail(cls, error: str) -> "ChatCompletionResult":
        return cls(success=False, error=error)
