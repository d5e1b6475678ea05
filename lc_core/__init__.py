"""lc 顶层包。

命令行 AI 助手的核心实现：配置加载、领域模型、
OpenAI 兼容 chat/completions 传输层（含 SSE 流式解析）
以及会话记忆的本地持久化。
"""

from lc_core.api.service import run_chat
from lc_core.domain.models import ChatCompletionResult, ChatMessage

__all__ = ["ChatCompletionResult", "ChatMessage", "run_chat"]
