"""对外 API 服务模块。

提供简化的函数接口供 CLI 调用：组装消息、调用 Provider、持久化记忆。
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from lc_core.domain.conversation import HistoryStore
from lc_core.domain.exceptions import BusinessError, CorruptHistoryError
from lc_core.domain.models import ChatCompletionResult, ChatMessage
from lc_core.infrastructure.logging.logger import logger
from lc_core.providers import create_provider
from lc_core.providers.base import ProviderClient, StreamSink


@dataclass
class ChatOutcome:
    """一次对话的结果，以及需要提示给用户的非致命警告。"""

    result: ChatCompletionResult
    messages: List[ChatMessage]
    warnings: List[str] = field(default_factory=list)


def build_user_content(query: str, stdin_input: str) -> str:
    """把 "Query: ..." 与 "Input: ..." 用空行拼成一条用户消息。"""

    parts = [p for p in (query, stdin_input) if p]
    return "\n\n".join(parts)


def build_messages(
    settings,
    user_content: str,
    history: Optional[Sequence[ChatMessage]] = None,
    use_system_prompt: bool = True,
) -> List[ChatMessage]:
    """组装发送给模型的消息序列：[system] + 历史 + 当前用户消息。

    system 消息至多一条且总在最前，历史中残留的 system 消息会被丢弃。
    """

    messages: List[ChatMessage] = []
    if use_system_prompt and settings.use_system_prompt:
        messages.append(ChatMessage(role="system", content=settings.system_prompt))
    if history:
        messages.extend(m for m in history if m.role != "system")
    if user_content:
        messages.append(ChatMessage(role="user", content=user_content))
    return messages


def load_history(store: HistoryStore, warnings: List[str]) -> List[ChatMessage]:
    """读取历史；文件损坏时记录警告并按无历史处理。"""

    try:
        return store.load() or []
    except CorruptHistoryError as e:
        logger.warning(f"Ignoring corrupt history: {e.message}")
        warnings.append(f"Warning: Ignoring unreadable conversation history ({e.message})")
        return []


def run_chat(
    user_content: str,
    *,
    settings,
    provider: Optional[ProviderClient] = None,
    store: Optional[HistoryStore] = None,
    memory: bool = False,
    model: Optional[str] = None,
    use_system_prompt: bool = True,
    stream: bool = True,
    sink: Optional[StreamSink] = None,
) -> ChatOutcome:
    """运行一次对话。

    Args:
        user_content: 当前用户消息内容，可以为空（仅回放历史）。
        settings: 配置对象。
        provider: Provider 客户端，默认按配置创建。
        store: 历史存储，memory=True 时必需。
        memory: 是否加载并保存会话历史。
        model: 覆盖默认模型。
        use_system_prompt: 为 False 时本次不发送 system 消息。
        stream: 是否使用流式接口。
        sink: 流式增量接收者，stream=True 时必需。
    """

    warnings: List[str] = []
    if memory and store is None:
        raise ValueError("store is required when memory is enabled")
    if stream and sink is None:
        raise ValueError("sink is required for streaming")

    history: List[ChatMessage] = []
    if memory:
        history = load_history(store, warnings)
        logger.debug(f"Loaded {len(history)} previous messages")

    messages = build_messages(settings, user_content, history, use_system_prompt)
    logger.debug(f"Total messages to send: {len(messages)}")
    if model:
        logger.debug(f"Model override: {model}")

    client = provider or create_provider(settings)
    if stream:
        result = client.chat_stream(messages, sink, model=model)
    else:
        result = client.chat(messages, model=model)

    if memory and result.success:
        messages.append(ChatMessage(role="assistant", content=result.full_response))
        try:
            store.save(messages, settings.max_history)
            logger.debug("Saved conversation history")
        except BusinessError as e:
            logger.warning(f"Failed to save history: {e.message}", extra={"extra": {"code": e.code}})
            warnings.append("Warning: Failed to save conversation history")
    return ChatOutcome(result=result, messages=messages, warnings=warnings)
