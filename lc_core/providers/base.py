"""Provider 抽象接口。

上层（service / CLI）不直接依赖 HTTP 细节，而是依赖此协议：

- ProviderClient: 把消息序列发给 chat/completions 端点，返回统一的 ChatCompletionResult。
- StreamSink: 流式模式下接收增量文本的回调对象。
"""

from typing import Optional, Protocol, Sequence

from lc_core.domain.models import ChatCompletionResult, ChatMessage


class StreamSink(Protocol):
    """流式增量接收者。

    在发起请求的同一线程内按到达顺序被调用：
    若干次 on_delta(text, False)（text 非空），之后至多一次 on_delta("", True)。
    """

    def on_delta(self, delta: str, done: bool) -> None:
        ...


class ProviderClient(Protocol):
    """LLM Provider 客户端协议。

    实现者需要提供：
    - name: Provider 名称，用于日志。
    - chat: 非流式调用。
    - chat_stream: 流式调用，增量交给 sink。
    两者都不抛出业务异常，失败以 success=False 的结果返回。
    """

    name: str

    def chat(self, messages: Sequence[ChatMessage], model: Optional[str] = None) -> ChatCompletionResult:
        ...

    def chat_stream(
        self,
        messages: Sequence[ChatMessage],
        sink: StreamSink,
        model: Optional[str] = None,
    ) -> ChatCompletionResult:
        ...
