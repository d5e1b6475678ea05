"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 解析 base URL (endpoint)。
- 解析 SSE 流 (sse)。
- 提供 OpenAI 兼容接口的具体实现 (openai_client)。
"""

from lc_core.providers.base import ProviderClient, StreamSink
from lc_core.providers.openai_client import OpenAICompatibleClient


def create_provider(settings) -> ProviderClient:
    """根据配置创建 Provider 实例。"""

    return OpenAICompatibleClient(settings)


__all__ = ["ProviderClient", "StreamSink", "OpenAICompatibleClient", "create_provider"]
