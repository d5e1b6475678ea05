"""OpenAI 兼容接口的 Provider 适配器。

本模块负责：

1. 根据配置解析 chat/completions 端点。
2. 构造请求 JSON 与 Bearer 认证头。
3. 调用 HTTP 接口，对网络错误 / 非 200 状态 / 响应格式错误分类。
4. 非流式模式读取 choices[0].message.content；
   流式模式把 SSE 增量交给调用方提供的 sink。

流式与非流式共用同一套实现，只由 stream 参数区分。
内部以 BusinessError 子类表达失败，公开方法统一转换为
success=False 的 ChatCompletionResult，不向调用方抛出。
"""

import json
from typing import Any, Dict, Optional, Sequence

import httpx

from lc_core.domain.codec import messages_to_payload
from lc_core.domain.exceptions import (
    ApiError,
    BusinessError,
    InvalidResponseFormatError,
    InvalidURLError,
    NetworkError,
)
from lc_core.domain.models import ChatCompletionResult, ChatMessage
from lc_core.infrastructure.logging.logger import logger
from lc_core.providers.base import StreamSink
from lc_core.providers.endpoint import Endpoint, normalize_base_url, resolve_endpoint
from lc_core.providers.sse import consume_sse_lines


class OpenAICompatibleClient:
    """OpenAI 兼容 chat/completions 客户端。

    - name: Provider 名称（供日志使用）。
    - chat / chat_stream: 对外统一调用入口，返回 ChatCompletionResult。
    """

    name = "openai"

    def __init__(self, settings):
        # Settings 里包含 base_url、api_key、默认模型、超时等配置
        self._settings = settings

    def chat(self, messages: Sequence[ChatMessage], model: Optional[str] = None) -> ChatCompletionResult:
        """执行一次非流式对话调用。"""

        return self._complete(messages, model, stream=False, sink=None)

    def chat_stream(
        self,
        messages: Sequence[ChatMessage],
        sink: StreamSink,
        model: Optional[str] = None,
    ) -> ChatCompletionResult:
        """执行一次流式对话调用，增量按到达顺序同步交给 sink。"""

        return self._complete(messages, model, stream=True, sink=sink)

    # ---- 公共实现 ----

    def _complete(
        self,
        messages: Sequence[ChatMessage],
        model: Optional[str],
        stream: bool,
        sink: Optional[StreamSink],
    ) -> ChatCompletionResult:
        try:
            text = self._request(messages, model, stream, sink)
        except BusinessError as e:
            logger.warning(
                f"Chat completion failed: {e.message}",
                extra={"extra": {"code": e.code, "http_status": e.http_status, "stream": stream}},
            )
            return ChatCompletionResult.fail(e.message)
        return ChatCompletionResult.ok(text)

    def _request(
        self,
        messages: Sequence[ChatMessage],
        model: Optional[str],
        stream: bool,
        sink: Optional[StreamSink],
    ) -> str:
        """发送请求并返回未裁剪的回答文本，失败时抛出 BusinessError 子类。"""

        endpoint = resolve_endpoint(self._settings.openai_base_url)
        payload = self._build_payload(messages, model, stream)
        logger.debug(f"Request URL: {endpoint.url}")
        logger.debug(f"Request body: {json.dumps(payload, ensure_ascii=False)}")
        try:
            with httpx.Client(
                timeout=self._timeout(),
                follow_redirects=False,
                trust_env=False,
            ) as client:
                if not stream:
                    resp = client.post(endpoint.url, json=payload, headers=self._headers(stream))
                    self._check_status(resp, endpoint)
                    return self._parse_response(resp)
                with client.stream(
                    "POST",
                    endpoint.url,
                    json=payload,
                    headers=self._headers(stream),
                ) as resp:
                    self._check_status(resp, endpoint, streamed=True)
                    outcome = consume_sse_lines(resp.iter_lines(), sink)
                if not outcome.done:
                    logger.debug("Stream closed without [DONE] marker")
                return outcome.text
        except httpx.InvalidURL as e:
            raise InvalidURLError(code="INVALID_URL", message=f"Invalid base URL: {e}")
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接/读写超时、流中途断开等
            raise NetworkError(code="NETWORK_ERROR", message=f"HTTP request failed: {e}")

    # ---- 辅助方法 ----

    def _build_payload(self, messages: Sequence[ChatMessage], model: Optional[str], stream: bool) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": model or self._settings.default_model,
            "messages": messages_to_payload(messages),
        }
        if stream:
            payload["stream"] = True
        return payload

    def _headers(self, stream: bool) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._settings.openai_api_key}",
        }
        if stream:
            headers["Accept"] = "text/event-stream"
        return headers

    def _timeout(self) -> httpx.Timeout:
        connect = getattr(self._settings, "connect_timeout", 30.0)
        return httpx.Timeout(
            connect=connect,
            write=getattr(self._settings, "write_timeout", 30.0),
            read=getattr(self._settings, "read_timeout", 120.0),
            pool=connect,
        )

    def _check_status(self, resp, endpoint: Endpoint, streamed: bool = False) -> None:
        logger.debug(f"Response status: {resp.status_code}")
        if resp.status_code == 308:
            location = resp.headers.get("Location")
            if location:
                logger.debug(f"Got 308 redirect to: {location}")
            raise ApiError(
                code="PERMANENT_REDIRECT",
                message=(
                    "API request failed with status 308 (Permanent Redirect). "
                    "Please check your openai_base_url setting. "
                    "Try adding a trailing slash: "
                    f"{normalize_base_url(self._settings.openai_base_url)}"
                ),
                http_status=308,
                location=location,
                url=endpoint.url,
            )
        if resp.status_code != 200:
            if streamed:
                # 流式响应需要先读完 body 才能访问 text
                resp.read()
            body = resp.text
            raise ApiError(
                code="API_ERROR",
                message=f"API request failed with status {resp.status_code}: {body}",
                http_status=resp.status_code,
                body=body,
            )

    def _parse_response(self, resp) -> str:
        """从非流式响应中取出 choices[0].message.content。"""

        logger.debug(f"Response body: {resp.text}")
        try:
            data = resp.json()
        except ValueError as e:
            raise InvalidResponseFormatError(
                code="INVALID_RESPONSE",
                message=f"Invalid API response format: {e}",
                http_status=502,
            )
        content = None
        choices = data.get("choices") if isinstance(data, dict) else None
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict):
                content = message.get("content")
        if not isinstance(content, str):
            raise InvalidResponseFormatError(
                code="INVALID_RESPONSE",
                message="Invalid API response format: missing choices[0].message.content",
                http_status=502,
            )
        return content
