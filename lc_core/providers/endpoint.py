"""base URL 解析。

把配置中的 openai_base_url 解析为 (scheme, host, path_prefix)，
并拼出最终的 chat/completions 请求路径。

部分反向代理会对不带尾部斜杠的路径返回 308，所以先把 base URL
规范化为恰好一个尾部斜杠，再从解析出的 path_prefix 中去掉它，
避免拼接出双斜杠。
"""

import re
from dataclasses import dataclass

from lc_core.domain.exceptions import InvalidURLError


CHAT_COMPLETIONS_SUFFIX = "/chat/completions"

_URL_RE = re.compile(r"^(https?)://([^/]+)(/.*)?$")


@dataclass(frozen=True)
class Endpoint:
    scheme: str
    host: str
    path_prefix: str

    @property
    def use_https(self) -> bool:
        return self.scheme == "https"

    @property
    def path(self) -> str:
        return self.path_prefix + CHAT_COMPLETIONS_SUFFIX

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}{self.path}"


def normalize_base_url(base_url: str) -> str:
    url = (base_url or "").strip()
    if not url:
        return url
    return url.rstrip("/") + "/"


def resolve_endpoint(base_url: str) -> Endpoint:
    """解析 base URL，格式不合法时抛出 InvalidURLError。"""

    normalized = normalize_base_url(base_url)
    match = _URL_RE.match(normalized)
    if not match:
        raise InvalidURLError(code="INVALID_URL", message=f"Invalid base URL: {normalized}")
    scheme, host, prefix = match.group(1), match.group(2), match.group(3) or ""
    if prefix.endswith("/"):
        prefix = prefix[:-1]
    return Endpoint(scheme=scheme, host=host, path_prefix=prefix)
