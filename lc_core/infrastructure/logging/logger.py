import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path


logger = logging.getLogger("lc_core")
logger.addHandler(logging.NullHandler())
logger.propagate = False


class JsonFormatter(logging.Formatter):
    def __init__(self, redact: bool = False):
        super().__init__()
        self._redact = redact

    def format(self, record: logging.LogRecord) -> str:
        msg = record.getMessage()
        if self._redact:
            msg = (msg or "")[:64]
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "name": record.name,
            "msg": msg,
        }
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)
        return json.dumps(payload, ensure_ascii=False)


def setup_logger(settings=None, debug: bool = False) -> logging.Logger:
    """配置 lc_core logger。

    - debug: 诊断信息以 "[debug] ..." 形式输出到 stderr。
    - settings.log_dir: 额外写一份 JSON 行日志到 <log_dir>/lc.log。
    重复调用会替换之前的 handler。
    """

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    if debug:
        sh = logging.StreamHandler(sys.stderr)
        sh.setLevel(logging.DEBUG)
        sh.setFormatter(logging.Formatter("[debug] %(message)s"))
        logger.addHandler(sh)

    log_dir = getattr(settings, "log_dir", None)
    if log_dir:
        path = Path(log_dir).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(path / "lc.log", encoding="utf-8")
        fh.setLevel(logging.DEBUG if debug else logging.INFO)
        fh.setFormatter(JsonFormatter(redact=bool(getattr(settings, "log_redact_content", False))))
        logger.addHandler(fh)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())
    return logger
