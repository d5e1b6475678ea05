import pytest


CONFIG_ENV_VARS = (
    "LC_CONFIG_FILE",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "DEFAULT_MODEL",
    "SYSTEM_PROMPT",
    "MAX_HISTORY",
    "USE_SYSTEM_PROMPT",
    "LOG_DIR",
)


@pytest.fixture
def config_home(tmp_path, monkeypatch):
    """把用户配置目录指向临时目录，并清掉会影响配置的环境变量。"""

    home = tmp_path / "config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home))
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return home / "lc"
