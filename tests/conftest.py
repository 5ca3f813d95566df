import logging
import shutil
from pathlib import Path
import tempfile
import pytest


@pytest.fixture(scope="session", autouse=True)
def isolate_home_config():
    """Temporarily move any existing user-level ai-commit config out of the way.

    Tests expect built-in defaults unless they write a config themselves.
    The files are moved aside for the duration of the test session and
    restored afterwards.
    """
    home = Path.home()
    candidates = [home / ".config" / "ai-commit" / "config.json", home / ".ai-commit.json"]
    backup_dir = Path(tempfile.mkdtemp(prefix="ai_commit_backup_"))
    moved = []
    for index, config_path in enumerate(candidates):
        if config_path.exists():
            backup = backup_dir / f"{index}.json"
            shutil.move(str(config_path), str(backup))
            moved.append((backup, config_path))

    try:
        yield
    finally:
        for backup, config_path in moved:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(backup), str(config_path))
        shutil.rmtree(str(backup_dir), ignore_errors=True)


@pytest.fixture(autouse=True)
def clear_api_key_env(monkeypatch):
    """Keep real API keys from the developer's shell out of the tests."""
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


@pytest.fixture(autouse=True)
def drop_cli_log_handlers():
    """Remove stream handlers installed by the CLI's logging.basicConfig.

    CliRunner swaps stdout/stderr per invocation; a handler left on the
    root logger would keep writing to the closed stream in later tests.
    """
    root = logging.getLogger()
    before = list(root.handlers)
    yield
    for handler in list(root.handlers):
        if handler not in before and type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
