from __future__ import annotations

import logging
import logging.handlers

from dotenv import dotenv_values

import app
import settings

TOKEN = "123456:SECRETTOKEN"


def _configured_handlers(monkeypatch, tmp_path, config: dict) -> list:
    env_file = tmp_path / ".env"
    env_file.write_text(f"BOT_API={TOKEN}\nAPI_HASH=0123456789abcdef\n", encoding="utf-8")
    monkeypatch.delenv("BOT_API", raising=False)
    monkeypatch.delenv("API_HASH", raising=False)

    def fake_load_dotenv() -> bool:
        for name, value in dotenv_values(env_file).items():
            monkeypatch.setenv(name, value)
        return True

    captured: dict = {}
    monkeypatch.setattr(app, "load_dotenv", fake_load_dotenv)
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: captured.update(kwargs))
    monkeypatch.setattr(logging.getLogger("telethon"), "level", logging.NOTSET)

    app._configure_logging(settings.logging_config({"logging": config}))
    return captured["handlers"]


def _format(handler: logging.Handler, message: str) -> str:
    record = logging.LogRecord("clusterwatch", logging.ERROR, __file__, 1, message, None, None)
    return handler.formatter.format(record)


def test_secrets_from_env_file_are_masked(monkeypatch, tmp_path) -> None:
    (handler,) = _configured_handlers(monkeypatch, tmp_path, {})

    line = _format(handler, f"token is {TOKEN}, hash 0123456789abcdef")
    assert TOKEN not in line
    assert "0123456789abcdef" not in line
    assert line.endswith("token is ***, hash ***")


def test_redaction_can_be_disabled(monkeypatch, tmp_path) -> None:
    (handler,) = _configured_handlers(monkeypatch, tmp_path, {"redact": {"enabled": False}})

    assert _format(handler, f"token is {TOKEN}").endswith(f"token is {TOKEN}")


def test_file_handler_is_added(monkeypatch, tmp_path) -> None:
    log_path = tmp_path / "logs" / "clusterwatch.log"
    handlers = _configured_handlers(
        monkeypatch,
        tmp_path,
        {"console": False, "file": {"enabled": True, "path": str(log_path)}},
    )

    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.handlers.RotatingFileHandler)
    assert log_path.parent.is_dir()
    handlers[0].close()
