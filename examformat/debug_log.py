from __future__ import annotations

import time
from pathlib import Path

DEFAULT_LOG_PATH = Path("output") / "extraction_debug.log"

_log_path: Path = DEFAULT_LOG_PATH


def configure(log_path: str | Path | None) -> Path:
    global _log_path
    text = str(log_path or "").strip()
    _log_path = Path(text).expanduser() if text else DEFAULT_LOG_PATH
    return _log_path


def current_log_path() -> Path:
    return _log_path


def append_log(message: str) -> None:
    try:
        path = _log_path if _log_path.is_absolute() else Path.cwd() / _log_path
        path.parent.mkdir(parents=True, exist_ok=True)
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
        with path.open("a", encoding="utf-8") as file:
            file.write(f"[{timestamp}] {message}\n")
    except OSError:
        # Logging must never break extraction.
        pass


def log_swallowed_exception(context: str, exc: BaseException) -> None:
    append_log(f"{context} | {type(exc).__name__}: {exc}")
