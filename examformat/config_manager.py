from __future__ import annotations

import json
import os
import shutil
import sys
from pathlib import Path
from typing import Any


class ConfigManager:
    APP_DATA_DIRNAME = "ExamFormatter"
    PATH_KEYS = ("output_directory", "log_file")

    def __init__(
        self,
        default_path: str = "config/default_config.json",
        user_path: str = "config/user_config.json",
    ) -> None:
        self._bundle_root = self._detect_bundle_root()
        self._runtime_root = self._detect_runtime_root()
        if self._is_frozen():
            self._bootstrap_runtime_files()
        self.default_path = self._resolve_runtime_path(default_path)
        self.user_path = self._resolve_runtime_path(user_path)
        self._config = self._load()

    @staticmethod
    def _is_frozen() -> bool:
        return bool(getattr(sys, "frozen", False))

    @classmethod
    def _detect_bundle_root(cls) -> Path:
        if cls._is_frozen():
            meipass = getattr(sys, "_MEIPASS", "")
            if meipass:
                return Path(meipass)
            return Path(sys.executable).resolve().parent
        return Path(__file__).resolve().parents[1]

    @classmethod
    def _detect_runtime_root(cls) -> Path:
        if cls._is_frozen():
            local_appdata = os.environ.get("LOCALAPPDATA", "").strip()
            if local_appdata:
                return Path(local_appdata) / cls.APP_DATA_DIRNAME
            xdg_data = os.environ.get("XDG_DATA_HOME", "").strip()
            if xdg_data:
                return Path(xdg_data) / cls.APP_DATA_DIRNAME
            return (Path.home() / ".local" / "share") / cls.APP_DATA_DIRNAME
        return Path(__file__).resolve().parents[1]

    def _resolve_runtime_path(self, raw_path: str | Path) -> Path:
        path = Path(raw_path).expanduser()
        if path.is_absolute():
            return path
        return self._runtime_root / path

    def _bootstrap_runtime_files(self) -> None:
        src = self._bundle_root / "config" / "default_config.json"
        dst = self._runtime_root / "config" / "default_config.json"
        if not src.exists() or dst.exists():
            return
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(str(src), str(dst))

    def _normalize_path_text(self, value: str) -> str:
        text = str(value or "").strip()
        if not text:
            return ""
        path = Path(text).expanduser()
        if path.is_absolute():
            return str(path)
        return str(self._runtime_root / path)

    def _normalize_paths(self, config: dict[str, Any]) -> dict[str, Any]:
        paths = config.get("paths")
        if not isinstance(paths, dict):
            return config
        for key in self.PATH_KEYS:
            value = paths.get(key)
            if isinstance(value, str) and value.strip():
                paths[key] = self._normalize_path_text(value)
        return config

    def _load_json_file(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        with path.open("r", encoding="utf-8") as file:
            return json.load(file)

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        merged = dict(base)
        for key, value in override.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _load(self) -> dict[str, Any]:
        defaults = self._load_json_file(self.default_path)
        user = self._load_json_file(self.user_path)
        merged = self._deep_merge(defaults, user)
        return self._normalize_paths(merged)

    def reload(self) -> dict[str, Any]:
        self._config = self._load()
        return self._config

    def all(self) -> dict[str, Any]:
        return self._config

    def get(self, path: str, default: Any = None) -> Any:
        current: Any = self._config
        for token in path.split("."):
            if not isinstance(current, dict) or token not in current:
                return default
            current = current[token]
        return current

    def update(self, partial: dict[str, Any]) -> dict[str, Any]:
        self._config = self._normalize_paths(self._deep_merge(self._config, partial))
        existing_user = self._load_json_file(self.user_path)
        merged_user = self._deep_merge(existing_user, partial)
        self.user_path.parent.mkdir(parents=True, exist_ok=True)
        with self.user_path.open("w", encoding="utf-8") as file:
            json.dump(merged_user, file, ensure_ascii=False, indent=2)
        return self._config
