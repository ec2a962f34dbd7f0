from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

from . import debug_log
from .config_manager import ConfigManager
from .exceptions import InputFileError
from .exporter import DocxExporter
from .local_parser import LocalParser
from .models import ExamData, ExamHeaderInfo, ExtractionResult
from .orchestrator import ExtractionOrchestrator, resolve_credential

SUPPORTED_INPUT_SUFFIXES = (".txt",)


class ExamFormatService:
    def __init__(self, config_manager: Optional[ConfigManager] = None) -> None:
        self.config_manager = config_manager or ConfigManager()
        self._refresh_dependencies()

    def _refresh_dependencies(self) -> None:
        config = self.config_manager.all()
        debug_log.configure(self.config_manager.get("paths.log_file", ""))
        self.local_parser = LocalParser(config)
        self.orchestrator = ExtractionOrchestrator(config, local_parser=self.local_parser)
        self.exporter = DocxExporter(config)

    def reload_config(self) -> None:
        self.config_manager.reload()
        self._refresh_dependencies()

    def is_offline(self) -> bool:
        return resolve_credential(self.config_manager.all()) is None

    def default_header(self) -> ExamHeaderInfo:
        return ExamHeaderInfo.from_dict(self.config_manager.get("header", {}) or {})

    def load_text_file(self, file_path: str | Path) -> str:
        path = Path(file_path)
        if path.suffix.lower() not in SUPPORTED_INPUT_SUFFIXES:
            raise InputFileError(f"Hanya file .txt yang didukung: {path.name}")
        if not path.is_file():
            raise InputFileError(f"File tidak ditemukan: {path}")
        try:
            # utf-8-sig drops a leading BOM written by Notepad
            return path.read_bytes().decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise InputFileError(f"Gagal decode {path.name} sebagai UTF-8: {exc}") from exc
        except OSError as exc:
            raise InputFileError(f"Gagal membaca {path.name}: {exc}") from exc

    def extract(
        self,
        raw_text: str,
        cancel_event: Optional[threading.Event] = None,
        propagate_cancel: bool = False,
    ) -> ExtractionResult:
        return self.orchestrator.extract(
            raw_text, cancel_event=cancel_event, propagate_cancel=propagate_cancel
        )

    def build_exam_data(
        self, result: ExtractionResult, header: Optional[ExamHeaderInfo] = None
    ) -> ExamData:
        return ExamData(header=header or self.default_header(), questions=list(result.questions))

    def export(self, exam_data: ExamData, output_dir: str | Path | None = None) -> Path:
        target = output_dir or self.config_manager.get("paths.output_directory", "") or "output"
        return self.exporter.export(exam_data, target)
