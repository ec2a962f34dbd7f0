from __future__ import annotations

import argparse
import json
import sys
from typing import Optional

from .config_manager import ConfigManager
from .error_messages import (
    build_export_error_message,
    build_extraction_status_message,
    build_input_error_message,
)
from .exceptions import ExportError, InputFileError
from .service import ExamFormatService


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="main.py",
        description="Rapikan teks soal mentah dan simpan sebagai dokumen Word.",
    )
    parser.add_argument("--extract", metavar="INPUT_TXT", required=True, help="file soal (.txt)")
    parser.add_argument("--output", metavar="DIR", default=None, help="folder hasil .docx")
    parser.add_argument(
        "--json",
        action="store_true",
        help="cetak hasil ekstraksi sebagai JSON, tanpa membuat dokumen",
    )
    return parser


def main(argv: list[str], service: Optional[ExamFormatService] = None) -> int:
    args = build_arg_parser().parse_args(argv[1:])
    service = service or ExamFormatService(ConfigManager())

    try:
        raw_text = service.load_text_file(args.extract)
    except InputFileError as exc:
        print(build_input_error_message(str(exc)), file=sys.stderr)
        return 1

    result = service.extract(raw_text)
    if args.json:
        print(json.dumps(result.to_payload(), ensure_ascii=False, indent=2))
        return 0

    print(build_extraction_status_message(result, service.is_offline()))
    try:
        path = service.export(service.build_exam_data(result), args.output)
    except ExportError as exc:
        print(build_export_error_message(str(exc)), file=sys.stderr)
        return 1
    print(f"Dokumen tersimpan: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
