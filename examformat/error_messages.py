from __future__ import annotations

from typing import Iterable

from .models import ExtractionResult, ExtractionSource


def _join_lines(lines: Iterable[str]) -> str:
    return "\n".join(line for line in lines if line.strip())


def _trim_raw_error(text: str, limit: int = 700) -> str:
    raw = (text or "").strip()
    if len(raw) <= limit:
        return raw
    return raw[:limit].rstrip() + " ..."


def provenance_label(source: ExtractionSource, offline: bool) -> str:
    if offline:
        return "Mode Offline"
    if source is ExtractionSource.REMOTE:
        return "AI Enhanced"
    return "Fallback Lokal"


def build_extraction_status_message(result: ExtractionResult, offline: bool) -> str:
    """Status text shown after an extraction run.

    ``offline`` means no credential was configured, so the local parser was the
    plan all along rather than a fallback.
    """
    summary = (
        f"Ditemukan {len(result.questions)} soal "
        f"(Pilihan Ganda: {len(result.multiple_choice)}, Uraian: {len(result.essays)})."
    )
    if result.source is ExtractionSource.REMOTE:
        lines = ["Sukses (AI)", "Berhasil merapikan soal dengan AI!", summary]
    else:
        lines = ["Selesai (Mode Lokal)", "Berhasil merapikan soal (Mode Fallback/Offline aktif).", summary]
        if not offline:
            lines.append("Limit AI tercapai atau jaringan gangguan. Menggunakan parser lokal.")

    if not result.questions:
        lines.append("Tidak ada nomor soal yang dikenali. Pastikan setiap soal diawali nomor seperti '1.' atau '2)'.")
    return _join_lines(lines)


def build_export_error_message(raw_message: str) -> str:
    raw = (raw_message or "").strip()
    lower = raw.lower()

    tips: list[str]
    if "permission" in lower or "access is denied" in lower or "errno 13" in lower:
        tips = [
            "Gagal membuat file Word.",
            "File tujuan sedang dibuka atau folder tidak dapat ditulisi.",
            "Tutup dokumen di Word lalu coba lagi, atau pilih folder keluaran lain.",
        ]
    elif "no space" in lower or "errno 28" in lower:
        tips = [
            "Gagal membuat file Word.",
            "Ruang penyimpanan tidak cukup.",
        ]
    elif "no such file" in lower or "errno 2" in lower:
        tips = [
            "Gagal membuat file Word.",
            "Folder keluaran tidak ditemukan. Periksa pengaturan folder keluaran.",
        ]
    else:
        tips = [
            "Gagal membuat file Word.",
            "Periksa folder keluaran lalu coba lagi.",
        ]

    detail = _trim_raw_error(raw)
    return _join_lines(
        [
            *tips,
            "",
            "[Detail error]",
            detail or "(tidak ada)",
        ]
    )


def build_input_error_message(raw_message: str) -> str:
    raw = (raw_message or "").strip()
    lower = raw.lower()
    if "hanya file .txt" in lower:
        return _join_lines(
            [
                raw,
                "Mohon upload file .txt atau paste teks soal langsung.",
            ]
        )
    if "decode" in lower or "codec" in lower:
        return _join_lines(
            [
                "File tidak dapat dibaca sebagai teks UTF-8.",
                "Simpan ulang file dengan encoding UTF-8 lalu coba lagi.",
                "",
                "[Detail error]",
                _trim_raw_error(raw),
            ]
        )
    if "tidak ditemukan" in lower or "no such file" in lower:
        return _join_lines(
            [
                "File tidak ditemukan.",
                "",
                "[Detail error]",
                _trim_raw_error(raw),
            ]
        )
    return raw
