"""
Remote structured extraction through the Gemini API.

The service is asked for a JSON array that follows ``RESPONSE_SCHEMA``. Only
quota/rate-limit failures are retried; everything else is surfaced to the
caller as a terminal ``ExtractionError``.
"""

from __future__ import annotations

import json
import re
import threading
import time
from typing import Any, Callable, Optional, Protocol

from google import genai
from google.genai import types

from .debug_log import append_log
from .exceptions import (
    ExtractionCancelled,
    ExtractionError,
    MalformedResponse,
    QuotaExceeded,
    TransportFailure,
)
from .models import OPTION_LABELS, Difficulty, Option, Question, QuestionType, question_type_for


DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_INITIAL_BACKOFF_MS = 2000
DEFAULT_REQUEST_TIMEOUT_MS = 60000

QUOTA_MESSAGE_MARKERS = ("429", "quota", "RESOURCE_EXHAUSTED")

RESPONSE_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    description="List of exact exam questions extracted from text. Must preserve the exact count and content.",
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "id": types.Schema(
                type=types.Type.INTEGER,
                description="The number of the question as found in the text.",
            ),
            "text": types.Schema(
                type=types.Type.STRING,
                description="The content of the question. Keep it VERBATIM from input. Do not paraphrase or summarize.",
            ),
            "type": types.Schema(
                type=types.Type.STRING,
                enum=[QuestionType.MULTIPLE_CHOICE.value, QuestionType.ESSAY.value],
                description="Type of question",
            ),
            "options": types.Schema(
                type=types.Type.ARRAY,
                description="List of options (A-E). Ensure ALL options present in text are captured.",
                items=types.Schema(
                    type=types.Type.OBJECT,
                    properties={
                        "label": types.Schema(
                            type=types.Type.STRING,
                            description="Option label (A, B, C, D, E)",
                        ),
                        "text": types.Schema(
                            type=types.Type.STRING,
                            description="The exact text of the option",
                        ),
                    },
                    required=["label", "text"],
                ),
            ),
            "answerKey": types.Schema(
                type=types.Type.STRING,
                description="The correct answer label if explicitly marked in text.",
            ),
            "difficulty": types.Schema(
                type=types.Type.STRING,
                enum=[member.value for member in Difficulty],
                description="Difficulty level",
            ),
        },
        required=["id", "text", "type", "options"],
    ),
)

PROMPT_TEMPLATE = """
Anda adalah mesin pemroses dokumen ujian yang sangat presisi (High-Fidelity Parser).

TUGAS UTAMA:
Konversi teks soal mentah di bawah ini menjadi format JSON terstruktur.

ATURAN KRUSIAL (WAJIB DIPATUHI):
1. AKURASI MUTLAK: Jangan pernah mengubah makna, meringkas, atau membuang kata-kata penting dari soal. Salin teks apa adanya.
2. JUMLAH SOAL: Jika input memiliki 40 nomor, output HARUS 40 nomor. Cek kembali jumlahnya.
3. PILIHAN GANDA: Ambil semua opsi jawaban (A, B, C, D, E) dengan lengkap. Jangan ada opsi yang tertinggal.
4. STRUKTUR:
   - Jika opsi jawaban tertulis menyamping (misal: "a. Satu b. Dua"), pisahkan menjadi array options yang rapi.
   - Jika tidak ada opsi (A, B...), tandai sebagai ESSAY.
5. PERBAIKAN: Hanya perbaiki typo fatal (salah ketik parah) dan spasi yang berantakan. Jangan ubah gaya bahasa guru.

Input Raw Text:
=========================================
{raw_text}
=========================================
"""


def build_prompt(raw_text: str) -> str:
    return PROMPT_TEMPLATE.format(raw_text=raw_text)


class ExtractionBackend(Protocol):
    def generate(self, prompt: str) -> Optional[str]:
        ...


class GeminiBackend:
    """Single structured-extraction call against the Gemini API."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        timeout_ms: int = DEFAULT_REQUEST_TIMEOUT_MS,
    ) -> None:
        if not api_key:
            raise ValueError("Gemini API key required.")
        # bounded so an abandoned call cannot hold the worker thread forever
        self.client = genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout_ms)),
        )
        self.model_name = model

    def generate(self, prompt: str) -> Optional[str]:
        response = self.client.models.generate_content(
            model=self.model_name,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=RESPONSE_SCHEMA,
            ),
        )
        return response.text


def _nested_error(exc: BaseException) -> dict[str, Any]:
    for attr in ("details", "response_json", "error"):
        value = getattr(exc, attr, None)
        if isinstance(value, dict):
            inner = value.get("error", value)
            if isinstance(inner, dict):
                return inner
    return {}


def is_quota_error(exc: BaseException) -> bool:
    nested = _nested_error(exc)
    code = getattr(exc, "code", None) or nested.get("code")
    status = getattr(exc, "status", None) or nested.get("status")
    message = getattr(exc, "message", None) or nested.get("message") or str(exc)

    if code == 429 or str(code) == "429":
        return True
    if status == "RESOURCE_EXHAUSTED":
        return True
    if isinstance(message, str) and any(marker in message for marker in QUOTA_MESSAGE_MARKERS):
        return True
    return False


def _strip_code_fence(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = re.sub(r"^```(?:json)?\s*", "", stripped)
        stripped = re.sub(r"\s*```$", "", stripped)
    return stripped


def _require(item: dict[str, Any], key: str, index: int) -> Any:
    if key not in item or item[key] is None:
        raise MalformedResponse(f"question #{index + 1}: missing required field '{key}'")
    return item[key]


def _parse_id(value: Any, index: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedResponse(f"question #{index + 1}: id must be an integer, got {value!r}")
    if isinstance(value, float) and not value.is_integer():
        raise MalformedResponse(f"question #{index + 1}: id must be an integer, got {value!r}")
    number = int(value)
    if number <= 0:
        raise MalformedResponse(f"question #{index + 1}: id must be positive, got {number}")
    return number


def _parse_options(value: Any, index: int) -> tuple[Option, ...]:
    if not isinstance(value, list):
        raise MalformedResponse(f"question #{index + 1}: options must be an array")
    options: list[Option] = []
    seen: set[str] = set()
    for raw in value:
        if not isinstance(raw, dict):
            raise MalformedResponse(f"question #{index + 1}: option must be an object")
        label = raw.get("label")
        text = raw.get("text")
        if not isinstance(label, str) or not isinstance(text, str):
            raise MalformedResponse(f"question #{index + 1}: option needs string label and text")
        normalized = label.strip().rstrip(".)").strip().upper()
        if normalized not in OPTION_LABELS:
            raise MalformedResponse(f"question #{index + 1}: invalid option label {label!r}")
        if normalized in seen:
            raise MalformedResponse(f"question #{index + 1}: duplicate option label {normalized}")
        seen.add(normalized)
        options.append(Option(label=normalized, text=text.strip()))
    return tuple(options)


def _parse_question(item: Any, index: int) -> Question:
    if not isinstance(item, dict):
        raise MalformedResponse(f"question #{index + 1}: expected an object")

    question_id = _parse_id(_require(item, "id", index), index)
    text = _require(item, "text", index)
    if not isinstance(text, str):
        raise MalformedResponse(f"question #{index + 1}: text must be a string")
    reported_type = _require(item, "type", index)
    valid_types = {member.value for member in QuestionType}
    if reported_type not in valid_types:
        raise MalformedResponse(f"question #{index + 1}: unknown type {reported_type!r}")
    options = _parse_options(_require(item, "options", index), index)

    question_type = question_type_for(options)
    if question_type.value != reported_type:
        append_log(
            f"remote type mismatch | id={question_id} reported={reported_type} "
            f"options={len(options)} -> {question_type.value}"
        )

    answer_key = item.get("answerKey")
    if isinstance(answer_key, str):
        answer_key = answer_key.strip().rstrip(".)").strip().upper() or None
    if answer_key not in OPTION_LABELS:
        answer_key = None

    return Question(
        id=question_id,
        text=text.strip(),
        options=options,
        type=question_type,
        answer_key=answer_key,
        difficulty=Difficulty.parse(item.get("difficulty")),
    )


def parse_response_payload(payload: Optional[str]) -> list[Question]:
    if payload is None or not payload.strip():
        raise MalformedResponse("No data returned from the extraction service.")
    try:
        data = json.loads(_strip_code_fence(payload))
    except json.JSONDecodeError as exc:
        raise MalformedResponse(f"Response is not valid JSON: {exc}") from exc

    if isinstance(data, dict) and isinstance(data.get("questions"), list):
        data = data["questions"]
    if not isinstance(data, list):
        raise MalformedResponse(f"Expected a JSON array, got {type(data).__name__}.")
    return [_parse_question(item, index) for index, item in enumerate(data)]


class RemoteExtractionClient:
    def __init__(
        self,
        backend: ExtractionBackend,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        initial_backoff_ms: int = DEFAULT_INITIAL_BACKOFF_MS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.backend = backend
        self.max_attempts = max(1, int(max_attempts))
        self.initial_backoff_ms = max(0, int(initial_backoff_ms))
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: dict[str, Any], api_key: str) -> "RemoteExtractionClient":
        remote = config.get("remote", {})
        backend = GeminiBackend(
            api_key=api_key,
            model=str(remote.get("model") or DEFAULT_MODEL),
            timeout_ms=int(remote.get("request_timeout_ms") or DEFAULT_REQUEST_TIMEOUT_MS),
        )
        return cls(
            backend,
            max_attempts=int(remote.get("max_attempts", DEFAULT_MAX_ATTEMPTS)),
            initial_backoff_ms=int(remote.get("initial_backoff_ms", DEFAULT_INITIAL_BACKOFF_MS)),
        )

    def _wait(self, seconds: float, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is None:
            self._sleep(seconds)
            return
        if cancel_event.wait(seconds):
            raise ExtractionCancelled("Extraction cancelled during backoff.")

    @staticmethod
    def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise ExtractionCancelled("Extraction cancelled.")

    def extract(self, raw_text: str, cancel_event: Optional[threading.Event] = None) -> list[Question]:
        prompt = build_prompt(raw_text)
        delay_ms = self.initial_backoff_ms
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_attempts + 1):
            self._check_cancelled(cancel_event)
            try:
                payload = self.backend.generate(prompt)
            except ExtractionError:
                raise
            except Exception as exc:
                if not is_quota_error(exc):
                    raise TransportFailure(f"{type(exc).__name__}: {exc}") from exc
                last_error = exc
                if attempt >= self.max_attempts:
                    break
                append_log(
                    f"quota hit (attempt {attempt}/{self.max_attempts}) | retry in {delay_ms}ms | {exc}"
                )
                self._wait(delay_ms / 1000.0, cancel_event)
                delay_ms *= 2
                continue
            self._check_cancelled(cancel_event)
            return parse_response_payload(payload)

        raise QuotaExceeded(
            f"Quota still exhausted after {self.max_attempts} attempts: {last_error}"
        ) from last_error
