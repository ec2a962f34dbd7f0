import json
import shutil
import threading
import unittest
from pathlib import Path
from unittest import mock
from uuid import uuid4

from examformat import debug_log
from examformat.exceptions import (
    ExtractionCancelled,
    MalformedResponse,
    QuotaExceeded,
    TransportFailure,
)
from examformat.models import Difficulty, Option, QuestionType
from examformat.remote_client import (
    DEFAULT_REQUEST_TIMEOUT_MS,
    RESPONSE_SCHEMA,
    GeminiBackend,
    RemoteExtractionClient,
    build_prompt,
    is_quota_error,
    parse_response_payload,
)


class FakeApiError(Exception):
    def __init__(self, code=None, status=None, message=""):
        super().__init__(message)
        self.code = code
        self.status = status
        self.message = message


class ScriptedBackend:
    """Replays a fixed list of outcomes: strings are payloads, exceptions are raised."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.prompts: list[str] = []

    def generate(self, prompt):
        self.prompts.append(prompt)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _payload(*items) -> str:
    return json.dumps(list(items))


VALID_ITEM = {
    "id": 1,
    "text": "Ibu kota Indonesia adalah",
    "type": "MULTIPLE_CHOICE",
    "options": [{"label": "A", "text": "Jakarta"}, {"label": "B", "text": "Bandung"}],
    "answerKey": "A",
    "difficulty": "Mudah",
}


class LogIsolationMixin:
    def setUp(self) -> None:
        self._log_dir = Path(".tmp_remote_logs") / uuid4().hex
        self._previous_log = debug_log.current_log_path()
        debug_log.configure(self._log_dir / "debug.log")

    def tearDown(self) -> None:
        debug_log.configure(self._previous_log)
        shutil.rmtree(self._log_dir.parent, ignore_errors=True)


class QuotaClassificationTestCase(unittest.TestCase):
    def test_code_429(self) -> None:
        self.assertTrue(is_quota_error(FakeApiError(code=429)))

    def test_resource_exhausted_status(self) -> None:
        self.assertTrue(is_quota_error(FakeApiError(status="RESOURCE_EXHAUSTED")))

    def test_message_markers(self) -> None:
        self.assertTrue(is_quota_error(RuntimeError("You exceeded your current quota")))
        self.assertTrue(is_quota_error(RuntimeError("HTTP 429 Too Many Requests")))

    def test_nested_error_payload(self) -> None:
        exc = RuntimeError("boom")
        exc.details = {"error": {"code": 429, "status": "RESOURCE_EXHAUSTED"}}
        self.assertTrue(is_quota_error(exc))

    def test_other_failures_are_not_quota(self) -> None:
        self.assertFalse(is_quota_error(FakeApiError(code=500, status="INTERNAL", message="server error")))
        self.assertFalse(is_quota_error(ConnectionError("connection reset")))


class ParseResponsePayloadTestCase(LogIsolationMixin, unittest.TestCase):
    def test_valid_payload(self) -> None:
        questions = parse_response_payload(_payload(VALID_ITEM))
        self.assertEqual(len(questions), 1)
        question = questions[0]
        self.assertEqual(question.id, 1)
        self.assertEqual(question.options, (Option("A", "Jakarta"), Option("B", "Bandung")))
        self.assertIs(question.type, QuestionType.MULTIPLE_CHOICE)
        self.assertEqual(question.answer_key, "A")
        self.assertIs(question.difficulty, Difficulty.EASY)

    def test_remote_ids_are_kept(self) -> None:
        essay = {"id": 7, "text": "Jelaskan!", "type": "ESSAY", "options": []}
        questions = parse_response_payload(_payload(VALID_ITEM, essay))
        self.assertEqual([q.id for q in questions], [1, 7])
        self.assertIs(questions[1].type, QuestionType.ESSAY)

    def test_type_follows_options(self) -> None:
        item = dict(VALID_ITEM, type="ESSAY")
        self.assertIs(parse_response_payload(_payload(item))[0].type, QuestionType.MULTIPLE_CHOICE)

    def test_code_fence_is_tolerated(self) -> None:
        text = "```json\n" + _payload(VALID_ITEM) + "\n```"
        self.assertEqual(len(parse_response_payload(text)), 1)

    def test_optional_fields_may_be_absent_or_invalid(self) -> None:
        item = {key: value for key, value in VALID_ITEM.items() if key not in ("answerKey", "difficulty")}
        question = parse_response_payload(_payload(item))[0]
        self.assertIsNone(question.answer_key)
        self.assertIsNone(question.difficulty)
        bad = dict(VALID_ITEM, answerKey="Z", difficulty="Ekstrem")
        question = parse_response_payload(_payload(bad))[0]
        self.assertIsNone(question.answer_key)
        self.assertIsNone(question.difficulty)

    def test_empty_array_is_valid(self) -> None:
        self.assertEqual(parse_response_payload("[]"), [])

    def test_fails_closed(self) -> None:
        broken = [
            None,
            "",
            "not json",
            json.dumps({"id": 1}),
            _payload({k: v for k, v in VALID_ITEM.items() if k != "id"}),
            _payload({k: v for k, v in VALID_ITEM.items() if k != "text"}),
            _payload({k: v for k, v in VALID_ITEM.items() if k != "type"}),
            _payload({k: v for k, v in VALID_ITEM.items() if k != "options"}),
            _payload(dict(VALID_ITEM, id="1")),
            _payload(dict(VALID_ITEM, id=0)),
            _payload(dict(VALID_ITEM, id=True)),
            _payload(dict(VALID_ITEM, type="TRUE_FALSE")),
            _payload(dict(VALID_ITEM, options=[{"label": "F", "text": "x"}])),
            _payload(dict(VALID_ITEM, options=[{"label": "A", "text": "x"}, {"label": "a", "text": "y"}])),
            _payload(dict(VALID_ITEM, options=[{"label": "A"}])),
            _payload("string item"),
        ]
        for payload in broken:
            with self.subTest(payload=payload):
                with self.assertRaises(MalformedResponse):
                    parse_response_payload(payload)


class RemoteExtractionClientTestCase(LogIsolationMixin, unittest.TestCase):
    def _client(self, backend, **kwargs):
        self.waits: list[float] = []
        return RemoteExtractionClient(backend, sleep=self.waits.append, **kwargs)

    def test_success_on_first_attempt(self) -> None:
        backend = ScriptedBackend([_payload(VALID_ITEM)])
        questions = self._client(backend).extract("1. Ibu kota Indonesia adalah")
        self.assertEqual(len(questions), 1)
        self.assertEqual(self.waits, [])
        self.assertIn("1. Ibu kota Indonesia adalah", backend.prompts[0])

    def test_quota_retries_with_doubling_backoff(self) -> None:
        backend = ScriptedBackend([
            FakeApiError(code=429, message="quota"),
            FakeApiError(status="RESOURCE_EXHAUSTED"),
            _payload(VALID_ITEM),
        ])
        questions = self._client(backend).extract("soal")
        self.assertEqual(len(questions), 1)
        self.assertEqual(self.waits, [2.0, 4.0])
        self.assertEqual(len(backend.prompts), 3)

    def test_quota_exhaustion_raises_after_budget(self) -> None:
        backend = ScriptedBackend([FakeApiError(code=429)] * 3)
        with self.assertRaises(QuotaExceeded):
            self._client(backend).extract("soal")
        self.assertEqual(self.waits, [2.0, 4.0])
        self.assertEqual(backend.outcomes, [])

    def test_transport_failure_is_not_retried(self) -> None:
        backend = ScriptedBackend([ConnectionError("unreachable"), _payload(VALID_ITEM)])
        with self.assertRaises(TransportFailure):
            self._client(backend).extract("soal")
        self.assertEqual(len(backend.prompts), 1)
        self.assertEqual(self.waits, [])

    def test_malformed_response_is_not_retried(self) -> None:
        backend = ScriptedBackend(["{}", _payload(VALID_ITEM)])
        with self.assertRaises(MalformedResponse):
            self._client(backend).extract("soal")
        self.assertEqual(len(backend.prompts), 1)

    def test_custom_attempt_budget(self) -> None:
        backend = ScriptedBackend([FakeApiError(code=429)] * 2)
        with self.assertRaises(QuotaExceeded):
            self._client(backend, max_attempts=2, initial_backoff_ms=100).extract("soal")
        self.assertEqual(self.waits, [0.1])

    def test_cancel_before_first_attempt(self) -> None:
        backend = ScriptedBackend([_payload(VALID_ITEM)])
        event = threading.Event()
        event.set()
        with self.assertRaises(ExtractionCancelled):
            self._client(backend).extract("soal", cancel_event=event)
        self.assertEqual(backend.prompts, [])

    def test_cancel_during_backoff(self) -> None:
        event = threading.Event()

        class CancellingBackend(ScriptedBackend):
            def generate(self, prompt):
                event.set()
                return super().generate(prompt)

        backend = CancellingBackend([FakeApiError(code=429), _payload(VALID_ITEM)])
        with self.assertRaises(ExtractionCancelled):
            self._client(backend).extract("soal", cancel_event=event)
        self.assertEqual(len(backend.prompts), 1)

    def test_retry_is_logged(self) -> None:
        backend = ScriptedBackend([FakeApiError(code=429), _payload(VALID_ITEM)])
        self._client(backend).extract("soal")
        log_text = debug_log.current_log_path().read_text(encoding="utf-8")
        self.assertIn("quota hit (attempt 1/3)", log_text)
        self.assertIn("retry in 2000ms", log_text)


class RequestTimeoutTestCase(unittest.TestCase):
    def test_configured_timeout_reaches_http_options(self) -> None:
        with mock.patch("examformat.remote_client.genai.Client") as client_cls:
            client = RemoteExtractionClient.from_config({"remote": {"request_timeout_ms": 1500}}, "kunci")

        self.assertIsInstance(client.backend, GeminiBackend)
        kwargs = client_cls.call_args.kwargs
        self.assertEqual(kwargs["api_key"], "kunci")
        self.assertEqual(kwargs["http_options"].timeout, 1500)

    def test_default_timeout_is_bounded(self) -> None:
        with mock.patch("examformat.remote_client.genai.Client") as client_cls:
            RemoteExtractionClient.from_config({}, "kunci")

        self.assertEqual(client_cls.call_args.kwargs["http_options"].timeout, DEFAULT_REQUEST_TIMEOUT_MS)
        self.assertGreater(DEFAULT_REQUEST_TIMEOUT_MS, 0)


class PromptAndSchemaTestCase(unittest.TestCase):
    def test_prompt_embeds_raw_text(self) -> None:
        prompt = build_prompt("1. Apa?\na. Ya")
        self.assertIn("1. Apa?\na. Ya", prompt)
        self.assertIn("ESSAY", prompt)

    def test_schema_requires_core_fields(self) -> None:
        self.assertEqual(
            sorted(RESPONSE_SCHEMA.items.required),
            ["id", "options", "text", "type"],
        )


if __name__ == "__main__":
    unittest.main()
