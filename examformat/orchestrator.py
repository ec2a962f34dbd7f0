from __future__ import annotations

import os
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional

from .debug_log import append_log, log_swallowed_exception
from .exceptions import ExtractionCancelled, ExtractionError
from .local_parser import LocalParser
from .models import ExtractionResult, ExtractionSource, Question

DEFAULT_API_KEY_ENV = ("GEMINI_API_KEY", "API_KEY")
CANCEL_POLL_SECONDS = 0.1


def resolve_credential(config: Optional[dict[str, Any]]) -> Optional[str]:
    remote = (config or {}).get("remote", {}) or {}
    configured = str(remote.get("api_key") or "").strip()
    if configured:
        return configured

    env_names = remote.get("api_key_env") or DEFAULT_API_KEY_ENV
    if isinstance(env_names, str):
        env_names = [env_names]
    for name in env_names:
        value = os.environ.get(str(name), "").strip()
        if value:
            return value
    return None


def _build_remote_client(config: dict[str, Any], api_key: str):
    from .remote_client import RemoteExtractionClient

    return RemoteExtractionClient.from_config(config, api_key)


class ExtractionOrchestrator:
    """Turns raw exam text into questions, preferring the remote service.

    ``extract`` never raises for remote failures: quota exhaustion, bad
    payloads, transport errors and unexpected exceptions all degrade to the
    local parser. The only exception that can escape is
    ``ExtractionCancelled`` when the caller asks for it.
    """

    def __init__(
        self,
        config: Optional[dict[str, Any]] = None,
        client: Any = None,
        local_parser: Optional[LocalParser] = None,
        credential_resolver: Callable[[dict[str, Any]], Optional[str]] = resolve_credential,
        client_factory: Callable[[dict[str, Any], str], Any] = _build_remote_client,
    ) -> None:
        self.config = config or {}
        self._client = client
        self.local_parser = local_parser or LocalParser(self.config)
        self._credential_resolver = credential_resolver
        self._client_factory = client_factory
        extraction = self.config.get("extraction", {}) or {}
        self.renumber_remote_ids = bool(extraction.get("renumber_remote_ids", False))

    def _local(self, raw_text: str) -> ExtractionResult:
        questions = self.local_parser.parse(raw_text)
        return ExtractionResult(questions=tuple(questions), source=ExtractionSource.LOCAL)

    def _run_remote(
        self, client: Any, raw_text: str, cancel_event: Optional[threading.Event]
    ) -> list[Question]:
        if cancel_event is None:
            return client.extract(raw_text)

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="remote-extract")
        try:
            future = executor.submit(client.extract, raw_text, cancel_event)
            while True:
                if cancel_event.is_set():
                    future.cancel()
                    raise ExtractionCancelled("Extraction cancelled while waiting for the service.")
                try:
                    return future.result(timeout=CANCEL_POLL_SECONDS)
                except FutureTimeoutError:
                    continue
        finally:
            # An in-flight HTTP call cannot be interrupted; leave it to finish alone.
            executor.shutdown(wait=False)

    def extract(
        self,
        raw_text: str,
        cancel_event: Optional[threading.Event] = None,
        propagate_cancel: bool = False,
    ) -> ExtractionResult:
        credential = self._credential_resolver(self.config)
        if not credential:
            append_log("no API credential configured | using local parser")
            return self._local(raw_text)

        try:
            client = self._client or self._client_factory(self.config, credential)
            questions = self._run_remote(client, raw_text, cancel_event)
        except ExtractionCancelled as exc:
            append_log(f"remote extraction cancelled | {exc}")
            if propagate_cancel:
                raise
            return self._local(raw_text)
        except ExtractionError as exc:
            append_log(f"remote extraction failed | {type(exc).__name__}: {exc} | falling back to local parser")
            return self._local(raw_text)
        except Exception as exc:
            log_swallowed_exception("remote extraction crashed, falling back to local parser", exc)
            return self._local(raw_text)

        if self.renumber_remote_ids:
            questions = [question.with_id(index) for index, question in enumerate(questions, start=1)]
        append_log(f"remote extraction ok | questions={len(questions)}")
        return ExtractionResult(questions=tuple(questions), source=ExtractionSource.REMOTE)
