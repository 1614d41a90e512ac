"""
httpx client for the messages endpoint (relay or provider).

• ``stream()``  → generator of cumulative text, returns the final text
• ``complete()`` → single-shot text
Both log model + token usage after every call.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Generator, List

import httpx

from firstdraft.config import Settings
from firstdraft.exceptions import ConfigurationError, TransportError
from firstdraft.llm.stream_decoder import StreamDecoder, extract_text

logger = logging.getLogger(__name__)


def _log_usage(model: str, usage: Dict[str, int], stop_reason: str | None = None) -> None:
    logger.info(
        "[LLM] %s  in=%s  out=%s  stop=%s",
        model,
        usage.get("input_tokens", "?"),
        usage.get("output_tokens", "?"),
        stop_reason or "?",
    )
    if stop_reason == "max_tokens":
        logger.warning("Response from %s was cut off at max_tokens", model)


class RelayClient:
    """Talks to the relay, or straight to the provider when no relay is set."""

    def __init__(self, settings: Settings, http: httpx.Client | None = None):
        self.settings = settings
        self._http = http or httpx.Client(timeout=settings.timeout)

    def close(self) -> None:
        self._http.close()

    # ─── request building ────────────────────────────────────────────────
    def build_payload(
        self, system: str, messages: List[Dict[str, str]], *, stream: bool
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.settings.model,
            "max_tokens": self.settings.max_tokens,
            "system": system,
            "messages": messages,
        }
        if stream:
            payload["stream"] = True
        return payload

    def _headers(self) -> Dict[str, str]:
        if self.settings.relay_url:
            return {}  # the relay owns the credential
        if not self.settings.api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY not configured")
        return {
            "x-api-key": self.settings.api_key,
            "anthropic-version": self.settings.anthropic_version,
        }

    # ─── calls ───────────────────────────────────────────────────────────
    def stream(
        self, system: str, messages: List[Dict[str, str]]
    ) -> Generator[str, None, str]:
        headers = self._headers()
        payload = self.build_payload(system, messages, stream=True)
        decoder = StreamDecoder()
        try:
            with self._http.stream(
                "POST", self.settings.endpoint, json=payload, headers=headers
            ) as resp:
                if resp.status_code >= 400:
                    resp.read()
                    raise _status_error(resp)
                yield from decoder.decode(resp.iter_bytes())
        except httpx.HTTPError as exc:
            raise TransportError(f"Streaming call failed: {exc}") from exc
        _log_usage(self.settings.model, decoder.usage, decoder.stop_reason)
        return decoder.text

    def complete(self, system: str, messages: List[Dict[str, str]]) -> str:
        headers = self._headers()
        payload = self.build_payload(system, messages, stream=False)
        try:
            resp = self._http.post(self.settings.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"Call failed: {exc}") from exc
        if resp.status_code >= 400:
            raise _status_error(resp)
        try:
            document = resp.json()
        except ValueError as exc:
            raise TransportError("Backend returned a non-JSON body", resp.status_code) from exc
        _log_usage(self.settings.model, document.get("usage") or {}, document.get("stop_reason"))
        return extract_text(document)


def _status_error(resp: httpx.Response) -> Exception:
    """Map an error response to the matching exception.

    The relay tags its own failures with ``code``; anything else is a
    transport error carrying the status.
    """
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    error = body.get("error")
    if isinstance(error, dict):  # provider error shape
        error = error.get("message")
    message = f"HTTP {resp.status_code}: {error or resp.reason_phrase}"
    if body.get("code") == ConfigurationError.error_code:
        return ConfigurationError(message)
    return TransportError(message, resp.status_code)
