"""Minimal chat-completion client for OpenAI-compatible endpoints."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List

import requests

from kbplan.errors import LLMUnavailableError

LOGGER = logging.getLogger(__name__)

_JSON_BLOCK_RE = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(slots=True)
class ChatConfig:
    endpoint: str
    api_key: str | None = None
    model: str = "gpt-4o-mini"
    timeout: float = 60.0
    temperature: float = 0.0


class ChatClient:
    """Posts chat messages and returns the assistant text."""

    def __init__(self, config: ChatConfig, *, session: requests.Session | None = None) -> None:
        if not config.endpoint:
            raise LLMUnavailableError("LLM endpoint missing")
        self.config = config
        self._session = session or requests.Session()

    def complete(self, system: str, user: str) -> str:
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "temperature": self.config.temperature,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"

        try:
            response = self._session.post(
                self.config.endpoint,
                headers=headers,
                data=json.dumps(payload),
                timeout=self.config.timeout,
            )
        except requests.RequestException as exc:
            raise LLMUnavailableError(f"LLM request failed: {exc}") from exc

        if response.status_code >= 400:
            raise LLMUnavailableError(
                f"LLM provider error {response.status_code}: {response.text[:200]}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise LLMUnavailableError("LLM provider returned non-JSON payload") from exc

        # OpenAI chat style first, then legacy completion and plain payloads
        choices: List[Dict[str, Any]] = data.get("choices") or []
        if choices:
            message = choices[0].get("message") or {}
            return message.get("content") or choices[0].get("text") or ""
        return data.get("output") or data.get("text") or ""

    def complete_json(self, system: str, user: str) -> Dict[str, Any]:
        """Like `complete` but parses the first JSON object in the answer."""
        text = self.complete(system, user)
        return extract_json_object(text)


def extract_json_object(text: str) -> Dict[str, Any]:
    match = _JSON_BLOCK_RE.search(text)
    if not match:
        raise LLMUnavailableError(f"No JSON object in LLM answer: {text[:120]!r}")
    try:
        value = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise LLMUnavailableError(f"Invalid JSON in LLM answer: {exc}") from exc
    if not isinstance(value, dict):
        raise LLMUnavailableError("LLM answer is not a JSON object")
    return value
