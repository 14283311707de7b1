from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

import requests
from dotenv import load_dotenv

from ..config import ProviderConfig
from ..errors import ProviderError
from .interfaces import (
    TERMINAL_STATUSES,
    CompletionClientProtocol,
    CompletionRequest,
    RenderClientProtocol,
    RenderResult,
)


def _api_key(env_name: str) -> str:
    load_dotenv()
    key = os.environ.get(env_name, "").strip()
    if not key:
        raise ProviderError(f"Missing API key: set {env_name} in the environment or .env")
    return key


def _json(response: requests.Response, what: str) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise ProviderError(f"{what} returned a non-JSON response") from exc
    if not isinstance(data, dict):
        raise ProviderError(f"{what} returned an unexpected payload")
    return data


def _normalize_output(output: Any) -> List[str]:
    if output is None:
        return []
    if isinstance(output, str):
        return [output]
    if isinstance(output, (list, tuple)):
        return [str(item) for item in output if item]
    if isinstance(output, Mapping):
        return [str(value) for value in output.values() if isinstance(value, str)]
    return [str(output)]


@dataclass
class ChatCompletionClient(CompletionClientProtocol):
    """OpenAI-compatible chat completion endpoint."""

    url: str
    api_key: str
    timeout_s: float = 60.0

    @classmethod
    def from_config(cls, config: ProviderConfig) -> "ChatCompletionClient":
        return cls(url=config.completion_url, api_key=_api_key(config.completion_key_env), timeout_s=config.timeout_s)

    def get_completion(self, request: CompletionRequest) -> str:
        try:
            response = requests.post(
                self.url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "model": request.model,
                    "messages": [dict(message) for message in request.messages],
                    "temperature": float(request.temperature),
                    "max_tokens": int(request.max_tokens),
                },
                timeout=self.timeout_s,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ProviderError(f"Completion request failed for model '{request.model}'") from exc

        data = _json(response, "Completion provider")
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderError("Completion provider returned no choices") from exc
        return " ".join(str(content or "").split())


@dataclass
class ReplicateRenderClient(RenderClientProtocol):
    """Creates a prediction and polls it until it reaches a terminal status."""

    base_url: str
    api_token: str
    timeout_s: float = 60.0
    poll_interval_s: float = 1.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    @classmethod
    def from_config(cls, config: ProviderConfig) -> "ReplicateRenderClient":
        return cls(
            base_url=config.render_url.rstrip("/"),
            api_token=_api_key(config.render_key_env),
            timeout_s=config.timeout_s,
            poll_interval_s=config.poll_interval_s,
        )

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_token}", "Content-Type": "application/json"}

    def run_prediction(self, model_id: str, input: Mapping[str, Any]) -> RenderResult:
        try:
            response = requests.post(
                f"{self.base_url}/models/{model_id}/predictions",
                headers=self._headers(),
                json={"input": dict(input)},
                timeout=self.timeout_s,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ProviderError(f"Render request failed for model '{model_id}'") from exc

        prediction = _json(response, "Render provider")
        deadline = time.monotonic() + self.timeout_s
        while str(prediction.get("status")) not in TERMINAL_STATUSES:
            if time.monotonic() >= deadline:
                raise ProviderError(f"Timed out waiting for prediction {prediction.get('id')}")
            self.sleep(self.poll_interval_s)
            prediction = self._poll(prediction)
        return RenderResult(
            status=str(prediction.get("status")),
            output=tuple(_normalize_output(prediction.get("output"))),
            error=prediction.get("error") or None,
            prediction_id=prediction.get("id"),
        )

    def _poll(self, prediction: Mapping[str, Any]) -> Dict[str, Any]:
        urls = prediction.get("urls") or {}
        url: Optional[str] = urls.get("get") if isinstance(urls, Mapping) else None
        if not url:
            url = f"{self.base_url}/predictions/{prediction.get('id')}"
        try:
            response = requests.get(url, headers=self._headers(), timeout=self.timeout_s)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ProviderError(f"Polling prediction {prediction.get('id')} failed") from exc
        return _json(response, "Render provider")


class OfflineCompletionClient(CompletionClientProtocol):
    """Echoes the user message back as the final prompt; no network access."""

    def get_completion(self, request: CompletionRequest) -> str:
        user = next((m.get("content", "") for m in request.messages if m.get("role") == "user"), "")
        return "FINAL PROMPT: " + " ".join(str(user).split())


@dataclass
class DryRunRenderClient(RenderClientProtocol):
    """Pretends to render and returns a placeholder output URL."""

    calls: int = 0

    def run_prediction(self, model_id: str, input: Mapping[str, Any]) -> RenderResult:
        self.calls += 1
        return RenderResult(
            status="succeeded",
            output=(f"dry-run://{model_id}/{self.calls}.png",),
            prediction_id=f"dry-{self.calls}",
        )


__all__ = ["ChatCompletionClient", "DryRunRenderClient", "OfflineCompletionClient", "ReplicateRenderClient"]
