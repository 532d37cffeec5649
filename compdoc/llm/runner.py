"""Transport for documentation prompts: chat-completion HTTP or the Ollama CLI."""

from __future__ import annotations

import json
import os
import subprocess
from dataclasses import dataclass
from http.client import HTTPException
from typing import Callable, Dict, List, Optional, Sequence
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

_AUTO_BASE_URL = object()
_AUTO_API_KEY = object()


class RunnerError(RuntimeError):
    """Raised when the model could not be reached or answered unusably."""


@dataclass
class LLMRequest:
    """One documentation prompt together with the transport settings."""

    prompt: str
    system: Optional[str]
    model: str
    temperature: Optional[float]
    max_tokens: Optional[int]
    json_mode: bool
    executable: Optional[str]
    base_url: Optional[str]
    api_key: Optional[str]
    request_timeout: Optional[float]


class LLMRunner:
    """Sends documentation prompts to a model.

    A configured ``base_url`` selects an OpenAI-compatible
    ``/chat/completions`` endpoint; ``base_url=None`` shells out to
    ``ollama run``. Settings left unspecified are read from the
    ``COMPDOC_LLM_*`` or ``OPENAI_*`` environment variables. Every transport
    failure surfaces as :class:`RunnerError`.
    """

    DEFAULT_MODEL = "gpt-4o-mini"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    ENV_MODEL_KEYS = ("COMPDOC_LLM_MODEL", "OPENAI_MODEL")
    ENV_BASE_URL_KEYS = ("COMPDOC_LLM_BASE_URL", "OPENAI_BASE_URL")
    ENV_API_KEY_KEYS = ("COMPDOC_LLM_API_KEY", "OPENAI_API_KEY")

    def __init__(
        self,
        model: str | None = None,
        *,
        base_url: str | None | object = _AUTO_BASE_URL,
        executable: str = "ollama",
        temperature: Optional[float] = 0.2,
        max_tokens: Optional[int] = 1000,
        api_key: str | None | object = _AUTO_API_KEY,
        request_timeout: Optional[float] = 60.0,
        runner: Callable[[LLMRequest], str] | None = None,
    ) -> None:
        self.model = model or _first_env_value(self.ENV_MODEL_KEYS) or self.DEFAULT_MODEL
        self.base_url = self._pick_base_url(base_url)
        self.executable = executable
        self.temperature = temperature
        self.max_tokens = max_tokens
        if api_key is _AUTO_API_KEY:
            self.api_key = _first_env_value(self.ENV_API_KEY_KEYS)
        else:
            self.api_key = api_key  # type: ignore[assignment]
        self.request_timeout = request_timeout
        if runner is not None:
            self._transport = runner
        elif self.base_url:
            self._transport = _post_chat_completion
        else:
            self._transport = _run_ollama

    def run(self, prompt: str, *, system: str | None = None, json_mode: bool = False) -> str:
        """Return the model's reply to ``prompt``."""
        return self._transport(
            LLMRequest(
                prompt=prompt,
                system=system,
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                json_mode=json_mode,
                executable=self.executable,
                base_url=self.base_url,
                api_key=self.api_key,
                request_timeout=self.request_timeout,
            )
        )

    @classmethod
    def environment_configured(cls) -> bool:
        keys = (*cls.ENV_MODEL_KEYS, *cls.ENV_BASE_URL_KEYS, *cls.ENV_API_KEY_KEYS)
        return any(os.getenv(key) for key in keys)

    def _pick_base_url(self, base_url: str | None | object) -> str | None:
        if base_url is None:
            return None
        if base_url is _AUTO_BASE_URL:
            base_url = _first_env_value(self.ENV_BASE_URL_KEYS) or self.DEFAULT_BASE_URL
        return str(base_url).rstrip("/")


def _run_ollama(request: LLMRequest) -> str:
    executable = request.executable or "ollama"
    prompt = request.prompt
    if request.system:
        prompt = f"{request.system.strip()}\n\n{prompt}"
    args = [executable, "run", request.model]
    if request.json_mode:
        args += ["--format", "json"]
    args.append(prompt)
    try:
        completed = subprocess.run(
            args,
            check=True,
            capture_output=True,
            text=True,
            timeout=request.request_timeout,
        )
    except FileNotFoundError as exc:  # pragma: no cover - depends on environment
        raise RunnerError(
            f"'{executable}' is not installed; install Ollama or set llm.base_url"
        ) from exc
    except subprocess.TimeoutExpired as exc:  # pragma: no cover - depends on environment
        raise RunnerError(f"Model {request.model} did not answer within {exc.timeout}s") from exc
    except subprocess.CalledProcessError as exc:
        raise RunnerError(
            f"'{executable} run {request.model}' exited with {exc.returncode}: {exc.stderr.strip()}"
        ) from exc
    reply = completed.stdout.strip()
    if not reply:
        raise RunnerError(f"Model {request.model} returned an empty response")
    return reply


def _post_chat_completion(request: LLMRequest) -> str:
    if not request.base_url:
        raise RunnerError("A base_url is required for chat-completion requests")
    body: Dict[str, object] = {"model": request.model, "messages": _messages(request)}
    if request.temperature is not None:
        body["temperature"] = request.temperature
    if request.max_tokens is not None:
        body["max_tokens"] = request.max_tokens
    if request.json_mode:
        body["response_format"] = {"type": "json_object"}

    headers = {"Content-Type": "application/json"}
    if request.api_key:
        headers["Authorization"] = f"Bearer {request.api_key}"
    endpoint = f"{request.base_url}/chat/completions"
    http_request = Request(endpoint, data=json.dumps(body).encode("utf-8"), headers=headers, method="POST")
    timeout = request.request_timeout or 60.0

    try:
        with urlopen(http_request, timeout=timeout) as response:  # type: ignore[arg-type]
            raw = response.read()
        reply = json.loads(raw.decode("utf-8"))
    except HTTPError as exc:
        detail = exc.read().decode("utf-8", errors="ignore").strip() or exc.reason
        raise RunnerError(f"{endpoint} answered {exc.code}: {detail}") from exc
    except URLError as exc:
        raise RunnerError(f"Could not reach {endpoint}: {exc.reason}") from exc
    except TimeoutError as exc:
        raise RunnerError(f"{endpoint} did not answer within {timeout}s") from exc
    except (OSError, HTTPException) as exc:
        raise RunnerError(f"Connection to {endpoint} failed: {exc}") from exc
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise RunnerError(f"{endpoint} returned a body that is not JSON") from exc

    content = _reply_text(reply)
    if not content.strip():
        raise RunnerError(f"Model {request.model} returned an empty response")
    return content.strip()


def _messages(request: LLMRequest) -> List[Dict[str, str]]:
    messages = []
    if request.system:
        messages.append({"role": "system", "content": request.system})
    messages.append({"role": "user", "content": request.prompt})
    return messages


def _reply_text(reply: object) -> str:
    """First choice's message content, or the legacy ``text`` field."""
    if not isinstance(reply, dict):
        return ""
    choices = reply.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    choice = choices[0]
    message = choice.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    text = choice.get("text")
    return text if isinstance(text, str) else ""


def _first_env_value(keys: Sequence[str]) -> str | None:
    for key in keys:
        value = os.getenv(key)
        if value:
            return value
    return None


__all__ = ["LLMRequest", "LLMRunner", "RunnerError"]
