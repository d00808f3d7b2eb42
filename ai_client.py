# ai_client.py
# -----------------------------------------------------------------------------
# Generative-text client used by question generation.
# - Constructed explicitly and injected (no module-level client)
# - One prompt in, one text out; no streaming
# - Backend failures are mapped to distinct exception classes by HTTP status
# -----------------------------------------------------------------------------

import os
from typing import Any, Dict, Optional

import requests


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------
class GenerationError(RuntimeError):
    """Generic backend failure (transport error, empty reply, unknown status)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GenerationServerError(GenerationError):
    """HTTP 5xx from the backend."""


class GenerationLimitError(GenerationError):
    """Base for rate/quota limits: callers must stop issuing requests."""


class GenerationRateLimited(GenerationLimitError):
    """HTTP 429."""


class GenerationQuotaExceeded(GenerationLimitError):
    """HTTP 403 (quota or billing)."""


def error_for_status(status_code: int, detail: str = "") -> GenerationError:
    detail = (detail or "").strip()[:300]
    if status_code == 429:
        return GenerationRateLimited(f"API_RATE_LIMIT_EXCEEDED: rate limit exceeded. {detail}".strip(), status_code)
    if status_code == 403:
        return GenerationQuotaExceeded(f"API_QUOTA_EXCEEDED: check API key and billing. {detail}".strip(), status_code)
    if 500 <= status_code < 600:
        return GenerationServerError(f"API_SERVER_ERROR ({status_code}). {detail}".strip(), status_code)
    return GenerationError(f"API_ERROR ({status_code}). {detail}".strip(), status_code)


def _error_detail(response: requests.Response) -> str:
    try:
        data = response.json()
        err = data.get("error") if isinstance(data, dict) else None
        if isinstance(err, dict):
            return str(err.get("message") or "")
        return str(err or "")
    except Exception:
        return (response.text or "")[:200]


# -----------------------------------------------------------------------------
# Client
# -----------------------------------------------------------------------------
class GenerativeClient:
    """
    Thin HTTP client over a hosted text model.

    provider: "gemini" (generateContent) or "openai" (chat completions).
    `session` may be any object with a requests-compatible `post`.
    """

    GEMINI_BASE = "https://generativelanguage.googleapis.com/v1beta"
    OPENAI_BASE = "https://api.openai.com/v1"

    def __init__(self, api_key: str, model: str, provider: str = "gemini",
                 timeout: float = 90, temperature: float = 0.4,
                 max_tokens: int = 8192, base_url: Optional[str] = None,
                 session: Any = None):
        self.api_key = (api_key or "").strip()
        self.model = (model or "").strip()
        self.provider = (provider or "gemini").strip().lower()
        if self.provider not in ("gemini", "openai"):
            raise ValueError(f"Unsupported AI provider '{provider}'")
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.base_url = (base_url or (self.GEMINI_BASE if self.provider == "gemini" else self.OPENAI_BASE)).rstrip("/")
        self.session = session or requests

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def generate(self, prompt: str) -> str:
        """Send one prompt; return the model's raw text."""
        if not self.api_key:
            raise GenerationError(f"API key for provider '{self.provider}' is not set.")
        if self.provider == "openai":
            url, headers, body = self._openai_request(prompt)
        else:
            url, headers, body = self._gemini_request(prompt)

        try:
            r = self.session.post(url, headers=headers, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise GenerationError(f"API request failed: {e}") from e

        if r.status_code != 200:
            raise error_for_status(r.status_code, _error_detail(r))

        try:
            data = r.json()
        except ValueError as e:
            raise GenerationError("Backend returned a non-JSON body", r.status_code) from e

        text = self._extract_text(data)
        if not text:
            raise GenerationError("Empty response from model", r.status_code)
        return text

    # ---- provider payloads ---------------------------------------------------
    def _gemini_request(self, prompt: str):
        url = f"{self.base_url}/models/{self.model}:generateContent"
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_tokens,
            },
        }
        return url, headers, body

    def _openai_request(self, prompt: str):
        url = f"{self.base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "response_format": {"type": "json_object"},
        }
        return url, headers, body

    def _extract_text(self, data: Dict[str, Any]) -> str:
        try:
            if self.provider == "openai":
                return (data["choices"][0]["message"]["content"] or "").strip()
            parts = data["candidates"][0]["content"]["parts"]
            return "".join(str(p.get("text") or "") for p in parts).strip()
        except (KeyError, IndexError, TypeError):
            return ""


def client_from_env() -> GenerativeClient:
    """Build the client from AI_PROVIDER and the provider's key/model variables."""
    provider = (os.getenv("AI_PROVIDER") or "gemini").strip().lower()
    timeout = float(os.getenv("AI_TIMEOUT_SEC") or 90)
    if provider == "openai":
        return GenerativeClient(
            api_key=os.getenv("OPENAI_API_KEY") or "",
            model=os.getenv("OPENAI_QGEN_MODEL") or "gpt-4o-mini",
            provider="openai",
            timeout=timeout,
        )
    return GenerativeClient(
        api_key=os.getenv("GEMINI_API_KEY") or "",
        model=os.getenv("GEMINI_MODEL") or "gemini-2.0-flash",
        provider="gemini",
        timeout=timeout,
    )


__all__ = [
    "GenerationError",
    "GenerationServerError",
    "GenerationLimitError",
    "GenerationRateLimited",
    "GenerationQuotaExceeded",
    "GenerativeClient",
    "client_from_env",
    "error_for_status",
]
