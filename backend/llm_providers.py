"""
Unified LLM provider for OpenRouter, Groq and Gemini.
Exposes plain chat, single-prompt text and image (vision) completions.
"""
from __future__ import annotations

import base64
import json
import re
from typing import Any, Mapping, Optional

import structlog

logger = structlog.get_logger(__name__)


class LLMProviderError(RuntimeError):
    """The provider call failed (network, auth, rate limit, empty reply...)."""


class ResponseShapeError(LLMProviderError):
    """The provider answered, but not with JSON of the expected shape."""


# ---------------------------------------------------------------------------
# Provider defaults
# ---------------------------------------------------------------------------

DEFAULT_MODELS = {
    "openrouter": "meta-llama/llama-3.3-70b-instruct",
    "groq": "llama-3.3-70b-versatile",
    "gemini": "gemini-1.5-flash",
}

DEFAULT_VISION_MODELS = {
    "openrouter": "meta-llama/llama-3.2-11b-vision-instruct",
    "groq": "meta-llama/llama-4-scout-17b-16e-instruct",
    "gemini": "gemini-1.5-flash",
}

_API_KEY_SETTINGS = {
    "openrouter": "OPENROUTER_API_KEY",
    "groq": "GROQ_API_KEY",
    "gemini": "GEMINI_API_KEY",
}


class LLMClient:
    """
    Thin wrapper around one chat-completion provider.

    The underlying SDK client is created on first use, so an app without an
    API key still starts; calls then fail with LLMProviderError.
    """

    def __init__(
        self,
        provider: str = "openrouter",
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        vision_model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        temperature: float = 0.0,
        top_p: float = 0.7,
        max_tokens: int = 4000,
    ):
        if provider not in DEFAULT_MODELS:
            raise ValueError(f"Unknown provider: {provider}")
        self.provider = provider
        self.api_key = api_key
        self.model = model or DEFAULT_MODELS[provider]
        self.vision_model = vision_model or DEFAULT_VISION_MODELS[provider]
        self.base_url = base_url
        self.timeout = timeout
        self.temperature = temperature
        self.top_p = top_p
        self.max_tokens = max_tokens
        self._client = None

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "LLMClient":
        provider = (config.get("LLM_PROVIDER") or "openrouter").lower()
        return cls(
            provider,
            api_key=config.get(_API_KEY_SETTINGS.get(provider, "")),
            model=config.get("LLM_MODEL"),
            vision_model=config.get("LLM_VISION_MODEL"),
            base_url=config.get("OPENROUTER_BASE_URL") if provider == "openrouter" else None,
            timeout=float(config.get("LLM_TIMEOUT_SECONDS") or 60.0),
        )

    # -----------------------------------------------------------------------
    # SDK clients
    # -----------------------------------------------------------------------

    def _get_client(self):
        if self._client is not None:
            return self._client
        if not self.api_key:
            raise LLMProviderError(
                f"{_API_KEY_SETTINGS[self.provider]} is not set; cannot reach {self.provider}"
            )
        if self.provider == "openrouter":
            from openai import OpenAI

            self._client = OpenAI(
                api_key=self.api_key, base_url=self.base_url, timeout=self.timeout
            )
        elif self.provider == "groq":
            from groq import Groq

            self._client = Groq(api_key=self.api_key, timeout=self.timeout)
        else:
            import google.generativeai as genai

            genai.configure(api_key=self.api_key)
            self._client = genai
        return self._client

    # -----------------------------------------------------------------------
    # Completions
    # -----------------------------------------------------------------------

    def chat(
        self,
        messages: list[dict],
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Send OpenAI-style messages ({"role", "content"}) and return the reply text.
        """
        client = self._get_client()
        model_name = model or self.model
        temperature = self.temperature if temperature is None else temperature
        max_tokens = max_tokens or self.max_tokens

        try:
            if self.provider == "gemini":
                text = self._gemini_chat(client, messages, model_name, temperature, max_tokens)
            else:
                resp = client.chat.completions.create(
                    model=model_name,
                    messages=messages,
                    temperature=temperature,
                    top_p=self.top_p,
                    max_tokens=max_tokens,
                )
                text = (resp.choices[0].message.content or "").strip()
        except LLMProviderError:
            raise
        except Exception as e:
            status = getattr(e, "status_code", None)
            logger.warning("llm_call_failed", provider=self.provider, model=model_name, status=status, error=str(e))
            if status == 429:
                raise LLMProviderError("AI rate limit reached. Please try again in a few minutes.") from e
            if status == 401:
                raise LLMProviderError(f"Invalid {self.provider} API key") from e
            raise LLMProviderError(f"{self.provider} API error: {e}") from e

        if not text:
            raise LLMProviderError(f"{self.provider} returned an empty response")
        return text

    def complete_text(
        self,
        prompt: str,
        *,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return self.chat(messages, temperature=temperature, max_tokens=max_tokens)

    def complete_vision(
        self,
        image_bytes: bytes,
        prompt: str,
        *,
        mime_type: str = "image/jpeg",
        system: Optional[str] = None,
    ) -> str:
        """Ask the vision model about one image, sent base64-encoded."""
        image_b64 = base64.b64encode(image_bytes).decode("ascii")
        if self.provider == "gemini":
            content: Any = [prompt, {"mime_type": mime_type, "data": image_bytes}]
        else:
            content = [
                {"type": "text", "text": prompt},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{mime_type};base64,{image_b64}"},
                },
            ]
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": content})
        return self.chat(messages, model=self.vision_model)

    def _gemini_chat(self, genai, messages, model_name, temperature, max_tokens) -> str:
        system = "\n\n".join(m["content"] for m in messages if m["role"] == "system")
        contents = []
        for m in messages:
            if m["role"] == "system":
                continue
            parts = m["content"] if isinstance(m["content"], list) else [m["content"]]
            contents.append(
                {"role": "model" if m["role"] == "assistant" else "user", "parts": parts}
            )
        model = genai.GenerativeModel(model_name, system_instruction=system or None)
        response = model.generate_content(
            contents,
            generation_config={
                "temperature": temperature,
                "top_p": self.top_p,
                "max_output_tokens": max_tokens,
            },
            request_options={"timeout": self.timeout},
        )
        if response and response.text:
            return response.text.strip()
        return ""


# ---------------------------------------------------------------------------
# JSON extraction
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)```")


def strip_code_fences(text: str) -> str:
    """Return the body of the first markdown code fence, or the text itself."""
    if not text:
        return ""
    m = _FENCE_RE.search(text)
    if m:
        return m.group(1).strip()
    return text.strip()


def extract_json(text: str) -> Optional[Any]:
    """
    Extract a JSON object or array from model output. Handles markdown fences
    and prose around the payload. Returns None when nothing parses.
    """
    body = strip_code_fences(text)
    if not body:
        return None
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        pass

    for pattern in (r"\{[\s\S]*\}", r"\[[\s\S]*\]"):
        match = re.search(pattern, body)
        if match:
            try:
                return json.loads(match.group(0))
            except json.JSONDecodeError:
                continue
    return None
