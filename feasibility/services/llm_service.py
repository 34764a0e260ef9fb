import asyncio
import json
import os
import re
import time
import logging
from typing import Any

from openai import (
    OpenAI,
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AuthenticationError,
    PermissionDeniedError,
    RateLimitError,
)
from dotenv import load_dotenv

from feasibility.errors import (
    ConfigurationError,
    FeasibilityError,
    UpstreamMalformedResponse,
    UpstreamQuotaExhausted,
    UpstreamRateLimited,
    UpstreamServiceError,
)
from feasibility.models.report import LLMCallLog

load_dotenv()
logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})


class LLMService:
    def __init__(self, client: OpenAI | None = None):
        self.model = os.getenv("OPENAI_MODEL", "gpt-4o")
        self.timeout = float(os.getenv("LLM_TIMEOUT_SECONDS", "45"))
        self.max_retries = int(os.getenv("LLM_MAX_RETRIES", "1"))
        if client is None and os.getenv("OPENAI_API_KEY"):
            client = OpenAI(
                api_key=os.getenv("OPENAI_API_KEY"),
                base_url=os.getenv("OPENAI_BASE_URL") or None,
                timeout=self.timeout,
                max_retries=0,
            )
        self.client = client

    async def text_completion(
        self,
        system_prompt: str,
        user_prompt: str,
        step_name: str,
        max_tokens: int = 3000,
        temperature: float = 0.3,
        call_logs: list[LLMCallLog] | None = None,
    ) -> str:
        """Call the chat completions API and return the raw message content.

        Each call is appended to ``call_logs`` when given. The list belongs to
        the caller's run, so concurrent analyses never share a log.
        """
        return await asyncio.to_thread(
            self._text_completion_sync, system_prompt, user_prompt, step_name, max_tokens, temperature, call_logs,
        )

    def _text_completion_sync(
        self,
        system_prompt: str,
        user_prompt: str,
        step_name: str,
        max_tokens: int,
        temperature: float,
        call_logs: list[LLMCallLog] | None,
    ) -> str:
        if self.client is None:
            raise ConfigurationError("OPENAI_API_KEY is not set")

        start = time.time()
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                temperature=temperature,
                max_tokens=max_tokens,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
            )
        except Exception as e:
            duration_ms = (time.time() - start) * 1000
            logger.warning(f"LLM call failed [{step_name}] after {duration_ms:.0f}ms: {e}")
            raise map_openai_error(e) from e

        duration_ms = (time.time() - start) * 1000
        content = response.choices[0].message.content if response.choices else None
        tokens = response.usage.total_tokens if response.usage else None

        logger.info(
            f"LLM text call [{step_name}]: model={self.model}, "
            f"tokens={tokens}, duration={duration_ms:.0f}ms"
        )
        logger.info(f"LLM [{step_name}] response: {(content or '')[:500]}...")

        if call_logs is not None:
            call_logs.append(LLMCallLog(
                step_name=step_name,
                model=self.model,
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                response=content or "",
                tokens_used=tokens,
                duration_ms=duration_ms,
            ))

        if not content or not content.strip():
            raise UpstreamMalformedResponse(f"Empty completion for [{step_name}]")
        return content


def map_openai_error(error: Exception) -> FeasibilityError:
    """Translate an openai SDK exception into the service error taxonomy."""
    if isinstance(error, FeasibilityError):
        return error
    if isinstance(error, RateLimitError):
        if getattr(error, "code", None) == "insufficient_quota":
            return UpstreamQuotaExhausted(str(error))
        return UpstreamRateLimited(str(error))
    if isinstance(error, (AuthenticationError, PermissionDeniedError)):
        return ConfigurationError(str(error))
    if isinstance(error, APIStatusError):
        if error.status_code == 402:
            return UpstreamQuotaExhausted(str(error))
        return UpstreamServiceError(str(error))
    if isinstance(error, (APITimeoutError, APIConnectionError)):
        return UpstreamServiceError(str(error))
    return UpstreamServiceError(f"{type(error).__name__}: {error}")


def _repair(text: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", text.translate(_SMART_QUOTES))


def _decode_first_object(text: str) -> dict | None:
    decoder = json.JSONDecoder()
    for candidate in (text, _repair(text)):
        idx = candidate.find("{")
        while idx != -1:
            try:
                obj, _ = decoder.raw_decode(candidate, idx)
            except json.JSONDecodeError:
                idx = candidate.find("{", idx + 1)
                continue
            if isinstance(obj, dict):
                return obj
            idx = candidate.find("{", idx + 1)
    return None


def extract_json(raw: str) -> dict:
    """Pull the first JSON object out of a model response.

    Fenced ```json blocks are preferred; otherwise the first decodable
    brace-delimited object in the text is used. Trailing commas and smart
    quotes are repaired before giving up.
    """
    if not raw or not raw.strip():
        raise UpstreamMalformedResponse("Empty model response")

    for block in _FENCE_RE.findall(raw):
        obj = _decode_first_object(block)
        if obj is not None:
            return obj

    obj = _decode_first_object(raw)
    if obj is None:
        raise UpstreamMalformedResponse(f"No JSON object in model response: {raw[:200]!r}")
    return obj


async def complete_json(
    llm: LLMService,
    system_prompt: str,
    user_prompt: str,
    step_name: str,
    max_tokens: int = 3000,
    temperature: float = 0.3,
    max_retries: int | None = None,
    call_logs: list[LLMCallLog] | None = None,
) -> dict[str, Any]:
    """Run a completion and parse its JSON payload, retrying retryable failures."""
    retries = getattr(llm, "max_retries", 1) if max_retries is None else max_retries
    last_error: FeasibilityError | None = None
    for attempt in range(retries + 1):
        try:
            raw = await llm.text_completion(
                system_prompt=system_prompt,
                user_prompt=user_prompt,
                step_name=step_name,
                max_tokens=max_tokens,
                temperature=temperature,
                call_logs=call_logs,
            )
            return extract_json(raw)
        except FeasibilityError as e:
            last_error = e
            if not e.retryable:
                raise
            logger.warning(f"LLM attempt {attempt + 1} failed for [{step_name}]: {e}")

    raise last_error
