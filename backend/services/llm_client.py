"""LLM client for the OpenAI-compatible inference backends."""
import time
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from config import ASSISTANT_API_KEY
from services.errors import DecodeError, UpstreamHTTPError, UpstreamUnavailableError
from services.privacy_resolver import Channel

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


def _server_error_message(response: httpx.Response) -> Optional[str]:
    """Pull an error string out of a non-200 body: {"error": "..."} or {"error": {"message": "..."}}."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, str):
        return error
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    return None


class LLMClient:
    """Client for chat completions over a privacy-selected channel."""

    def __init__(self, api_key: Optional[str] = None):
        """
        Initialize LLM client.

        Args:
            api_key: Bearer token (defaults to ASSISTANT_API_KEY from environment)
        """
        self.api_key = api_key or ASSISTANT_API_KEY
        if not self.api_key:
            logger.warning("ASSISTANT_API_KEY not set; inference requests are unauthenticated")
        logger.info("LLMClient initialized")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def chat(
        self,
        channel: Channel,
        url: str,
        model: str,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: float,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """
        Request a chat completion.

        Args:
            channel: Channel whose client carries the request
            url: Chat completions URL
            model: Model name
            messages: System, history and user messages
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            timeout: Request timeout (defaults to the channel's)

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            UpstreamHTTPError: Non-200 status, with the server's error message if it sent one
            DecodeError: Body is not an OpenAI-style completion envelope
            UpstreamUnavailableError: Timeout or connection failure
        """
        start_time = time.time()
        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "stream": False,
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

        try:
            logger.debug(f"Requesting completion: model={model}, channel={channel.name}")
            response = await channel.client.post(
                url,
                headers=self._headers(),
                json=payload,
                timeout=timeout if timeout is not None else channel.timeout,
            )
        except httpx.TimeoutException as e:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Timeout error: model={model}, latency={latency_ms}ms")
            raise UpstreamUnavailableError(
                "Request timed out. Please try again.",
                {"model": model, "latency_ms": latency_ms, "reason": "timeout", "original_error": str(e)},
            )
        except httpx.RequestError as e:
            latency_ms = int((time.time() - start_time) * 1000)
            logger.error(f"Network error: model={model}, latency={latency_ms}ms, error={type(e).__name__}")
            raise UpstreamUnavailableError(
                "Network error. Please try again.",
                {"model": model, "latency_ms": latency_ms, "reason": "network", "original_error": str(e)},
            )

        latency_ms = int((time.time() - start_time) * 1000)

        if response.status_code != 200:
            server_message = _server_error_message(response)
            logger.error(
                f"Upstream error: model={model}, status={response.status_code}, latency={latency_ms}ms",
                extra={"error_code": UpstreamHTTPError.code, "status_code": response.status_code},
            )
            raise UpstreamHTTPError(response.status_code, server_message)

        try:
            envelope = response.json()
            choices = envelope["choices"]
            if not isinstance(choices, list):
                raise TypeError("choices is not a list")
            text = ""
            if choices:
                text = (choices[0].get("message") or {}).get("content") or ""
            if not isinstance(text, str):
                raise TypeError("message content is not a string")
            usage = envelope.get("usage") or {}
            tokens_input = int(usage.get("prompt_tokens") or 0)
            tokens_output = int(usage.get("completion_tokens") or 0)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Decode error: model={model}, error={type(e).__name__}")
            raise DecodeError(details={"model": model, "original_error": str(e)})

        logger.info(
            f"Generated response: model={model}, channel={channel.name}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms"
        )

        return LLMResponse(
            text=text,
            tokens_input=tokens_input,
            tokens_output=tokens_output,
            latency_ms=latency_ms,
            model_used=model,
        )

    @staticmethod
    def build_messages(
        system_prompt: str,
        history: List[Dict[str, str]],
        user_content: str,
    ) -> List[Dict[str, str]]:
        """
        Build the message list: system prompt, prior turns, then the new user message.

        Args:
            system_prompt: Instruction for the model
            history: Already truncated and sanitized prior turns
            user_content: New user message content

        Returns:
            Messages in chat-completions format
        """
        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(history)
        messages.append({"role": "user", "content": user_content})
        return messages


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the first JSON object embedded in `text`, or None if there is none."""
    decoder = json.JSONDecoder()
    start = text.find("{")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    return None
