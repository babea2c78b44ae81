"""Anthropic LLM Provider implementation.

This module provides the Anthropic Messages API implementation of the
LlmProvider interface.

Features:
- Streaming and non-streaming message requests
- Extended thinking with a fixed token budget
- Tool use with thinking signatures echoed back on follow-up requests
- Configurable via LlmConfig or Settings
- OpenTelemetry tracing and metrics
"""

import json
import logging
import time
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any, Optional

import httpx
from opentelemetry import trace

from application.agents.conversation import Conversation
from application.agents.llm_provider import (
    ContentSegment,
    ContentSegmentType,
    LlmConfig,
    LlmProvider,
    LlmProviderError,
    LlmProviderType,
    LlmResponse,
    LlmStreamChunk,
    LlmStreamChunkType,
    TextSegment,
    ThinkingSegment,
    ToolResultSegment,
    ToolUseSegment,
)
from domain.models.tool import ToolDefinition
from observability.metrics import llm_errors, llm_request_count, llm_request_time, llm_token_count

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_API_VERSION = "2023-06-01"

_SEGMENT_TYPES = {
    "thinking": ContentSegmentType.THINKING,
    "text": ContentSegmentType.TEXT,
    "tool_use": ContentSegmentType.TOOL_USE,
}


class AnthropicLlmProvider(LlmProvider):
    """Anthropic implementation of the LLM provider interface.

    Configuration:
        - base_url: API endpoint (default "https://api.anthropic.com")
        - model: Model name (e.g., "claude-sonnet-4-20250514")
        - api_key: API key sent as x-api-key
        - thinking_budget_tokens: Extended thinking budget (0 disables thinking)
        - extra["api_version"]: anthropic-version header value

    Usage:
        config = LlmConfig(model="claude-sonnet-4-20250514", api_key="sk-ant-xxx")  # pragma: allowlist secret
        provider = AnthropicLlmProvider(config)
        response = await provider.chat(Conversation.start("Hello!"), system="Be brief.")
    """

    PROVIDER_NAME = "anthropic"

    def __init__(self, config: LlmConfig, client: Optional[httpx.AsyncClient] = None) -> None:
        """Initialize the Anthropic provider.

        Args:
            config: LLM configuration
            client: Optional preconfigured HTTP client
        """
        super().__init__(config)
        self._base_url = (config.base_url or DEFAULT_BASE_URL).rstrip("/")
        self._api_version = config.extra.get("api_version", DEFAULT_API_VERSION)
        self._client: Optional[httpx.AsyncClient] = client

    @property
    def provider_type(self) -> LlmProviderType:
        """Get the provider type identifier."""
        return LlmProviderType.ANTHROPIC

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._config.timeout,
            )
        return self._client

    def _get_headers(self, stream: bool) -> dict[str, str]:
        """Build request headers.

        Raises:
            LlmProviderError: If no API key is configured
        """
        if not self._config.api_key:
            raise LlmProviderError(
                message="Anthropic API key is not configured",
                error_code="anthropic_auth_config_error",
                provider=self.PROVIDER_NAME,
                is_retryable=False,
            )
        headers = {
            "x-api-key": self._config.api_key,
            "anthropic-version": self._api_version,
            "Content-Type": "application/json",
        }
        if stream:
            headers["Accept"] = "text/event-stream"
        return headers

    # =========================================================================
    # Request conversion
    # =========================================================================

    def _convert_segment(self, segment: Any) -> dict[str, Any]:
        if isinstance(segment, ThinkingSegment):
            if segment.is_redacted:
                return {"type": "redacted_thinking", "data": segment.redacted_data}
            return {"type": "thinking", "thinking": segment.thinking, "signature": segment.signature}
        if isinstance(segment, TextSegment):
            return {"type": "text", "text": segment.text}
        if isinstance(segment, ToolUseSegment):
            return {"type": "tool_use", "id": segment.id, "name": segment.name, "input": segment.input}
        if isinstance(segment, ToolResultSegment):
            block: dict[str, Any] = {"type": "tool_result", "tool_use_id": segment.tool_use_id, "content": segment.content}
            if segment.is_error:
                block["is_error"] = True
            return block
        raise TypeError(f"Unsupported message content: {type(segment).__name__}")

    def _convert_messages(self, messages: Conversation) -> list[dict[str, Any]]:
        """Convert the conversation to Messages API format."""
        converted = []
        for msg in messages:
            content: Any
            if isinstance(msg.content, str):
                content = msg.content
            else:
                content = [self._convert_segment(segment) for segment in msg.content]
            converted.append({"role": msg.role.value, "content": content})
        return converted

    def _build_request_body(
        self,
        conversation: Conversation,
        system: str,
        tools: Optional[list[ToolDefinition]],
        stream: bool,
    ) -> dict[str, Any]:
        """Build the request body for a messages request."""
        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self._config.max_tokens,
            "messages": self._convert_messages(conversation),
            "stream": stream,
        }
        if system:
            body["system"] = system
        if self._config.thinking_budget_tokens > 0:
            body["thinking"] = {"type": "enabled", "budget_tokens": self._config.thinking_budget_tokens}
        if tools:
            body["tools"] = [tool.to_anthropic_format() for tool in tools]
        return body

    # =========================================================================
    # Response parsing
    # =========================================================================

    def _parse_block(self, block: dict[str, Any]) -> Optional[ContentSegment]:
        block_type = block.get("type")
        if block_type == "thinking":
            return ThinkingSegment(thinking=block.get("thinking", ""), signature=block.get("signature", ""))
        if block_type == "redacted_thinking":
            return ThinkingSegment(thinking="", redacted_data=block.get("data", ""))
        if block_type == "text":
            return TextSegment(text=block.get("text", ""))
        if block_type == "tool_use":
            tool_input = block.get("input")
            return ToolUseSegment(id=block.get("id", ""), name=block.get("name", ""), input=tool_input if isinstance(tool_input, dict) else {})
        logger.warning(f"Ignoring unknown content block type: {block_type}")
        return None

    def _parse_response(self, data: dict[str, Any]) -> LlmResponse:
        segments = [s for s in (self._parse_block(block) for block in data.get("content", [])) if s is not None]
        return LlmResponse(
            content=segments,
            stop_reason=data.get("stop_reason") or "end_turn",
            usage=data.get("usage"),
        )

    def _record_usage(self, usage: Optional[dict[str, Any]]) -> None:
        if usage and usage.get("output_tokens") is not None:
            llm_token_count.record(usage["output_tokens"], {"model": self.model, "provider": self.PROVIDER_NAME})

    async def chat(
        self,
        conversation: Conversation,
        system: str,
        tools: Optional[list[ToolDefinition]] = None,
    ) -> LlmResponse:
        """Send a messages request and wait for the complete response.

        Raises:
            LlmProviderError: If API call fails
        """
        model = self.model
        start_time = time.time()
        llm_request_count.add(1, {"model": model, "has_tools": str(bool(tools)), "provider": self.PROVIDER_NAME, "stream": "false"})

        with tracer.start_as_current_span("anthropic.chat") as span:
            span.set_attribute("llm.model", model)
            span.set_attribute("llm.message_count", len(conversation))
            span.set_attribute("llm.provider", self.PROVIDER_NAME)

            try:
                client = await self._get_client()
                headers = self._get_headers(stream=False)
                body = self._build_request_body(conversation, system, tools, stream=False)

                logger.debug(f"Anthropic request: model={model}, messages={len(conversation)}, tools={len(tools) if tools else 0}")

                response = await client.post(f"{self._base_url}/v1/messages", json=body, headers=headers)
                if response.status_code != 200:
                    logger.error(f"Anthropic HTTP error: {response.status_code} - {response.text}")
                    raise self._handle_http_error_from_status(response.status_code, response.text, model)

                result = self._parse_response(response.json())

                duration_ms = (time.time() - start_time) * 1000
                llm_request_time.record(duration_ms, {"model": model, "provider": self.PROVIDER_NAME})
                self._record_usage(result.usage)
                span.set_attribute("llm.duration_ms", duration_ms)
                span.set_attribute("llm.stop_reason", result.stop_reason)
                span.set_attribute("llm.tool_call_count", len(result.tool_calls))
                return result

            except LlmProviderError:
                span.set_attribute("error", True)
                llm_errors.add(1, {"model": model, "provider": self.PROVIDER_NAME})
                raise
            except httpx.RequestError as e:
                span.set_attribute("error", True)
                llm_errors.add(1, {"model": model, "provider": self.PROVIDER_NAME})
                raise self._handle_request_error(e)

    async def chat_stream(
        self,
        conversation: Conversation,
        system: str,
        tools: Optional[list[ToolDefinition]] = None,
    ) -> AsyncIterator[LlmStreamChunk]:
        """Send a streaming messages request.

        Yields:
            Block and delta chunks, then one DONE chunk carrying the full response

        Raises:
            LlmProviderError: If API call fails
        """
        model = self.model
        start_time = time.time()
        llm_request_count.add(1, {"model": model, "has_tools": str(bool(tools)), "provider": self.PROVIDER_NAME, "stream": "true"})

        with tracer.start_as_current_span("anthropic.chat_stream") as span:
            span.set_attribute("llm.model", model)
            span.set_attribute("llm.message_count", len(conversation))
            span.set_attribute("llm.provider", self.PROVIDER_NAME)

            try:
                client = await self._get_client()
                headers = self._get_headers(stream=True)
                body = self._build_request_body(conversation, system, tools, stream=True)

                logger.info(f"🔧 Anthropic stream request: model={model}, messages={len(conversation)}, tools={len(tools) if tools else 0}")

                async with client.stream("POST", f"{self._base_url}/v1/messages", json=body, headers=headers) as response:
                    if response.status_code != 200:
                        error_content = await response.aread()
                        error_text = error_content.decode("utf-8", errors="replace")
                        logger.error(f"Anthropic HTTP error: {response.status_code} - {error_text}")
                        raise self._handle_http_error_from_status(response.status_code, error_text, model)

                    assembler = _StreamAssembler()
                    async for line in response.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        data_str = line[5:].strip()
                        if not data_str:
                            continue
                        try:
                            event = json.loads(data_str)
                        except json.JSONDecodeError:
                            logger.warning(f"Failed to parse Anthropic event: {data_str[:200]}")
                            continue

                        for chunk in assembler.feed(event, self._parse_block):
                            if chunk.done:
                                duration_ms = (time.time() - start_time) * 1000
                                llm_request_time.record(duration_ms, {"model": model, "provider": self.PROVIDER_NAME})
                                span.set_attribute("llm.duration_ms", duration_ms)
                                if chunk.response is not None:
                                    self._record_usage(chunk.response.usage)
                                    span.set_attribute("llm.stop_reason", chunk.response.stop_reason)
                                    span.set_attribute("llm.tool_call_count", len(chunk.response.tool_calls))
                                    logger.info(f"🏁 Anthropic stream completed: stop_reason={chunk.response.stop_reason}")
                            yield chunk
                        if assembler.finished:
                            break

                    if not assembler.finished:
                        raise LlmProviderError(
                            message="Anthropic stream ended before message_stop",
                            error_code="anthropic_stream_incomplete",
                            provider=self.PROVIDER_NAME,
                            is_retryable=True,
                        )

            except LlmProviderError:
                span.set_attribute("error", True)
                llm_errors.add(1, {"model": model, "provider": self.PROVIDER_NAME})
                raise
            except httpx.RequestError as e:
                span.set_attribute("error", True)
                llm_errors.add(1, {"model": model, "provider": self.PROVIDER_NAME})
                raise self._handle_request_error(e)

    # =========================================================================
    # Error handling
    # =========================================================================

    def _handle_request_error(self, e: httpx.RequestError) -> LlmProviderError:
        if isinstance(e, httpx.ConnectError):
            logger.error(f"Cannot connect to Anthropic at {self._base_url}: {e}")
            return LlmProviderError(
                message="Cannot connect to Anthropic service",
                error_code="anthropic_unavailable",
                provider=self.PROVIDER_NAME,
                is_retryable=True,
                details={"url": self._base_url},
            )
        if isinstance(e, httpx.TimeoutException):
            logger.error(f"Anthropic request timed out: {e}")
            return LlmProviderError(
                message="Anthropic request timed out",
                error_code="anthropic_timeout",
                provider=self.PROVIDER_NAME,
                is_retryable=True,
            )
        logger.error(f"Anthropic request error: {e}")
        return LlmProviderError(
            message="Failed to communicate with Anthropic",
            error_code="anthropic_request_error",
            provider=self.PROVIDER_NAME,
            is_retryable=True,
        )

    def _handle_http_error_from_status(self, status_code: int, error_text: str, model: str) -> LlmProviderError:
        """Handle HTTP errors by status code.

        Args:
            status_code: HTTP status code
            error_text: Error response text
            model: Model name for error details

        Returns:
            Appropriate LlmProviderError
        """
        try:
            error_json = json.loads(error_text)
            error_detail = error_json.get("error", {}).get("message", error_text[:200])
        except (json.JSONDecodeError, AttributeError):
            error_detail = error_text[:200]

        if status_code == 401:
            return LlmProviderError(
                message="Anthropic authentication failed. Check your API key.",
                error_code="anthropic_auth_error",
                provider=self.PROVIDER_NAME,
                is_retryable=False,
            )
        elif status_code == 403:
            return LlmProviderError(
                message="Access denied to Anthropic API. Check your permissions.",
                error_code="anthropic_forbidden",
                provider=self.PROVIDER_NAME,
                is_retryable=False,
            )
        elif status_code == 404:
            return LlmProviderError(
                message=f"Model '{model}' not found or endpoint not available",
                error_code="anthropic_model_not_found",
                provider=self.PROVIDER_NAME,
                is_retryable=False,
                details={"model": model},
            )
        elif status_code == 429:
            return LlmProviderError(
                message="Anthropic rate limit exceeded. Please try again later.",
                error_code="anthropic_rate_limit",
                provider=self.PROVIDER_NAME,
                is_retryable=True,
            )
        elif status_code >= 500:
            return LlmProviderError(
                message=f"Anthropic server error: {error_detail}",
                error_code="anthropic_server_error",
                provider=self.PROVIDER_NAME,
                is_retryable=True,
                details={"status_code": status_code},
            )
        else:
            return LlmProviderError(
                message=f"Anthropic API error: {error_detail}",
                error_code="anthropic_api_error",
                provider=self.PROVIDER_NAME,
                is_retryable=False,
                details={"status_code": status_code},
            )

    async def health_check(self) -> bool:
        """Check if the Anthropic API is reachable with the configured key."""
        try:
            client = await self._get_client()
            response = await client.get(f"{self._base_url}/v1/models", headers=self._get_headers(stream=False))
            response.raise_for_status()
            logger.debug("Anthropic health check passed")
            return True

        except Exception as e:
            logger.error(f"Anthropic health check failed: {e}")
            return False

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def configure(builder: "ApplicationBuilderBase") -> "AnthropicLlmProvider":
        """Configure AnthropicLlmProvider in the service collection.

        Args:
            builder: The application builder

        Returns:
            Configured provider
        """
        from application.settings import Settings, app_settings

        settings: Optional[Settings] = None
        for desc in builder.services:
            if desc.service_type is Settings and desc.singleton:
                settings = desc.singleton
                break

        if settings is None:
            logger.info("Settings not found in DI services, using app_settings singleton")
            settings = app_settings

        if not settings.anthropic_api_key:
            logger.warning("Anthropic API key not configured; agent steps will fail until DEMO_HOST_ANTHROPIC_API_KEY is set")

        config = LlmConfig(
            model=settings.anthropic_model,
            max_tokens=settings.anthropic_max_tokens,
            thinking_budget_tokens=settings.anthropic_thinking_budget_tokens,
            timeout=settings.anthropic_timeout,
            base_url=settings.anthropic_base_url,
            api_key=settings.anthropic_api_key,
            extra={"api_version": settings.anthropic_api_version},
        )

        provider = AnthropicLlmProvider(config)
        builder.services.add_singleton(LlmProvider, singleton=provider)

        logger.info(f"✅ Configured AnthropicLlmProvider: model={settings.anthropic_model}")
        return provider


class _StreamAssembler:
    """Rebuilds a complete response from Messages API stream events."""

    def __init__(self) -> None:
        self._blocks: dict[int, dict[str, Any]] = {}
        self._stop_reason = "end_turn"
        self._usage: dict[str, Any] = {}
        self.finished = False

    def feed(self, event: dict[str, Any], parse_block) -> list[LlmStreamChunk]:
        """Apply one stream event and return the chunks it produces."""
        event_type = event.get("type")

        if event_type == "message_start":
            self._usage.update(event.get("message", {}).get("usage") or {})
            return []

        if event_type == "content_block_start":
            index = event.get("index", len(self._blocks))
            block = dict(event.get("content_block") or {})
            block["_partial_json"] = ""
            self._blocks[index] = block
            return [LlmStreamChunk(type=LlmStreamChunkType.BLOCK_START, segment_type=_SEGMENT_TYPES.get(block.get("type", "")))]

        if event_type == "content_block_delta":
            block = self._blocks.get(event.get("index", -1))
            delta = event.get("delta") or {}
            if block is None:
                logger.warning(f"Delta for unknown content block: {event.get('index')}")
                return []
            delta_type = delta.get("type")
            if delta_type == "thinking_delta":
                text = delta.get("thinking", "")
                block["thinking"] = block.get("thinking", "") + text
                return [LlmStreamChunk(type=LlmStreamChunkType.THINKING_DELTA, segment_type=ContentSegmentType.THINKING, content=text)]
            if delta_type == "text_delta":
                text = delta.get("text", "")
                block["text"] = block.get("text", "") + text
                return [LlmStreamChunk(type=LlmStreamChunkType.TEXT_DELTA, segment_type=ContentSegmentType.TEXT, content=text)]
            if delta_type == "input_json_delta":
                block["_partial_json"] += delta.get("partial_json", "")
            elif delta_type == "signature_delta":
                block["signature"] = block.get("signature", "") + delta.get("signature", "")
            return []

        if event_type == "content_block_stop":
            block = self._blocks.get(event.get("index", -1))
            if block is None:
                return []
            if block.get("type") == "tool_use":
                partial = block.pop("_partial_json", "")
                if partial:
                    try:
                        block["input"] = json.loads(partial)
                    except json.JSONDecodeError:
                        logger.warning(f"Malformed tool input for {block.get('name')}: {partial[:200]}")
                        block["input"] = {}
            return [LlmStreamChunk(type=LlmStreamChunkType.BLOCK_STOP, segment_type=_SEGMENT_TYPES.get(block.get("type", "")))]

        if event_type == "message_delta":
            delta = event.get("delta") or {}
            if delta.get("stop_reason"):
                self._stop_reason = delta["stop_reason"]
            self._usage.update(event.get("usage") or {})
            return []

        if event_type == "message_stop":
            self.finished = True
            segments = [s for s in (parse_block(self._blocks[i]) for i in sorted(self._blocks)) if s is not None]
            response = LlmResponse(content=segments, stop_reason=self._stop_reason, usage=self._usage or None)
            return [LlmStreamChunk(type=LlmStreamChunkType.DONE, response=response)]

        if event_type == "error":
            error = event.get("error") or {}
            error_type = error.get("type", "api_error")
            raise LlmProviderError(
                message=f"Anthropic stream error: {error.get('message', error_type)}",
                error_code=f"anthropic_{error_type}",
                provider=AnthropicLlmProvider.PROVIDER_NAME,
                is_retryable=error_type in ("overloaded_error", "api_error", "rate_limit_error"),
            )

        # ping and unknown events
        return []
