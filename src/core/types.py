"""
Core Type Definitions for StudyForge
Contains OutputKind, BaseAgent and the trace hook shared by all agents.
This module should have minimal dependencies to serve as a foundation.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Any, List, Optional, Callable, Union
import contextvars
import re
from openai import APIError, RateLimitError, APIConnectionError, AuthenticationError, BadRequestError


class OutputKind(Enum):
    """Kind of study material requested from the model.

    Supplied by the caller, never inferred from the model output.
    """
    TOPICS = "topics"
    NOTES = "notes"
    QUIZ = "quiz"
    FLASHCARDS = "flashcards"
    CODING_EXERCISES = "coding_exercises"

    @property
    def is_structured(self) -> bool:
        """True when the model is expected to answer with a JSON array."""
        return self is not OutputKind.NOTES

    @classmethod
    def parse(cls, value: Union["OutputKind", str]) -> "OutputKind":
        """Accept an OutputKind or its value ("quiz", "coding-exercises", ...)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_")
            for kind in cls:
                if kind.value == normalized:
                    return kind
        valid = ", ".join(kind.value for kind in cls)
        raise ValueError(f"Unknown output kind '{value}'. Valid options: {valid}")


TraceHook = Callable[[Dict[str, Any]], None]

_TRACE_HOOK: contextvars.ContextVar[Optional[TraceHook]] = contextvars.ContextVar(
    "studyforge_trace_hook", default=None
)
_TRACE_MAX_CHARS: contextvars.ContextVar[int] = contextvars.ContextVar(
    "studyforge_trace_max_chars", default=900
)


def set_trace_hook(hook: Optional[TraceHook], *, max_chars: int = 900) -> None:
    """Install a per-execution trace hook for LLM request/response telemetry."""
    _TRACE_HOOK.set(hook)
    try:
        _TRACE_MAX_CHARS.set(int(max_chars))
    except (TypeError, ValueError):
        _TRACE_MAX_CHARS.set(900)


def get_trace_hook() -> Optional[TraceHook]:
    return _TRACE_HOOK.get()


class BaseAgent:
    """Base class for all agents with common functionality.

    This class provides core functionality for:
    - API calls with retry logic
    - Logging support
    - Trace events for request/response telemetry

    Provider errors are logged and re-raised so the request handler can
    report them; they are never turned into empty content here.
    """

    def __init__(self, client, model: str = "gpt-4.1-mini", retry_handler=None, logger=None):
        """Initialize base agent.

        Args:
            client: OpenAI (or OpenAI-compatible) client instance
            model: Model identifier to use for generation
            retry_handler: Optional RetryHandler; a default one is created if omitted
            logger: Optional VerboseLogger; the global logger is used if omitted
        """
        self.client = client
        self.model = model

        if logger is None:
            from src.verbose_logger import get_logger
            logger = get_logger()
        self.logger = logger

        if retry_handler is None:
            from services.retry_service import RetryHandler
            retry_handler = RetryHandler()
        self.retry_handler = retry_handler
        if self.retry_handler.logger is None:
            self.retry_handler.logger = self.logger

    # Models that don't support temperature parameter
    NO_TEMPERATURE_MODELS = ['gpt-5', 'o1', 'o3', 'o4']

    _SECRET_PATTERNS = [
        # OpenAI-style keys (best-effort)
        re.compile(r"\bsk-[A-Za-z0-9]{10,}\b"),
        re.compile(r"\bsk-proj-[A-Za-z0-9]{10,}\b"),
    ]

    def _redact(self, text: str) -> str:
        if not isinstance(text, str) or not text:
            return ""
        redacted = text
        for pat in self._SECRET_PATTERNS:
            redacted = pat.sub("[REDACTED]", redacted)
        return redacted

    def _truncate(self, text: str, max_chars: int) -> str:
        return text[:max_chars] + ("… [truncated]" if len(text) > max_chars else "")

    def _summarize_messages(
        self, messages: Any, *, max_chars: int
    ) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        if not isinstance(messages, list):
            return out
        for msg in messages:
            if not isinstance(msg, dict):
                continue
            content = msg.get("content")
            summary: Dict[str, Any] = {"role": msg.get("role")}
            if isinstance(content, str):
                summary["content"] = self._truncate(self._redact(content), max_chars)
                summary["content_len"] = len(content)
            else:
                summary["content"] = f"[{type(content).__name__}]"
            out.append(summary)
        return out

    def _emit_trace(self, payload: Dict[str, Any]) -> None:
        hook = get_trace_hook()
        if hook is None:
            return
        try:
            hook(payload)
        except Exception as e:
            # A broken trace hook must not fail the generation itself
            self.logger.log_debug(f"Trace hook failed: {e}")

    def _trace_error(self, error: Exception) -> None:
        self._emit_trace(
            {
                "type": "llm.error",
                "model": self.model,
                "agent": self.__class__.__name__,
                "error_type": type(error).__name__,
                "message": str(error),
            }
        )

    def supports_temperature(self) -> bool:
        model_lower = self.model.lower()
        return not any(
            model_lower.startswith(prefix) for prefix in self.NO_TEMPERATURE_MODELS
        )

    def _call_model(self, messages: List[Dict[str, str]], temperature: float = 0.7) -> str:
        """Call the model with standard parameters and retry logic.

        Args:
            messages: List of message dictionaries for the API
            temperature: Temperature parameter for generation

        Returns:
            The text content of the first choice ("" when the reply is empty)

        Raises:
            openai.APIError (or a subclass) / RetryError when the provider call fails
        """
        params: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
        }

        # Some models (gpt-5, o1, o3, o4 series) reject the temperature parameter
        supports_temperature = self.supports_temperature()
        if supports_temperature:
            params["temperature"] = temperature

        max_chars = _TRACE_MAX_CHARS.get()
        self._emit_trace(
            {
                "type": "llm.request",
                "model": self.model,
                "agent": self.__class__.__name__,
                "endpoint": "chat.completions",
                "supports_temperature": supports_temperature,
                "temperature": params.get("temperature"),
                "messages": self._summarize_messages(messages, max_chars=max_chars),
            }
        )

        # Truncate messages to avoid overwhelming logs
        log_params = dict(params)
        log_params["messages"] = [
            {**msg, "content": self._truncate(msg["content"], 500)}
            if isinstance(msg.get("content"), str) else msg
            for msg in messages
        ]
        self.logger.log_api_request(model=self.model, endpoint="chat.completions", params=log_params)

        def make_api_call():
            response = self.client.chat.completions.create(**params)
            self.logger.log_api_response(model=self.model, response=response)
            return response

        try:
            response = self.retry_handler.retry_with_backoff(
                make_api_call,
                context=f"{self.model} API call"
            )

        except RateLimitError as e:
            self.logger.log_error(error=e, model=self.model, context="Rate limit exceeded")
            self._trace_error(e)
            raise

        except AuthenticationError as e:
            self.logger.log_error(error=e, model=self.model, context="Authentication failed")
            self._trace_error(e)
            raise

        except APIConnectionError as e:
            self.logger.log_error(error=e, model=self.model, context="Connection error")
            self._trace_error(e)
            raise

        except BadRequestError as e:
            self.logger.log_error(error=e, model=self.model, context="Bad request")
            self._trace_error(e)
            raise

        except APIError as e:
            self.logger.log_error(error=e, model=self.model, context="API error")
            self._trace_error(e)
            raise

        except Exception as e:
            self.logger.log_error(error=e, model=self.model, context="Unexpected error in API call")
            self._trace_error(e)
            raise

        content = ""
        finish_reason = None
        if getattr(response, "choices", None):
            choice0 = response.choices[0]
            finish_reason = getattr(choice0, "finish_reason", None)
            msg0 = getattr(choice0, "message", None)
            content = getattr(msg0, "content", "") if msg0 else ""
        if not isinstance(content, str):
            content = ""

        self._emit_trace(
            {
                "type": "llm.response",
                "model": self.model,
                "agent": self.__class__.__name__,
                "finish_reason": finish_reason,
                "content": self._truncate(self._redact(content), max_chars),
                "content_len": len(content),
            }
        )
        return content
