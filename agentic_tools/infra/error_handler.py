"""Error types for agentic tool execution and LLM provider failures."""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories of errors for better handling."""
    CONFIGURATION = "configuration"  # Tool missing/disabled/misconfigured
    GENERATION = "generation"  # LLM output unusable
    EXECUTION = "execution"  # Downstream action failed
    SAFETY_LIMIT = "safety_limit"  # Cost/time/call-count ceiling hit
    NETWORK = "network"  # Connection issues, timeouts
    API_ERROR = "api_error"  # Provider returned error response
    AUTH_ERROR = "auth_error"  # Authentication/authorization failures
    RATE_LIMIT = "rate_limit"  # Rate limit exceeded
    UNKNOWN = "unknown"


class ErrorCodes:
    """Error codes surfaced to callers in the invocation envelope."""
    AGENTIC_TOOL_NOT_FOUND = "AGENTIC_TOOL_NOT_FOUND"
    AGENTIC_TOOL_DISABLED = "AGENTIC_TOOL_DISABLED"
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_TOOL_CONFIG = "INVALID_TOOL_CONFIG"
    INVALID_EXECUTION_MODE = "INVALID_EXECUTION_MODE"
    NO_TARGET_ACTIONS = "NO_TARGET_ACTIONS"
    NO_AVAILABLE_TOOLS = "NO_AVAILABLE_TOOLS"
    ACTION_NOT_FOUND = "ACTION_NOT_FOUND"
    TOOL_NOT_FOUND = "TOOL_NOT_FOUND"
    INVALID_LLM_OUTPUT = "INVALID_LLM_OUTPUT"
    INVALID_GENERATED_PARAMETERS = "INVALID_GENERATED_PARAMETERS"
    ACTION_EXECUTION_FAILED = "ACTION_EXECUTION_FAILED"
    MAX_TOOL_CALLS_EXCEEDED = "MAX_TOOL_CALLS_EXCEEDED"
    TIMEOUT = "TIMEOUT"
    MAX_COST_EXCEEDED = "MAX_COST_EXCEEDED"
    LLM_PROVIDER_ERROR = "LLM_PROVIDER_ERROR"
    INVALID_LLM_CONFIG = "INVALID_LLM_CONFIG"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


SAFETY_LIMIT_CODES = (
    ErrorCodes.MAX_TOOL_CALLS_EXCEEDED,
    ErrorCodes.TIMEOUT,
    ErrorCodes.MAX_COST_EXCEEDED,
)


class AgenticToolError(Exception):
    """Base exception carrying a caller-facing error code."""
    category = ErrorCategory.UNKNOWN

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)

    def to_error_detail(self) -> Dict[str, Any]:
        """Normalize into the {code, message, details} shape returned to callers."""
        error = {"code": self.code, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return error


class InvocationError(AgenticToolError):
    """Tool could not be resolved or is not invocable."""
    category = ErrorCategory.CONFIGURATION


class ParameterInterpreterError(AgenticToolError):
    """Failure inside the single-shot parameter interpreter."""
    category = ErrorCategory.GENERATION


class AutonomousAgentError(AgenticToolError):
    """Failure inside the autonomous agent loop."""
    category = ErrorCategory.EXECUTION


class SafetyLimitError(AgenticToolError):
    """A configured safety limit was reached. Always terminal, never retried."""
    category = ErrorCategory.SAFETY_LIMIT

    def __init__(self, code: str, message: str, limit: float, actual: float):
        self.limit = limit
        self.actual = actual
        super().__init__(code, message, {"limit": limit, "actual": actual})

    def to_api_error(self) -> Dict[str, Any]:
        """Error body with the exceeded limit spelled out for API responses."""
        return {
            "code": self.code,
            "message": self.message,
            "details": {
                "limit": self.limit,
                "actual": self.actual,
                "exceeded": round(self.actual - self.limit, 6),
            },
            "retryable": False,
        }


class LLMProviderError(AgenticToolError):
    """LLM provider call failed (network, auth, rate limit or API error)."""
    category = ErrorCategory.API_ERROR

    def __init__(
        self,
        provider: str,
        message: str,
        category: ErrorCategory = ErrorCategory.API_ERROR,
        status_code: Optional[int] = None,
        retryable: bool = False,
        retry_after: Optional[float] = None,
    ):
        self.provider = provider
        self.category = category
        self.status_code = status_code
        self.retryable = retryable
        self.retry_after = retry_after
        details = {"provider": provider, "category": category.value, "retryable": retryable}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(ErrorCodes.LLM_PROVIDER_ERROR, message, details)


class LLMResponseParseError(AgenticToolError):
    """LLM returned text that could not be decoded as the requested JSON."""
    category = ErrorCategory.GENERATION

    def __init__(self, provider: str, message: str, raw_text: str = ""):
        self.provider = provider
        self.raw_text = raw_text
        super().__init__(
            ErrorCodes.INVALID_LLM_OUTPUT,
            message,
            {"provider": provider, "raw_text": raw_text[:500]},
        )


class LLMConfigurationError(AgenticToolError):
    """Embedded LLM configuration is unusable (unknown provider, missing key)."""
    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str):
        super().__init__(ErrorCodes.INVALID_LLM_CONFIG, message)


def _retry_after_from(error: Exception) -> Optional[float]:
    response = getattr(error, "response", None)
    headers = getattr(response, "headers", None)
    if not headers:
        return None
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def wrap_llm_error(error: Exception, provider: str) -> AgenticToolError:
    """
    Wrap raw LLM SDK / HTTP errors into LLMProviderError.

    Errors that are already AgenticToolError pass through untouched so parse
    and configuration failures keep their own codes.

    Args:
        error: Original exception
        provider: LLM provider name ('anthropic', 'google', 'openai')

    Returns:
        AgenticToolError with appropriate category
    """
    if isinstance(error, AgenticToolError):
        return error

    error_str = str(error)
    error_lower = error_str.lower()

    # Prefer the HTTP status when the SDK exposes one
    status_code = getattr(error, "status_code", None)
    if status_code is None:
        response = getattr(error, "response", None)
        status_code = getattr(response, "status_code", None)

    if isinstance(status_code, int):
        if status_code == 429:
            return LLMProviderError(
                provider,
                f"{provider} rate limit exceeded (429)",
                category=ErrorCategory.RATE_LIMIT,
                status_code=status_code,
                retryable=True,
                retry_after=_retry_after_from(error),
            )
        if status_code in (401, 403):
            return LLMProviderError(
                provider,
                f"{provider} auth error ({status_code})",
                category=ErrorCategory.AUTH_ERROR,
                status_code=status_code,
            )
        if status_code >= 500:
            # Server errors are retryable
            return LLMProviderError(
                provider,
                f"{provider} server error ({status_code}): {error_str}",
                status_code=status_code,
                retryable=True,
            )
        return LLMProviderError(
            provider,
            f"{provider} API error ({status_code}): {error_str}",
            status_code=status_code,
        )

    if "rate limit" in error_lower or "429" in error_str:
        return LLMProviderError(
            provider,
            f"{provider} rate limit exceeded",
            category=ErrorCategory.RATE_LIMIT,
            retryable=True,
            retry_after=_retry_after_from(error),
        )

    if "401" in error_str or "unauthorized" in error_lower or "authentication" in error_lower:
        return LLMProviderError(
            provider,
            f"{provider} authentication failed: {error_str}",
            category=ErrorCategory.AUTH_ERROR,
        )

    if any(keyword in error_lower for keyword in ["connection", "timeout", "timed out", "network"]):
        return LLMProviderError(
            provider,
            f"{provider} network error: {error_str}",
            category=ErrorCategory.NETWORK,
            retryable=True,
        )

    return LLMProviderError(
        provider,
        f"{provider} error: {error_str}",
        category=ErrorCategory.UNKNOWN,
    )


def http_status_for_error(code: Optional[str]) -> int:
    """Map an error code to the HTTP status the invoke endpoint responds with."""
    if not code:
        return 500
    if code in (ErrorCodes.AGENTIC_TOOL_NOT_FOUND, ErrorCodes.ACTION_NOT_FOUND, ErrorCodes.TOOL_NOT_FOUND):
        return 404
    if code == ErrorCodes.AGENTIC_TOOL_DISABLED:
        return 403
    if code in (
        ErrorCodes.INVALID_STATUS,
        ErrorCodes.INVALID_TOOL_CONFIG,
        ErrorCodes.INVALID_EXECUTION_MODE,
        ErrorCodes.NO_TARGET_ACTIONS,
        ErrorCodes.NO_AVAILABLE_TOOLS,
        ErrorCodes.INVALID_GENERATED_PARAMETERS,
        ErrorCodes.INVALID_LLM_CONFIG,
    ):
        return 400
    if code in SAFETY_LIMIT_CODES:
        return 429
    if code in (
        ErrorCodes.INVALID_LLM_OUTPUT,
        ErrorCodes.ACTION_EXECUTION_FAILED,
        ErrorCodes.LLM_PROVIDER_ERROR,
    ):
        return 502
    return 500
