"""
Safety limits for agentic tool execution.

A SafetyEnforcer is created per invocation and holds only the configured
limits and a start timestamp. Every check is a pure comparison: the observed
value fails the check as soon as it reaches the limit (observed >= limit).
"""

import math
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from agentic_tools.infra.error_handler import ErrorCodes, SafetyLimitError
from agentic_tools.models.agentic_tool import SafetyLimits


class SafetyEnforcer:
    """Checks tool-call count, elapsed time and accumulated cost against limits."""

    def __init__(
        self,
        limits: Optional[SafetyLimits] = None,
        start_time: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            limits: Configured limits (defaults: 10 calls, 300s, $1.00)
            start_time: Start timestamp in clock seconds (defaults to now)
            clock: Monotonic clock in seconds, injectable for tests
        """
        self._limits = limits or SafetyLimits()
        self._clock = clock
        self._start_time = clock() if start_time is None else start_time

    @property
    def limits(self) -> SafetyLimits:
        return self._limits

    def elapsed_seconds(self) -> float:
        return self._clock() - self._start_time

    def elapsed_ms(self) -> int:
        return int(self.elapsed_seconds() * 1000)

    def check_tool_call_limit(self, tool_call_count: int) -> None:
        """
        Raise if the number of tool calls made so far has reached the limit.

        Raises:
            SafetyLimitError: code MAX_TOOL_CALLS_EXCEEDED
        """
        limit = self._limits.max_tool_calls
        if tool_call_count >= limit:
            raise SafetyLimitError(
                ErrorCodes.MAX_TOOL_CALLS_EXCEEDED,
                f"Maximum tool calls limit reached ({limit})",
                limit=limit,
                actual=tool_call_count,
            )

    def check_timeout(self) -> None:
        """
        Raise if the invocation has been running for the configured timeout or longer.

        Raises:
            SafetyLimitError: code TIMEOUT, actual is elapsed whole seconds
        """
        limit = self._limits.timeout_seconds
        elapsed = self.elapsed_seconds()
        if elapsed >= limit:
            raise SafetyLimitError(
                ErrorCodes.TIMEOUT,
                f"Execution timeout reached ({limit}s)",
                limit=limit,
                actual=math.floor(elapsed),
            )

    def check_cost_limit(self, total_cost: float) -> None:
        """
        Raise if the accumulated cost has reached the limit.

        Raises:
            SafetyLimitError: code MAX_COST_EXCEEDED
        """
        limit = self._limits.max_total_cost
        if total_cost >= limit:
            raise SafetyLimitError(
                ErrorCodes.MAX_COST_EXCEEDED,
                f"Maximum cost limit reached (${limit:.2f})",
                limit=limit,
                actual=total_cost,
            )

    def check_all(self, tool_call_count: int, total_cost: float) -> None:
        """Run the timeout, cost and tool-call checks in that order."""
        self.check_timeout()
        self.check_cost_limit(total_cost)
        self.check_tool_call_limit(tool_call_count)

    def can_continue(self, tool_call_count: int, total_cost: float) -> bool:
        """Non-raising variant of check_all."""
        try:
            self.check_all(tool_call_count, total_cost)
        except SafetyLimitError:
            return False
        return True

    def remaining_capacity(self, tool_call_count: int, total_cost: float) -> Dict[str, Any]:
        """Snapshot of what is left under each limit, floored at zero."""
        return {
            "tool_calls": max(0, self._limits.max_tool_calls - tool_call_count),
            "time_seconds": max(0, math.floor(self._limits.timeout_seconds - self.elapsed_seconds())),
            "cost": max(0.0, round(self._limits.max_total_cost - total_cost, 6)),
        }


def get_default_safety_limits() -> SafetyLimits:
    return SafetyLimits()


def merge_safety_limits(partial: Optional[Dict[str, Any]] = None) -> SafetyLimits:
    """Fill any missing limit from the defaults."""
    merged = get_default_safety_limits().model_dump()
    for key, value in (partial or {}).items():
        if value is not None and key in merged:
            merged[key] = value
    return SafetyLimits(**merged)


def validate_safety_limits(limits: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate raw limit values without raising.

    Returns:
        (valid, errors) where errors lists every out-of-range field
    """
    errors = []

    max_tool_calls = limits.get("max_tool_calls")
    if max_tool_calls is not None and not (isinstance(max_tool_calls, int) and 1 <= max_tool_calls <= 100):
        errors.append("max_tool_calls must be an integer between 1 and 100")

    timeout_seconds = limits.get("timeout_seconds")
    if timeout_seconds is not None and not (isinstance(timeout_seconds, int) and 30 <= timeout_seconds <= 600):
        errors.append("timeout_seconds must be an integer between 30 and 600")

    max_total_cost = limits.get("max_total_cost")
    if max_total_cost is not None and not (
        isinstance(max_total_cost, (int, float)) and 0.01 <= max_total_cost <= 10
    ):
        errors.append("max_total_cost must be between 0.01 and 10")

    return len(errors) == 0, errors
