import logging
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from booking_assistant.tools.errors import ToolError

logger = logging.getLogger(__name__)


class UiHint(Enum):
    """Display surfaces the channel layer knows how to render"""
    FLIGHT_LIST = "FLIGHT_LIST"
    FLIGHT_SELECTED = "FLIGHT_SELECTED"
    FLIGHT_COMPARISON = "FLIGHT_COMPARISON"
    PASSENGER_SELECT = "PASSENGER_SELECT"
    BOOKING_SUMMARY = "BOOKING_SUMMARY"
    BOOKING_CONFIRMED = "BOOKING_CONFIRMED"
    PAYMENT_CONFIRM = "PAYMENT_CONFIRM"
    SEAT_MAP = "SEAT_MAP"
    ANCILLARY_OPTIONS = "ANCILLARY_OPTIONS"
    BOARDING_PASS = "BOARDING_PASS"
    DESTINATION_SUGGESTIONS = "DESTINATION_SUGGESTIONS"


@dataclass
class HandlerOutcome:
    """What a handler hands back: its data plus any context pointers to move"""
    data: Any
    context_updates: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    payload: Dict[str, Any]
    ui_hint: Optional[UiHint] = None
    is_error: bool = False
    context_updates: Dict[str, Any] = field(default_factory=dict)

    @property
    def error_message(self) -> Optional[str]:
        if not self.is_error:
            return None
        return self.payload.get("message") or self.payload.get("error")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payload": self.payload,
            "uiHint": self.ui_hint.value if self.ui_hint else None,
            "isError": self.is_error,
        }


def to_jsonable(value: Any) -> Any:
    """Recursively convert handler output into JSON-compatible values"""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    # datetime is a date subclass, so it has to be checked first
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Mapping):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    return str(value)


class ResultProjector:
    """
    Builds the uniform ToolResult envelope.

    The hint comes from the tool's registration, never from the payload, and
    is dropped on every error path.
    """

    def success(self, outcome: Any, ui_hint: Optional[UiHint] = None) -> ToolResult:
        if isinstance(outcome, HandlerOutcome):
            data, updates = outcome.data, dict(outcome.context_updates)
        else:
            data, updates = outcome, {}

        payload = to_jsonable(data)
        if not isinstance(payload, dict):
            payload = {"result": payload}
        return ToolResult(payload=payload, ui_hint=ui_hint, is_error=False, context_updates=updates)

    def failure(self, error: ToolError) -> ToolResult:
        return ToolResult(payload=error.to_payload(), ui_hint=None, is_error=True)
