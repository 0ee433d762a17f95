import json
import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from booking_assistant.models.context import ConversationContext
from booking_assistant.tools.date_resolver import DEFAULT_TIMEZONE, resolve_date, today_in
from booking_assistant.tools.errors import InvalidFieldValueError, MissingRequiredFieldError

logger = logging.getLogger(__name__)


class FieldKind(Enum):
    STRING = "string"
    INT = "integer"
    ENUM = "enum"
    DATE = "date"
    ARRAY = "array"
    OBJECT = "object"


class RangePolicy(Enum):
    REJECT = "reject"
    CLAMP = "clamp"


class _Absent:
    """Marker for a value that is missing or not of the declared kind"""

    def __repr__(self):
        return "<absent>"


ABSENT = _Absent()


@dataclass(frozen=True)
class ToolParameter:
    """
    One field of a tool's argument spec.

    Resolution order: the raw argument (when present and of the declared
    kind), then `context_field`, then `default` / `compute_default`, otherwise
    a missing-field error when `required`.
    """
    name: str
    kind: FieldKind
    required: bool = False
    description: str = ""
    default: Any = None
    context_field: Optional[str] = None
    compute_default: Optional[Callable[["ExtractionScope"], Any]] = None
    aliases: Tuple[str, ...] = ()
    case: Optional[str] = None  # "upper" | "lower"
    # ENUM: an unknown value falls back to `fallback`; without one it is rejected
    choices: Tuple[str, ...] = ()
    fallback: Any = None
    # INT
    minimum: Optional[int] = None
    maximum: Optional[int] = None
    range_policy: RangePolicy = RangePolicy.REJECT
    allowed: Tuple[int, ...] = ()
    # ARRAY of objects
    item_fields: Tuple["ToolParameter", ...] = ()
    min_items: int = 0
    max_items: Optional[int] = None
    # final conversion; ValueError becomes InvalidFieldValueError
    parser: Optional[Callable[[Any], Any]] = None

    @property
    def sources_context(self) -> bool:
        return self.context_field is not None


ArgumentSpec = Tuple[ToolParameter, ...]


@dataclass(frozen=True)
class ExtractionScope:
    """What a computed default or parser may look at besides the raw value"""
    context: ConversationContext
    today: date
    timezone: str


def parse_raw_arguments(raw_arguments: Any) -> Dict[str, Any]:
    """
    Turn the planner's argument payload into a dict.

    A JSON string is decoded; anything that is not an object (bad JSON, a list,
    a number) becomes an empty bag so extraction fails field by field instead.
    """
    if raw_arguments is None:
        return {}
    if isinstance(raw_arguments, Mapping):
        return dict(raw_arguments)
    if isinstance(raw_arguments, (str, bytes, bytearray)):
        text = raw_arguments.decode("utf-8", errors="replace") if isinstance(raw_arguments, (bytes, bytearray)) else raw_arguments
        if not text.strip():
            return {}
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse tool arguments: {text[:200]}")
            return {}
        if isinstance(decoded, dict):
            return decoded
        logger.warning(f"Tool arguments are not an object: {type(decoded).__name__}")
        return {}
    logger.warning(f"Unsupported tool argument payload type: {type(raw_arguments).__name__}")
    return {}


class ArgumentExtractor:
    """
    Produces a validated argument dict for a tool from its ArgumentSpec.

    Stateless apart from the clock, so one instance serves every session.
    """

    def __init__(self, timezone: str = DEFAULT_TIMEZONE, clock: Optional[Callable[[], date]] = None):
        self.timezone = timezone
        self._clock = clock or (lambda: today_in(timezone))

    def today(self) -> date:
        value = self._clock()
        return value.date() if isinstance(value, datetime) else value

    def extract(self, spec: Sequence[ToolParameter], raw_arguments: Any,
                context: Optional[ConversationContext] = None) -> Dict[str, Any]:
        arguments = parse_raw_arguments(raw_arguments)
        scope = ExtractionScope(context=context or ConversationContext(), today=self.today(), timezone=self.timezone)
        return self._extract_fields(spec, arguments, scope, prefix="")

    def _extract_fields(self, spec: Sequence[ToolParameter], arguments: Mapping[str, Any],
                        scope: ExtractionScope, prefix: str) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        for param in spec:
            result[param.name] = self._resolve_field(param, arguments, scope, prefix)
        return result

    def _resolve_field(self, param: ToolParameter, arguments: Mapping[str, Any],
                       scope: ExtractionScope, prefix: str) -> Any:
        path = f"{prefix}{param.name}"
        raw = _lookup(arguments, param)

        value = ABSENT
        if raw is not None:
            value = self._coerce(param, raw, scope, path)

        if value is ABSENT and param.context_field:
            from_context = scope.context.get(param.context_field)
            if from_context not in (None, ""):
                value = self._coerce(param, from_context, scope, path)

        if value is ABSENT:
            if param.compute_default is not None:
                value = param.compute_default(scope)
            elif param.default is not None:
                value = param.default

        if value is ABSENT or value is None:
            if param.required:
                raise MissingRequiredFieldError(path)
            return None

        if param.parser is not None:
            try:
                value = param.parser(value)
            except (ValueError, TypeError) as e:
                raise InvalidFieldValueError(path, str(e)) from e
        return value

    def _coerce(self, param: ToolParameter, raw: Any, scope: ExtractionScope, path: str) -> Any:
        kind = param.kind
        if kind == FieldKind.STRING:
            return _coerce_string(raw, param.case)
        if kind == FieldKind.INT:
            return self._coerce_int(param, raw, path)
        if kind == FieldKind.ENUM:
            return _coerce_enum(param, raw, path)
        if kind == FieldKind.DATE:
            if isinstance(raw, datetime):
                return raw.date()
            if isinstance(raw, date):
                return raw
            text = _coerce_string(raw, None)
            if text is ABSENT:
                return ABSENT
            return resolve_date(text, now=scope.today, timezone=scope.timezone)
        if kind == FieldKind.OBJECT:
            decoded = _decode_json_container(raw, dict)
            return decoded if decoded is not None else ABSENT
        if kind == FieldKind.ARRAY:
            return self._coerce_array(param, raw, scope, path)
        return ABSENT

    def _coerce_int(self, param: ToolParameter, raw: Any, path: str) -> Any:
        number = _to_int(raw)
        if number is None:
            return ABSENT

        if param.allowed and number not in param.allowed:
            logger.info(f"{path}={number} not in {param.allowed}, using {param.fallback}")
            return param.fallback if param.fallback is not None else ABSENT

        below = param.minimum is not None and number < param.minimum
        above = param.maximum is not None and number > param.maximum
        if below or above:
            if param.range_policy == RangePolicy.CLAMP:
                return max(param.minimum, number) if below else min(param.maximum, number)
            raise InvalidFieldValueError(path, f"must be between {param.minimum} and {param.maximum}, got {number}")
        return number

    def _coerce_array(self, param: ToolParameter, raw: Any, scope: ExtractionScope, path: str) -> Any:
        items = _decode_json_container(raw, list)
        if items is None:
            return ABSENT

        if len(items) < param.min_items:
            raise InvalidFieldValueError(path, f"at least {param.min_items} item(s) required")
        if param.max_items is not None and len(items) > param.max_items:
            raise InvalidFieldValueError(path, f"at most {param.max_items} item(s) allowed")

        if not param.item_fields:
            return list(items)

        parsed: List[Dict[str, Any]] = []
        for index, item in enumerate(items):
            item_path = f"{path}[{index}]"
            element = _decode_json_container(item, dict)
            if element is None:
                raise InvalidFieldValueError(item_path, "expected an object")
            # elements never fall back to conversation context
            element_scope = ExtractionScope(context=ConversationContext(), today=scope.today, timezone=scope.timezone)
            parsed.append(self._extract_fields(param.item_fields, element, element_scope, prefix=f"{item_path}."))
        return parsed


def _lookup(arguments: Mapping[str, Any], param: ToolParameter) -> Any:
    for key in (param.name,) + param.aliases:
        if key in arguments and arguments[key] is not None:
            return arguments[key]
    return None


def _coerce_string(raw: Any, case: Optional[str]) -> Any:
    if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
        return ABSENT
    text = str(raw).strip()
    if not text:
        return ABSENT
    if case == "upper":
        return text.upper()
    if case == "lower":
        return text.lower()
    return text


def _coerce_enum(param: ToolParameter, raw: Any, path: str) -> Any:
    text = _coerce_string(raw, None)
    if text is ABSENT:
        return ABSENT
    key = text.upper().replace("-", "_").replace(" ", "_")
    for choice in param.choices:
        if choice.upper() == key:
            return choice
    if param.fallback is not None:
        logger.info(f"Unrecognized {path}={text!r}, using {param.fallback}")
        return param.fallback
    raise InvalidFieldValueError(path, f"expected one of {', '.join(param.choices)}, got {text!r}")


def _to_int(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if raw.is_integer() else None
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                return None
            return int(number) if number.is_integer() else None
    return None


def _decode_json_container(raw: Any, expected: type) -> Any:
    if isinstance(raw, expected):
        return raw
    if isinstance(raw, tuple) and expected is list:
        return list(raw)
    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            return None
        return decoded if isinstance(decoded, expected) else None
    return None
