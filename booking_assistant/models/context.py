from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping, Optional


# Wire (camelCase) name -> attribute name
_WIRE_NAMES = {
    "userId": "user_id",
    "userEmail": "user_email",
    "userOriginAirport": "user_origin_airport",
    "lastSearchId": "last_search_id",
    "lastFlightNumber": "last_flight_number",
    "currentPnr": "current_pnr",
    "currentScreen": "current_screen",
    "locale": "locale",
    "metadata": "metadata",
}
_ATTRIBUTE_NAMES = {attr: wire for wire, attr in _WIRE_NAMES.items()}


@dataclass(frozen=True)
class ConversationContext:
    """
    Carry-over state for one conversation.

    A snapshot is immutable for the duration of a turn; the caller replaces it
    with `apply(...)` once the turn's tool calls are done. Every field is a
    cached pointer (search id, PNR, flight number), never the source of truth
    for the transaction it points at.
    """
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    user_origin_airport: Optional[str] = None
    last_search_id: Optional[str] = None
    last_flight_number: Optional[str] = None
    current_pnr: Optional[str] = None
    current_screen: Optional[str] = None
    locale: str = "en"
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ConversationContext":
        """Build a context from camelCase or snake_case keys, ignoring unknown keys"""
        if not data:
            return cls()

        values: Dict[str, Any] = {}
        for key, value in data.items():
            attr = _WIRE_NAMES.get(key, key)
            if attr not in _ATTRIBUTE_NAMES:
                continue
            if attr == "metadata":
                values[attr] = _metadata(value) if isinstance(value, Mapping) else {}
            elif attr == "locale":
                values[attr] = str(value) if value else "en"
            else:
                values[attr] = _clean(value)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            _ATTRIBUTE_NAMES[f.name]: (dict(getattr(self, f.name)) if f.name == "metadata" else getattr(self, f.name))
            for f in fields(self)
        }

    def get(self, attribute: str) -> Any:
        return getattr(self, attribute, None)

    def apply(self, updates: Optional[Mapping[str, Any]]) -> "ConversationContext":
        """Return a new snapshot with the given fields replaced (wire or attribute names)"""
        if not updates:
            return self
        changes = {}
        for key, value in updates.items():
            attr = _WIRE_NAMES.get(key, key)
            if attr not in _ATTRIBUTE_NAMES:
                raise KeyError(f"Unknown context field: {key}")
            if attr == "metadata":
                if value is not None and not isinstance(value, Mapping):
                    raise TypeError(f"Context metadata must be a mapping, got {type(value).__name__}")
                changes[attr] = _metadata(value or {})
            elif attr == "locale":
                changes[attr] = str(value) if value else "en"
            else:
                changes[attr] = _clean(value)
        return replace(self, **changes)

    def merge(self, data: Optional[Mapping[str, Any]]) -> "ConversationContext":
        """Like apply(), but silently skips unknown keys and metadata that is not a mapping"""
        if not data:
            return self
        known = {}
        for key, value in data.items():
            attr = _WIRE_NAMES.get(key, key)
            if attr not in _ATTRIBUTE_NAMES:
                continue
            if attr == "metadata" and value is not None and not isinstance(value, Mapping):
                continue
            known[key] = value
        return self.apply(known)

    @property
    def is_logged_in(self) -> bool:
        return bool(self.user_id)


def _metadata(value: Mapping[Any, Any]) -> Dict[str, str]:
    return {str(k): str(v) for k, v in value.items()}


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
