from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    UNKNOWN_TOOL = "unknown_tool"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    INVALID_FIELD_VALUE = "invalid_field_value"
    PRECONDITION_NOT_MET = "precondition_not_met"
    DOWNSTREAM_FAILURE = "downstream_failure"


class ToolError(Exception):
    """Base class for every failure the dispatcher turns into an error result"""

    kind = ErrorKind.DOWNSTREAM_FAILURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.message, "kind": self.kind.value}


class UnknownToolError(ToolError):
    kind = ErrorKind.UNKNOWN_TOOL

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class ArgumentError(ToolError):
    """Raised by the argument extractor; always names the offending field"""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["field"] = self.field
        return payload


class MissingRequiredFieldError(ArgumentError):
    kind = ErrorKind.MISSING_REQUIRED_FIELD

    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(field, message or f"{field} is required")


class InvalidFieldValueError(ArgumentError):
    kind = ErrorKind.INVALID_FIELD_VALUE

    def __init__(self, field: str, reason: str):
        super().__init__(field, f"Invalid value for {field}: {reason}")
        self.reason = reason


class PreconditionNotMetError(ToolError):
    """
    A cross-turn requirement of a specific tool is not satisfied
    (no prior search, not logged in, origin unknown).

    When `code` is given the payload leads with it so the caller can branch on
    it and re-prompt the user for exactly the missing piece.
    """

    kind = ErrorKind.PRECONDITION_NOT_MET

    def __init__(self, message: str, code: Optional[str] = None, prompt: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.prompt = prompt

    def to_payload(self) -> Dict[str, Any]:
        if not self.code:
            return super().to_payload()
        payload = {"error": self.code, "message": self.message, "kind": self.kind.value}
        if self.prompt:
            payload["prompt"] = self.prompt
        return payload
