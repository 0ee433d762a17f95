import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from booking_assistant.tools.result_projector import ToolResult, UiHint

_ARABIC = re.compile(r"[\u0600-\u06FF]")

_SUGGESTIONS = {
    UiHint.FLIGHT_LIST: (
        ["I'll take the first one", "Show more options", "Different search"],
        ["أريد الرحلة الأولى", "أظهر المزيد", "بحث مختلف"],
    ),
    UiHint.BOOKING_SUMMARY: (
        ["Change my seat", "Cancel booking", "Check in"],
        ["غير المقعد", "إلغاء الحجز", "تسجيل الدخول"],
    ),
    UiHint.SEAT_MAP: (
        ["Window seat", "Aisle seat", "Cancel"],
        ["مقعد نافذة", "مقعد ممر", "إلغاء"],
    ),
    UiHint.BOARDING_PASS: (
        ["Show my booking", "Help"],
        ["أظهر الحجز", "مساعدة"],
    ),
    None: (
        ["Search flights", "Manage booking", "Check in"],
        ["بحث عن رحلة", "إدارة حجز", "تسجيل دخول"],
    ),
}


@dataclass
class ChatResponse:
    text: str
    ui_type: Optional[UiHint] = None
    ui_data: Optional[Dict[str, Any]] = None
    suggestions: List[str] = field(default_factory=list)
    detected_language: str = "en"
    pending_context: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "uiType": self.ui_type.value if self.ui_type else None,
            "uiData": self.ui_data,
            "suggestions": self.suggestions,
            "detectedLanguage": self.detected_language,
            "pendingContext": self.pending_context,
        }


def detect_language(text: str) -> str:
    """'ar' when more than 30% of the letters are Arabic, otherwise 'en'"""
    letters = [c for c in text or "" if c.isalpha()]
    if not letters:
        return "en"
    arabic = len(_ARABIC.findall(text))
    return "ar" if arabic / len(letters) > 0.3 else "en"


class ChatResponseBuilder:
    """
    Build the envelope the chat channel renders from the assistant's text and
    the turn's tool results
    """

    def build(self, text: str, tool_results: Sequence[ToolResult] = (), locale: Optional[str] = None,
              pending_context: Optional[Dict[str, Any]] = None) -> ChatResponse:
        displayed = self._displayed_result(tool_results)
        ui_type = displayed.ui_hint if displayed else None
        return ChatResponse(
            text=text,
            ui_type=ui_type,
            ui_data=displayed.payload if displayed else None,
            suggestions=self.suggestions_for(ui_type, locale, displayed.payload if displayed else None),
            detected_language=detect_language(text),
            pending_context=pending_context,
        )

    def suggestions_for(self, ui_type: Optional[UiHint], locale: Optional[str],
                        ui_data: Optional[Dict[str, Any]] = None) -> List[str]:
        is_arabic = (locale or "").lower().startswith("ar")

        if ui_type == UiHint.DESTINATION_SUGGESTIONS and ui_data:
            names = [s.get("destinationName") for s in ui_data.get("suggestions", []) if s.get("destinationName")]
            if names:
                prefix = "سافر إلى" if is_arabic else "Fly to"
                return [f"{prefix} {name}" for name in names[:4]]

        english, arabic = _SUGGESTIONS.get(ui_type, _SUGGESTIONS[None])
        return list(arabic if is_arabic else english)

    def _displayed_result(self, tool_results: Sequence[ToolResult]) -> Optional[ToolResult]:
        # the last successful result with something to show wins
        for result in reversed(list(tool_results)):
            if not result.is_error and result.ui_hint is not None:
                return result
        return None
