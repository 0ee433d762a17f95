from booking_assistant.tools.result_projector import ToolResult, UiHint
from booking_assistant.utils.response_builder import ChatResponseBuilder, detect_language


class TestDetectLanguage:

    def test_english(self):
        assert detect_language("Book me a flight to Jeddah") == "en"
        assert detect_language("") == "en"
        assert detect_language("123 ?!") == "en"

    def test_arabic(self):
        assert detect_language("أريد رحلة إلى جدة") == "ar"

    def test_mixed_text_uses_share_of_letters(self):
        assert detect_language("flight to جدة tomorrow please") == "en"
        assert detect_language("أريد flight") == "ar"


class TestChatResponseBuilder:

    def setup_method(self):
        self.builder = ChatResponseBuilder()

    def test_no_results(self):
        response = self.builder.build("How can I help?")

        assert response.ui_type is None
        assert response.ui_data is None
        assert response.suggestions == ["Search flights", "Manage booking", "Check in"]
        assert response.to_dict()["uiType"] is None

    def test_last_displayable_result_wins(self):
        results = [
            ToolResult({"flights": []}, UiHint.FLIGHT_LIST),
            ToolResult({"pnr": "ABC123"}, UiHint.BOOKING_SUMMARY),
            ToolResult({"success": True}),
            ToolResult({"error": "nope"}, is_error=True),
        ]

        response = self.builder.build("Here is your booking", results)

        assert response.ui_type == UiHint.BOOKING_SUMMARY
        assert response.ui_data == {"pnr": "ABC123"}
        assert response.suggestions == ["Change my seat", "Cancel booking", "Check in"]

    def test_arabic_suggestions(self):
        response = self.builder.build("تفضل", [ToolResult({"flights": []}, UiHint.FLIGHT_LIST)], locale="ar")

        assert response.detected_language == "ar"
        assert response.suggestions[0] == "أريد الرحلة الأولى"

    def test_destination_suggestions(self):
        data = {"suggestions": [{"destinationName": name} for name in
                                ("Dubai", "Jeddah", "Istanbul", "Cairo", "Abha")]}
        result = ToolResult(data, UiHint.DESTINATION_SUGGESTIONS)

        assert self.builder.build("Ideas", [result]).suggestions == [
            "Fly to Dubai", "Fly to Jeddah", "Fly to Istanbul", "Fly to Cairo",
        ]
        assert self.builder.build("أفكار", [result], locale="ar-SA").suggestions[0] == "سافر إلى Dubai"

    def test_hint_without_specific_suggestions_uses_default(self):
        response = self.builder.build("Pick a meal", [ToolResult({"meals": []}, UiHint.ANCILLARY_OPTIONS)])

        assert response.ui_type == UiHint.ANCILLARY_OPTIONS
        assert response.suggestions == ["Search flights", "Manage booking", "Check in"]

    def test_to_dict(self):
        response = self.builder.build("ok", pending_context={"awaiting": "origin"})

        assert response.to_dict() == {
            "text": "ok",
            "uiType": None,
            "uiData": None,
            "suggestions": ["Search flights", "Manage booking", "Check in"],
            "detectedLanguage": "en",
            "pendingContext": {"awaiting": "origin"},
        }
