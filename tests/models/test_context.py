import pytest
from dataclasses import FrozenInstanceError

from booking_assistant.models.context import ConversationContext


class TestConversationContext:

    def test_defaults(self):
        context = ConversationContext()
        assert context.locale == "en"
        assert context.metadata == {}
        assert not context.is_logged_in

    def test_from_dict_accepts_both_casings(self):
        context = ConversationContext.from_dict({
            "userId": "user-demo",
            "user_origin_airport": "RUH",
            "currentPnr": "  ",
            "metadata": {"channel": "web", "attempt": 2},
            "somethingElse": True,
        })

        assert context.user_id == "user-demo"
        assert context.user_origin_airport == "RUH"
        assert context.current_pnr is None
        assert context.metadata == {"channel": "web", "attempt": "2"}
        assert context.is_logged_in

    def test_round_trip_through_wire_names(self):
        context = ConversationContext(user_id="u1", last_search_id="search_1", locale="ar")
        wire = context.to_dict()

        assert wire["lastSearchId"] == "search_1"
        assert "last_search_id" not in wire
        assert ConversationContext.from_dict(wire) == context

    def test_apply_returns_new_snapshot(self):
        context = ConversationContext(last_search_id="search_1", last_flight_number="F3100")

        updated = context.apply({"lastSearchId": "search_2", "lastFlightNumber": None})

        assert updated.last_search_id == "search_2"
        assert updated.last_flight_number is None
        assert context.last_search_id == "search_1"

    def test_apply_rejects_unknown_fields(self):
        with pytest.raises(KeyError):
            ConversationContext().apply({"seat": "12A"})

    def test_merge_skips_unknown_fields(self):
        merged = ConversationContext().merge({"seat": "12A", "currentPnr": "ABC123"})
        assert merged == ConversationContext(current_pnr="ABC123")

    def test_metadata_that_is_not_a_mapping(self):
        context = ConversationContext(metadata={"channel": "web"})

        assert ConversationContext.from_dict({"metadata": ["x"], "locale": "ar"}).metadata == {}
        assert context.merge({"metadata": ["x"], "currentPnr": "ABC123"}) == ConversationContext(
            current_pnr="ABC123", metadata={"channel": "web"},
        )
        assert context.merge({"metadata": None}).metadata == {}
        with pytest.raises(TypeError):
            context.apply({"metadata": "x"})

    def test_snapshot_is_immutable(self):
        with pytest.raises(FrozenInstanceError):
            ConversationContext().current_pnr = "ABC123"
