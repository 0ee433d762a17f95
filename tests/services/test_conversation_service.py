import threading
import time
from contextlib import contextmanager
from unittest.mock import Mock

import pytest

from booking_assistant.models.context import ConversationContext
from booking_assistant.services.conversation_service import ConversationService
from booking_assistant.storage.session_store import InMemorySessionStore
from booking_assistant.tools.result_projector import ResultProjector, ToolResult, UiHint


def ok(updates=None, hint=None):
    return ToolResult({"ok": True}, ui_hint=hint, context_updates=updates or {})


class TestConversationService:

    @pytest.fixture
    def dispatcher(self):
        dispatcher = Mock()
        dispatcher.projector = ResultProjector()
        return dispatcher

    @pytest.fixture
    def store(self):
        return InMemorySessionStore()

    @pytest.fixture
    def service(self, dispatcher, store):
        service = ConversationService(dispatcher, store, timeout_seconds=1, max_workers=2)
        yield service
        service.shutdown()

    def test_context_updates_are_applied_and_saved(self, service, dispatcher, store):
        dispatcher.dispatch.return_value = ok({"lastSearchId": "search_1", "lastFlightNumber": None},
                                              UiHint.FLIGHT_LIST)

        result, context = service.handle_tool_call("s1", "search_flights", {"destination": "JED"},
                                                   context_overrides={"userOriginAirport": "RUH"})

        assert not result.is_error
        assert context.last_search_id == "search_1"
        assert context.user_origin_airport == "RUH"
        assert store.get("s1") == context
        tool_name, arguments, seen = dispatcher.dispatch.call_args.args
        assert (tool_name, arguments) == ("search_flights", {"destination": "JED"})
        # the handler saw the caller's overrides but not its own updates
        assert seen.user_origin_airport == "RUH"
        assert seen.last_search_id is None

    def test_errors_do_not_touch_context(self, service, dispatcher, store):
        store.put("s1", ConversationContext(current_pnr="ABC123"))
        dispatcher.dispatch.return_value = ToolResult({"error": "nope"}, is_error=True,
                                                      context_updates={"currentPnr": "ZZZ999"})

        result, context = service.handle_tool_call("s1", "get_booking")

        assert result.is_error
        assert context.current_pnr == "ABC123"
        assert store.get("s1").current_pnr == "ABC123"

    def test_unknown_override_keys_are_ignored(self, service, dispatcher):
        dispatcher.dispatch.return_value = ok()

        _, context = service.handle_tool_call("s1", "get_booking", context_overrides={"favouriteColour": "blue"})

        assert context == ConversationContext()

    def test_timeout_returns_error_result(self, service, dispatcher, store):
        def slow(*args):
            time.sleep(2)
            return ok({"currentPnr": "LATE01"})
        dispatcher.dispatch.side_effect = slow

        result, context = service.handle_tool_call("s1", "create_booking")

        assert result.is_error
        assert "too long" in result.error_message
        assert context.current_pnr is None

    def test_busy_session(self, dispatcher):
        store = Mock(wraps=InMemorySessionStore())

        @contextmanager
        def busy(session_id):
            raise TimeoutError("busy")
            yield
        store.lock.side_effect = busy
        service = ConversationService(dispatcher, store)

        result, context = service.handle_tool_call("s1", "check_in")

        assert result.is_error
        assert "previous request" in result.error_message
        dispatcher.dispatch.assert_not_called()
        service.shutdown()

    def test_calls_in_one_session_are_serialized(self, service, dispatcher):
        active = []
        overlaps = []

        def dispatch(tool_name, arguments, context):
            active.append(tool_name)
            if len(active) > 1:
                overlaps.append(list(active))
            time.sleep(0.05)
            active.remove(tool_name)
            return ok()
        dispatcher.dispatch.side_effect = dispatch

        threads = [threading.Thread(target=service.handle_tool_call, args=("s1", f"tool_{i}")) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert overlaps == []
        assert dispatcher.dispatch.call_count == 4

    def test_update_and_clear(self, service):
        context = service.update_context("s1", {"userId": "user-demo", "locale": "ar", "bogus": 1})

        assert context.user_id == "user-demo"
        assert service.get_context("s1").locale == "ar"
        assert service.clear_session("s1") is True
        assert service.get_context("s1") == ConversationContext()
        assert service.clear_session("s1") is False

    def test_sessions_are_isolated(self, service, dispatcher):
        dispatcher.dispatch.return_value = ok({"currentPnr": "ABC123"})

        service.handle_tool_call("s1", "get_booking", {"pnr": "ABC123"})

        assert service.get_context("s1").current_pnr == "ABC123"
        assert service.get_context("s2").current_pnr is None
