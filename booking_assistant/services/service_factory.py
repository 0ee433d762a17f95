# booking_assistant/services/service_factory.py
import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional
from zoneinfo import ZoneInfo

from booking_assistant.config import Settings
from booking_assistant.services.api.mock_provider import MockAirlineProvider
from booking_assistant.services.api.profile_service import InMemoryProfileService
from booking_assistant.services.api.weather_service import OpenMeteoWeatherService
from booking_assistant.services.conversation_service import ConversationService
from booking_assistant.storage.session_store import SessionStore, create_session_store
from booking_assistant.tools.argument_extractor import ArgumentExtractor
from booking_assistant.tools.tool_dispatcher import ToolDispatcher
from booking_assistant.tools.tool_registry import ToolRegistry
from booking_assistant.utils.response_builder import ChatResponseBuilder

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Factory for creating and wiring services"""

    @staticmethod
    def create_services(settings: Optional[Settings] = None, overrides: Optional[Dict[str, Any]] = None,
                        session_store: Optional[SessionStore] = None,
                        clock: Optional[Callable[[], datetime]] = None) -> Dict[str, Any]:
        """
        Build every service the app needs.

        `overrides` replaces individual downstream facades (keys as in
        ToolRegistry.REQUIRED_SERVICES); `clock` pins "now" for tests.
        """
        settings = settings or Settings.from_env()
        overrides = overrides or {}
        tz = ZoneInfo(settings.operating_timezone)
        now = clock or (lambda: datetime.now(tz))

        def today() -> date:
            return now().date()

        airline = MockAirlineProvider(
            search_ttl_minutes=settings.search_ttl_minutes,
            timezone=settings.operating_timezone,
            clock=now,
        )
        facades = {
            "search": airline,
            "booking": airline,
            "manage_booking": airline,
            "check_in": airline,
            "ancillary": airline,
            "profile": InMemoryProfileService(),
            "weather": OpenMeteoWeatherService(
                base_url=settings.weather_api_url,
                timeout=settings.weather_timeout_seconds,
                max_workers=settings.max_workers,
            ),
        }
        facades.update(overrides)

        registry = ToolRegistry(
            facades, timezone=settings.operating_timezone, clock=today, max_workers=settings.max_workers,
        )
        dispatcher = ToolDispatcher(registry, ArgumentExtractor(settings.operating_timezone, clock=today))
        store = session_store or create_session_store(settings)

        services = dict(facades)
        services.update({
            "settings": settings,
            "tool_registry": registry,
            "tool_dispatcher": dispatcher,
            "session_store": store,
            "conversation_service": ConversationService(
                dispatcher, store,
                timeout_seconds=settings.tool_timeout_seconds,
                max_workers=settings.max_workers,
            ),
            "response_builder": ChatResponseBuilder(),
        })
        logger.info(f"Services ready: {len(registry)} tools, timezone {settings.operating_timezone}")
        return services
