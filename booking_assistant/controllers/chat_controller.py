import logging
from typing import Any, Dict, Optional, Tuple

from booking_assistant.services.conversation_service import ConversationService
from booking_assistant.tools.tool_registry import ToolRegistry
from booking_assistant.utils.response_builder import ChatResponseBuilder

logger = logging.getLogger(__name__)

Response = Tuple[Dict[str, Any], int]


class ChatController:
    """HTTP-facing glue: validates request bodies and shapes JSON responses"""

    def __init__(self, services: Dict[str, Any]):
        self.conversation_service: ConversationService = services["conversation_service"]
        self.tool_registry: ToolRegistry = services["tool_registry"]
        self.response_builder: ChatResponseBuilder = services["response_builder"]

    def handle_tool_call(self, session_id: str, tool_name: str, body: Any) -> Response:
        if not isinstance(body, dict):
            return {"error": "Request body must be a JSON object"}, 400
        overrides = body.get("context")
        error = _check_context(overrides)
        if error:
            return {"error": error}, 400

        result, context = self.conversation_service.handle_tool_call(
            session_id, tool_name, body.get("arguments"), context_overrides=overrides,
        )
        response = result.to_dict()
        response["context"] = context.to_dict()
        # tool failures are conversation outcomes, not HTTP failures
        return response, 200

    def handle_turn(self, session_id: str, body: Any) -> Response:
        """Run the planner's tool calls for one turn, in order, and build the chat envelope"""
        if not isinstance(body, dict):
            return {"error": "Request body must be a JSON object"}, 400
        tool_calls = body.get("toolCalls") or []
        if not isinstance(tool_calls, list) or not all(isinstance(c, dict) and c.get("name") for c in tool_calls):
            return {"error": "toolCalls must be a list of objects with a name"}, 400
        overrides = body.get("context")
        error = _check_context(overrides)
        if error:
            return {"error": error}, 400

        results = []
        context = self.conversation_service.get_context(session_id)
        for index, call in enumerate(tool_calls):
            result, context = self.conversation_service.handle_tool_call(
                session_id, call["name"], call.get("arguments"),
                # caller overrides only seed the first call; later calls see the updated context
                context_overrides=overrides if index == 0 else None,
            )
            results.append(result)
        if not tool_calls and overrides:
            context = self.conversation_service.update_context(session_id, overrides)

        envelope = self.response_builder.build(str(body.get("text") or ""), results, locale=context.locale)
        response = envelope.to_dict()
        response["toolResults"] = [r.to_dict() for r in results]
        response["context"] = context.to_dict()
        return response, 200

    def get_context(self, session_id: str) -> Response:
        return {"sessionId": session_id, "context": self.conversation_service.get_context(session_id).to_dict()}, 200

    def clear_session(self, session_id: str) -> Response:
        cleared = self.conversation_service.clear_session(session_id)
        return {"sessionId": session_id, "cleared": cleared}, 200

    def list_tools(self) -> Response:
        return {"tools": self.tool_registry.tool_schemas()}, 200

    def health(self) -> Response:
        return {"status": "ok", "tools": len(self.tool_registry)}, 200


def _check_context(overrides: Any) -> Optional[str]:
    if overrides is None:
        return None
    if not isinstance(overrides, dict):
        return "context must be an object"
    metadata = overrides.get("metadata")
    if metadata is not None and not isinstance(metadata, dict):
        return "context.metadata must be an object"
    return None
