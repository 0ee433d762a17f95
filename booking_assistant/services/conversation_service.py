import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Mapping, Optional, Tuple

from booking_assistant.models.context import ConversationContext
from booking_assistant.storage.session_store import SessionStore
from booking_assistant.tools.errors import ToolError
from booking_assistant.tools.result_projector import ToolResult
from booking_assistant.tools.tool_dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)


class ConversationService:
    """
    Threads the session context through tool calls.

    One call = load context, dispatch, apply the result's context updates,
    save, all inside the session's lock so two messages for the same session
    never interleave. A call that exceeds the timeout comes back as an error;
    whatever it already did downstream is left as is.
    """

    def __init__(self, dispatcher: ToolDispatcher, session_store: SessionStore,
                 timeout_seconds: int = 30, max_workers: int = 5):
        self.dispatcher = dispatcher
        self.session_store = session_store
        self.timeout_seconds = timeout_seconds
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="tool-call")

    def get_context(self, session_id: str) -> ConversationContext:
        return self.session_store.get(session_id) or ConversationContext()

    def update_context(self, session_id: str, changes: Mapping[str, Any]) -> ConversationContext:
        with self.session_store.lock(session_id):
            context = self.get_context(session_id).merge(changes)
            self.session_store.put(session_id, context)
        return context

    def handle_tool_call(self, session_id: str, tool_name: str, arguments: Any = None,
                         context_overrides: Optional[Mapping[str, Any]] = None
                         ) -> Tuple[ToolResult, ConversationContext]:
        try:
            with self.session_store.lock(session_id):
                context = self.get_context(session_id).merge(context_overrides)
                result = self._dispatch_with_timeout(tool_name, arguments, context)

                if not result.is_error and result.context_updates:
                    context = context.apply(result.context_updates)
                    logger.info(f"Session {session_id} context updated: {sorted(result.context_updates)}")
                self.session_store.put(session_id, context)
        except TimeoutError as e:
            logger.warning(f"Could not lock session {session_id}: {e}")
            return self.dispatcher.projector.failure(
                ToolError("Still working on your previous request. Please try again in a moment.")
            ), self.get_context(session_id)

        return result, context

    def clear_session(self, session_id: str) -> bool:
        with self.session_store.lock(session_id):
            cleared = self.session_store.delete(session_id)
        logger.info(f"Session {session_id} cleared (existed={cleared})")
        return cleared

    def _dispatch_with_timeout(self, tool_name: str, arguments: Any, context: ConversationContext) -> ToolResult:
        future = self._executor.submit(self.dispatcher.dispatch, tool_name, arguments, context)
        try:
            return future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError:
            logger.error(f"Tool {tool_name} timed out after {self.timeout_seconds}s")
            return self.dispatcher.projector.failure(
                ToolError("That took too long to complete. Please check the result before trying again.")
            )

    def shutdown(self):
        self._executor.shutdown(wait=False)
