import logging
from typing import Any, Optional

from booking_assistant.models.context import ConversationContext
from booking_assistant.services.api.base import DownstreamError
from booking_assistant.tools.argument_extractor import ArgumentExtractor, parse_raw_arguments
from booking_assistant.tools.errors import ArgumentError, PreconditionNotMetError, ToolError, UnknownToolError
from booking_assistant.tools.result_projector import ResultProjector, ToolResult
from booking_assistant.tools.tool_registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolDispatcher:
    """
    Runs one tool call: lookup, preconditions, argument extraction, handler,
    projection.

    `dispatch` never raises. Every failure, from an unknown name to a crash
    inside a downstream service, comes back as an error ToolResult so a single
    bad call only costs the user that turn. No retries and no rollback happen
    here; side effects belong to the downstream services.
    """

    def __init__(self, registry: ToolRegistry, extractor: Optional[ArgumentExtractor] = None,
                 projector: Optional[ResultProjector] = None):
        self.registry = registry
        self.extractor = extractor or ArgumentExtractor()
        self.projector = projector or ResultProjector()

    def dispatch(self, tool_name: str, raw_arguments: Any = None,
                 context: Optional[ConversationContext] = None) -> ToolResult:
        context = context or ConversationContext()

        definition = self.registry.get(tool_name)
        if definition is None:
            logger.warning(f"Unknown tool: {tool_name}")
            return self.projector.failure(UnknownToolError(tool_name))

        arguments = parse_raw_arguments(raw_arguments)
        logger.info(f"Executing tool: {tool_name} with argument keys: {sorted(arguments)}")

        try:
            for precondition in definition.preconditions:
                precondition(context, arguments)
            typed_arguments = self.extractor.extract(definition.parameters, arguments, context)
            outcome = definition.handler(typed_arguments, context)
        except PreconditionNotMetError as e:
            logger.info(f"Precondition not met for {tool_name}: {e.message}")
            return self.projector.failure(e)
        except ArgumentError as e:
            logger.info(f"Rejected arguments for {tool_name}: {e.message}")
            return self.projector.failure(e)
        except ToolError as e:
            logger.warning(f"Tool {tool_name} failed: {e.message}")
            return self.projector.failure(e)
        except DownstreamError as e:
            logger.warning(f"Downstream failure in {tool_name}: {e}")
            return self.projector.failure(ToolError(str(e) or f"{tool_name} failed"))
        except Exception as e:
            logger.error(f"Tool execution failed for {tool_name}: {e}", exc_info=True)
            return self.projector.failure(
                ToolError("Sorry, something went wrong while processing that request. Please try again.")
            )

        result = self.projector.success(outcome, definition.ui_hint)
        logger.info(f"Tool {tool_name} succeeded (uiHint={result.ui_hint.value if result.ui_hint else None})")
        return result
