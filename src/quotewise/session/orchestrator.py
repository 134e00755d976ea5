"""Quote session orchestrator.

Owns the per-conversation :class:`SessionState`, runs one turn at a time and
routes each user message either to regular chat (with directive execution) or
to building analysis (which produces a bill of materials for review).
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING, Any

from ..core.inventory import build_inventory_lookup
from ..directives.diagnostics import DiagnosticSink, DirectiveDiagnostic, report
from ..directives.engine import TurnContext, process_response
from ..directives.executor import ActionExecutor
from ..directives.grammar import ADD_TO_QUOTE
from ..directives.validation import AddToQuote, CommandValidationError
from .classifier import contains_script_markup, is_building_analysis_request
from .errors import InvalidInputError, NoPendingBomError, TurnInProgressError
from .events import (
    AnalysisModeChanged,
    BomReady,
    DirectivesExecuted,
    EventBus,
    TurnCompleted,
    TurnFailed,
    TurnStarted,
)
from .models import AnalysisMode, BuildingAnalysis, ChatMessage, SessionState

if TYPE_CHECKING:  # pragma: no cover
    from ..ai.assistant import AssistantBackend

LOGGER = logging.getLogger(__name__)

__all__ = [
    "APOLOGY_MESSAGE",
    "DEFAULT_TURN_TIMEOUT",
    "DEFAULT_MAX_INPUT_CHARS",
    "QuoteSession",
    "render_analysis_message",
    "render_bom_confirmation",
]

APOLOGY_MESSAGE = (
    "I apologize, but I encountered an error processing your request. "
    "Please try again or contact support if the issue persists."
)
DEFAULT_TURN_TIMEOUT = 90.0
DEFAULT_MAX_INPUT_CHARS = 500


class QuoteSession:
    """Single conversation with the quoting assistant.

    Only one turn may be in flight at a time; a second message raises
    :class:`TurnInProgressError`. Every completed turn appends exactly one
    assistant message, either the reply or a generic apology when the
    assistant failed.

    Events Emitted:
        - TurnStarted / TurnCompleted / TurnFailed
        - DirectivesExecuted: after a chat reply changed the quote
        - AnalysisModeChanged: on every mode transition
        - BomReady: when an analysis leaves a BOM to review
    """

    def __init__(
        self,
        backend: AssistantBackend,
        *,
        turn_timeout: float | None = DEFAULT_TURN_TIMEOUT,
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
        diagnostics: DiagnosticSink | None = None,
        event_bus: EventBus | None = None,
        state: SessionState | None = None,
    ) -> None:
        self._backend = backend
        self._turn_timeout = turn_timeout
        self._max_input_chars = max_input_chars
        self._diagnostics = diagnostics
        self._bus = event_bus or EventBus()
        self._state = state or SessionState()
        self._busy = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def mode(self) -> AnalysisMode:
        return self._state.analysis_mode

    @property
    def history(self) -> list[ChatMessage]:
        return list(self._state.history)

    @property
    def events(self) -> EventBus:
        return self._bus

    @property
    def is_busy(self) -> bool:
        return self._busy

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def handle_send_message(self, user_input: str, context: TurnContext) -> ChatMessage | None:
        """Run one turn for ``user_input`` and return the appended assistant message.

        Returns ``None`` without touching state when the input is blank.

        Raises:
            TurnInProgressError: If another turn is still running.
            InvalidInputError: If the input is too long or carries script markup.
        """

        if self._busy:
            raise TurnInProgressError()
        message = (user_input or "").strip()
        if not message:
            return None
        self._check_input(message)

        self._busy = True
        turn_id = f"turn-{uuid.uuid4().hex[:8]}"
        try:
            prior_history = [entry.as_prompt_message() for entry in self._state.history]
            self._append("user", message)
            building = is_building_analysis_request(message)
            self._bus.publish(TurnStarted(turn_id=turn_id, mode="building" if building else "chat"))
            try:
                if building:
                    reply = await self._run_building_turn(turn_id, message, context)
                else:
                    reply = await self._run_chat_turn(turn_id, message, context, prior_history)
            except asyncio.CancelledError:
                LOGGER.info("Turn %s cancelled", turn_id)
                self._abandon_analysis()
                raise
            except Exception as exc:
                LOGGER.error("Turn %s failed: %s", turn_id, exc, exc_info=True)
                self._abandon_analysis()
                self._bus.publish(TurnFailed(turn_id=turn_id, error=f"{type(exc).__name__}: {exc}"))
                return self._append("assistant", APOLOGY_MESSAGE, turn_id=turn_id, failed=True)
            self._bus.publish(TurnCompleted(turn_id=turn_id, response_text=reply.content))
            return reply
        finally:
            self._busy = False

    async def _run_chat_turn(
        self,
        turn_id: str,
        message: str,
        context: TurnContext,
        history: list[dict[str, str]],
    ) -> ChatMessage:
        raw = await self._await_backend(self._backend.chat(message, context, history))
        result = process_response(raw, context, diagnostics=self._diagnostics)
        if result.executed_commands:
            self._bus.publish(DirectivesExecuted(turn_id=turn_id, commands=result.executed_commands))
        return self._append(
            "assistant",
            result.cleaned_text,
            turn_id=turn_id,
            executed=len(result.executed_commands),
        )

    async def _run_building_turn(self, turn_id: str, message: str, context: TurnContext) -> ChatMessage:
        self._state.pending_bom = None
        self._set_mode(AnalysisMode.BUILDING_ANALYSIS)
        analysis = await self._await_backend(self._backend.analyze_building(message, context))
        reply = self._append(
            "assistant",
            render_analysis_message(analysis),
            turn_id=turn_id,
            bom_lines=len(analysis.bom),
        )
        if analysis.bom.is_empty:
            LOGGER.info("Building analysis %s produced an empty BOM", turn_id)
            self._set_mode(AnalysisMode.CHAT)
        else:
            self._state.pending_bom = analysis.bom
            self._set_mode(AnalysisMode.BOM_PREVIEW)
            self._bus.publish(BomReady(line_count=len(analysis.bom)))
        return reply

    async def _await_backend(self, awaitable: Any) -> Any:
        if self._turn_timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self._turn_timeout)

    # ------------------------------------------------------------------
    # BOM review
    # ------------------------------------------------------------------

    def add_bom_to_quote(self, context: TurnContext) -> ChatMessage:
        """Add every valid pending BOM line to the quote and return to chat.

        Lines whose SKU or quantity fails validation are dropped and reported
        to the diagnostics sink; unknown SKUs are skipped. If the quote
        collaborator raises, lines already added stay, the BOM is discarded
        and an apology is returned instead of the confirmation.
        """

        if self._busy:
            raise TurnInProgressError()
        bom = self._state.pending_bom
        if bom is None:
            raise NoPendingBomError()

        commands: list[AddToQuote] = []
        for line in bom.line_items:
            try:
                commands.append(AddToQuote(sku=line.sku, quantity=line.quantity))
            except CommandValidationError as exc:
                report(
                    self._diagnostics,
                    DirectiveDiagnostic(
                        reason=exc.reason,
                        kind=ADD_TO_QUOTE,
                        sku=line.sku,
                        details={"message": str(exc), "source": "bom"},
                    ),
                )
        executor = ActionExecutor(
            build_inventory_lookup(context.inventory),
            context.on_add_to_quote,
            context.on_remove_from_quote,
            diagnostics=self._diagnostics,
        )
        try:
            executed = executor.execute(commands)
        except Exception as exc:
            LOGGER.error("Adding BOM to quote failed: %s", exc, exc_info=True)
            return self._append("assistant", APOLOGY_MESSAGE, failed=True)
        finally:
            self._set_mode(AnalysisMode.CHAT)
        LOGGER.info("Added %d of %d BOM line(s) to the quote", len(executed), len(bom))
        return self._append("assistant", render_bom_confirmation(len(executed)), bom_added=len(executed))

    def dismiss_bom(self) -> None:
        """Discard the pending BOM and return to chat."""

        if self._busy:
            raise TurnInProgressError()
        if self._state.pending_bom is None and self._state.analysis_mode is AnalysisMode.CHAT:
            return
        self._set_mode(AnalysisMode.CHAT)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_input(self, message: str) -> None:
        if len(message) > self._max_input_chars:
            raise InvalidInputError(
                message=f"Message exceeds {self._max_input_chars} characters",
                details={"length": len(message), "limit": self._max_input_chars},
            )
        if contains_script_markup(message):
            raise InvalidInputError(message="Message contains script markup", details={"reason": "script_markup"})

    def _append(self, role: str, content: str, **metadata: Any) -> ChatMessage:
        entry = ChatMessage(role=role, content=content, metadata=metadata)  # type: ignore[arg-type]
        self._state.history.append(entry)
        return entry

    def _abandon_analysis(self) -> None:
        # A pending BOM from an earlier analysis survives a failed chat turn.
        if self._state.analysis_mode is AnalysisMode.BUILDING_ANALYSIS:
            self._set_mode(AnalysisMode.CHAT)

    def _set_mode(self, mode: AnalysisMode) -> None:
        previous = self._state.analysis_mode
        if mode is AnalysisMode.CHAT:
            self._state.reset_to_chat()
        else:
            self._state.analysis_mode = mode
        if previous is not mode:
            LOGGER.debug("Analysis mode %s -> %s", previous.value, mode.value)
            self._bus.publish(AnalysisModeChanged(previous=previous.value, current=mode.value))


def render_analysis_message(analysis: BuildingAnalysis) -> str:
    """Format a building analysis as the markdown summary shown in chat."""

    building = analysis.building_spec
    lines = [
        "## Building Analysis Complete",
        "",
        f"**Building Type:** {building.get('type', 'N/A')}",
        f"**Floors:** {building.get('floors', 'N/A')}",
        f"**Users:** {building.get('users', 'N/A')}",
        f"**Entrances:** {building.get('entrances', 'N/A')}",
    ]
    access = analysis.infrastructure.get("access_control")
    if isinstance(access, dict):
        lines += [
            "",
            "### Infrastructure Requirements",
            f"- **Access Control:** {access.get('readers', 0)} readers, {access.get('controllers', 0)} controllers",
        ]
    if analysis.bom.is_empty:
        lines += ["", "No matching inventory items were recommended."]
        return "\n".join(lines)

    lines += ["", "### Recommended Items"]
    for item in analysis.bom.line_items:
        suffix = f" - {item.reasoning}" if item.reasoning else ""
        lines.append(f"- {item.description} ({item.quantity} units){suffix}")
    total = analysis.bom.estimated_total
    lines += [
        "",
        f"### Estimated Cost: {total if total is not None else 'TBD'}",
        "",
        "Use `/bom add` to add these items to your quote or `/bom dismiss` to discard them.",
    ]
    return "\n".join(lines)


def render_bom_confirmation(count: int) -> str:
    return f"✅ Added {count} items from the BOM to your quote!"


