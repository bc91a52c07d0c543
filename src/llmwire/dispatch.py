"""
Tool dispatch and the single-exchange round-trip step.

A conversation with tools alternates between sending the chat and answering
the tool calls the model makes:

    >>> outcome = step(provider, chat, transport)
    >>> while isinstance(outcome, ToolCallStep):
    ...     outcome = step(provider, outcome.resolve(registry), transport)
    >>> print(outcome.turn.text)

The loop has no iteration limit; bounding it is up to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple, Union

from .chat import Chat
from .exceptions import ToolError, ToolFailure, ToolNotFoundError
from .http import Transport
from .providers.base import Provider
from .tools.registry import ToolRegistry
from .types import ToolCall, ToolResult, Turn

logger = logging.getLogger(__name__)


def dispatch(calls: Sequence[ToolCall], registry: ToolRegistry) -> List[ToolResult]:
    """
    Run the handlers for `calls` strictly in order.

    Returns:
        One ToolResult per call, in call order.

    Raises:
        ToolError: Wrapping the first ToolFailure. Calls after the failing one
            are not run, and results of earlier calls are discarded.
    """
    results: List[ToolResult] = []
    for call in calls:
        handler = registry.get(call.name)
        try:
            if handler is None:
                raise ToolNotFoundError(call.name)
            output = handler.invoke(call.arguments)
        except ToolFailure as failure:
            logger.warning("Tool call %s (%s) failed: %s", call.id, call.name, failure)
            raise ToolError(failure) from failure
        logger.debug("Tool call %s (%s) succeeded", call.id, call.name)
        results.append(ToolResult(id=call.id, name=call.name, output=output))
    return results


@dataclass(frozen=True)
class Done:
    """The model answered without calling tools."""

    chat: Chat
    turn: Turn


@dataclass(frozen=True)
class ToolCallStep:
    """The model requested tool calls; results must be folded in before the next step."""

    chat: Chat
    turn: Turn
    calls: Tuple[ToolCall, ...]

    def resolve(self, registry: ToolRegistry) -> Chat:
        """Dispatch the calls against `registry` and fold the results into the chat."""
        return self.with_results(dispatch(self.calls, registry))

    def with_results(self, results: Iterable[ToolResult]) -> Chat:
        """Fold precomputed results into the chat."""
        return self.chat.tool_results(results)


Step = Union[Done, ToolCallStep]


def step(provider: Provider, chat: Chat, transport: Transport) -> Step:
    """
    Send `chat` once through `transport` and fold the reply into it.

    Errors from encoding, the transport, and decoding propagate unchanged.
    """
    request = provider.encode(chat)
    response = transport(request)
    turn = provider.decode(response, chat.extension)
    updated = chat.append_turn(turn)
    if turn.has_tool_calls:
        return ToolCallStep(chat=updated, turn=turn, calls=tuple(turn.tool_calls))
    return Done(chat=updated, turn=turn)


__all__ = ["dispatch", "step", "Done", "ToolCallStep", "Step"]
