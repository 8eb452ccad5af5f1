"""ToolDispatcher: executes model tool calls against a registry.

Provides ``execute()`` for a single call and ``execute_all()`` for the
calls of one round, returning ``ToolOutputMessage`` records ready to be
appended to history.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from strand.exceptions import ToolExecutionFailed
from strand.models.config import ToolExecutionPolicy
from strand.models.messages import ToolOutputMessage

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from strand.models.messages import ToolCall
    from strand.toolkit.registry import ToolRegistry

logger = logging.getLogger(__name__)


class ToolDispatcher:
    """Resolves tool calls by name and runs them.

    Failures are not retried: a missing tool raises ``ToolNotFound`` and any
    exception from the tool itself is wrapped in ``ToolExecutionFailed``.

    Usage::

        dispatcher = ToolDispatcher(registry)
        output = await dispatcher.execute(ToolCall(id="c1", name="calc", arguments={"expr": "2+2"}))
        print(output.text)
    """

    def __init__(
        self,
        registry: ToolRegistry,
        policy: ToolExecutionPolicy = ToolExecutionPolicy.SEQUENTIAL,
    ) -> None:
        self._registry = registry
        self._policy = policy

    @property
    def policy(self) -> ToolExecutionPolicy:
        return self._policy

    async def execute(self, call: ToolCall) -> ToolOutputMessage:
        """Execute one tool call.

        Raises:
            ToolNotFound: If the registry has no tool named ``call.name``.
            ToolExecutionFailed: If the tool raised.
        """
        tool = self._registry.resolve(call.name)
        logger.debug("Executing tool %s (call %s)", call.name, call.id)
        try:
            chunks = await tool.invoke(call.arguments_json.encode("utf-8"))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.debug("Tool %s failed: %s", call.name, exc, exc_info=True)
            raise ToolExecutionFailed(call.name, exc) from exc
        return ToolOutputMessage(id=call.id, tool_name=call.name, chunks=tuple(chunks))

    async def execute_all(
        self,
        calls: Sequence[ToolCall],
        on_output: Callable[[ToolOutputMessage], None] | None = None,
    ) -> list[ToolOutputMessage]:
        """Execute the tool calls of one round.

        Outputs are returned, and passed to ``on_output``, in call order
        under either policy. Sequentially, each output is reported as soon
        as its call finishes, so a later failure leaves earlier outputs
        reported. Under ``CONCURRENT`` nothing is reported if any call
        fails; the first failure in call order is raised once all settle.
        """
        if self._policy == ToolExecutionPolicy.CONCURRENT:
            results = await asyncio.gather(
                *(self.execute(call) for call in calls), return_exceptions=True
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result
            outputs = list(results)
            if on_output is not None:
                for output in outputs:
                    on_output(output)
            return outputs  # type: ignore[return-value]

        outputs = []
        for call in calls:
            output = await self.execute(call)
            if on_output is not None:
                on_output(output)
            outputs.append(output)
        return outputs
