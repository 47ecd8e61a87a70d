"""
Per-node lifecycle: load_state → probe → perform → (rollback).

ActionNode enforces the probe/run state machine for one action and turns
raised exceptions into NodeResult records. run_sequence is a small
linear driver with automatic rollback; graph ordering and parallelism
belong to the caller.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from shared.observability import ExecutionObservability, get_observability

from .base import Action
from .context import Runtime, StateRegistry
from .errors import ActionError, ActionFailed
from .schemas import (
    ActionOutput,
    ExecutionReport,
    ExecutionStatus,
    NodeResult,
    NodeStatus,
    Operation,
    Probe,
)

logger = logging.getLogger(__name__)


class InvalidTransition(RuntimeError):
    """Raised when a lifecycle step is requested from the wrong state."""


async def load_states(actions: Iterable[Action], registry: StateRegistry) -> None:
    """Run every action kind's load_state hook once, then seal the registry.

    Args:
        actions: All actions that will execute in this run
        registry: Registry to populate
    """
    seen: set[type] = set()
    for action in actions:
        kind = type(action)
        if kind in seen:
            continue
        seen.add(kind)
        logger.debug("Loading shared state for %s", kind.__name__)
        await action.load_state(registry)
    registry.seal()


class ActionNode:
    """One action moving through the probe/run state machine.

    States: UNPROBED → PROBED → SKIPPED | SUCCEEDED | FAILED, and from
    SUCCEEDED → ROLLED_BACK | ROLLBACK_FAILED | ROLLBACK_UNSUPPORTED.
    """

    def __init__(self, action: Action, observability: Optional[ExecutionObservability] = None) -> None:
        self.action = action
        self.status = NodeStatus.UNPROBED
        self.last_probe: Optional[Probe] = None
        self.observability = observability or get_observability()

    @property
    def name(self) -> str:
        return self.action.display_name()

    def _require(self, operation: str, *allowed: NodeStatus) -> None:
        if self.status not in allowed:
            raise InvalidTransition(
                f"Cannot {operation} {self.name!r} from state {self.status.value}"
            )

    async def probe(self, ctx: Runtime) -> Probe:
        """Probe the action; allowed again while the node is still PROBED.

        Raises:
            ActionError: Propagated from the action's probe
        """
        self._require("probe", NodeStatus.UNPROBED, NodeStatus.PROBED)
        with self.observability.trace_operation(
            "action.probe", tags={"action": type(self.action).__name__}
        ) as span:
            probe = await self.action.probe(ctx)
            span.set_tag("needs_run", probe.needs_run)
            span.set_tag("can_rollback", probe.can_rollback)
        self.last_probe = probe
        self.status = NodeStatus.PROBED
        logger.debug(
            "Probed %s: needs_run=%s can_rollback=%s", self.name, probe.needs_run, probe.can_rollback
        )
        return probe

    async def perform(self, ctx: Runtime) -> NodeResult:
        """Run the forward direction if the last probe asked for it."""
        self._require("perform", NodeStatus.PROBED)
        if not self.last_probe.needs_run:
            self.status = NodeStatus.SKIPPED
            logger.info("Skipping %s: already satisfied", self.name)
            return self._result(Operation.PERFORM, 0.0)

        start = time.time()
        try:
            with self.observability.trace_operation(
                "action.perform", tags={"action": type(self.action).__name__}
            ):
                output = await self.action.run(ctx, Operation.PERFORM)
        except Exception as exc:
            error = self._as_action_error(exc)
            self.status = NodeStatus.FAILED
            logger.error("Action %s failed: %s", self.name, error.summary)
            return self._result(Operation.PERFORM, time.time() - start, error=error)
        finally:
            self._emit_duration(Operation.PERFORM, start)

        if output is not None:
            ctx.outputs.put(self.action.id, output)
        self.status = NodeStatus.SUCCEEDED
        logger.info("Action %s completed in %.2fs", self.name, time.time() - start)
        return self._result(Operation.PERFORM, time.time() - start, output=output)

    async def rollback(self, ctx: Runtime) -> NodeResult:
        """Undo a succeeded perform, unless the probe said it cannot be undone."""
        self._require("rollback", NodeStatus.SUCCEEDED)
        if not self.last_probe.can_rollback:
            self.status = NodeStatus.ROLLBACK_UNSUPPORTED
            exc = self.action.unsupported(Operation.ROLLBACK)
            logger.warning("Rollback of %s not supported", self.name)
            return self._result(Operation.ROLLBACK, 0.0, error=exc)

        start = time.time()
        try:
            with self.observability.trace_operation(
                "action.rollback", tags={"action": type(self.action).__name__}
            ):
                await self.action.run(ctx, Operation.ROLLBACK)
        except Exception as exc:
            error = self._as_action_error(exc)
            self.status = NodeStatus.ROLLBACK_FAILED
            logger.error("Rollback of %s failed: %s", self.name, error.summary)
            return self._result(Operation.ROLLBACK, time.time() - start, error=error)
        finally:
            self._emit_duration(Operation.ROLLBACK, start)

        self.status = NodeStatus.ROLLED_BACK
        logger.info("Rolled back %s", self.name)
        return self._result(Operation.ROLLBACK, time.time() - start)

    def fail(self, exc: Exception) -> NodeResult:
        """Mark the node FAILED after a probe error so it is never run."""
        self._require("fail", NodeStatus.UNPROBED, NodeStatus.PROBED)
        error = self._as_action_error(exc)
        self.status = NodeStatus.FAILED
        logger.error("Probe of %s failed: %s", self.name, error.summary)
        return self._result(Operation.PERFORM, 0.0, error=error)

    def _as_action_error(self, exc: Exception) -> ActionError:
        """Return ``exc`` if it is an ActionError, else wrap it in ActionFailed."""
        if isinstance(exc, ActionError):
            return exc
        logger.exception("Unexpected error from %s", self.name)
        return ActionFailed(f"{self.name} raised {type(exc).__name__}: {exc}", repr(exc))

    def _emit_duration(self, operation: Operation, start: float) -> None:
        self.observability.emit_metric(
            "action.duration_ms",
            (time.time() - start) * 1000,
            {"action": type(self.action).__name__, "operation": operation.value},
        )

    def _result(
        self,
        operation: Operation,
        duration: float,
        output: Optional[ActionOutput] = None,
        error: Optional[ActionError] = None,
    ) -> NodeResult:
        return NodeResult(
            action_id=self.action.id,
            display_name=self.name,
            operation=operation,
            status=self.status,
            output=output,
            error_kind=error.kind if error else None,
            error_message=error.summary if error else None,
            error_detail=error.detail if error else None,
            retryable=error.retryable if error else False,
            duration_seconds=duration,
        )


async def run_sequence(
    nodes: Sequence[ActionNode],
    ctx: Runtime,
    auto_rollback: bool = True,
) -> ExecutionReport:
    """Probe and perform nodes in the given order.

    The order must already respect data dependencies. On the first failure
    the already-succeeded nodes are rolled back in reverse order.

    Args:
        nodes: Nodes in dependency order
        ctx: Run context (shared state must already be loaded)
        auto_rollback: Whether to roll back on failure

    Returns:
        ExecutionReport describing every step taken
    """
    started_at = datetime.now(timezone.utc)
    start = time.time()
    results: List[NodeResult] = []
    rollback_results: List[NodeResult] = []
    failed: Optional[ActionNode] = None

    for node in nodes:
        try:
            await node.probe(ctx)
        except InvalidTransition:
            raise
        except Exception as exc:
            results.append(node.fail(exc))
            failed = node
            break

        result = await node.perform(ctx)
        results.append(result)
        if result.status == NodeStatus.FAILED:
            failed = node
            break

    if failed is None:
        status = ExecutionStatus.SUCCESS
    elif auto_rollback:
        logger.warning("Execution failed at %s, rolling back", failed.name)
        for node in reversed(nodes):
            if node.status == NodeStatus.SUCCEEDED:
                rollback_results.append(await node.rollback(ctx))
        if all(r.status == NodeStatus.ROLLED_BACK for r in rollback_results):
            status = ExecutionStatus.ROLLED_BACK
        else:
            status = ExecutionStatus.FAILED
    else:
        status = ExecutionStatus.FAILED

    report = ExecutionReport(
        status=status,
        results=results,
        rollback_results=rollback_results,
        failed_action=failed.name if failed else None,
        duration_seconds=time.time() - start,
        started_at=started_at,
    )
    logger.info("Execution finished: %s in %.2fs", status.value, report.duration_seconds)
    return report
