"""
Pipeline — Sequential step execution for workflow handlers.

A handler builds a pipeline of read → compute → write → notify steps and
executes it against a WorkflowContext:
  - Steps run strictly in order, each seeing the accumulated state
  - The first failing step aborts the run and its exception propagates
  - Steps added with `.notify()` are best-effort: failures are logged
    and recorded, never propagated

Usage:
    from chainpilot.core import PipelineBuilder

    pipeline = (
        PipelineBuilder("price_alert")
        .step(fetch_price)
        .notify(send_price_alert)
        .build()
    )
    result = await pipeline.execute(ctx, initial_input={"url": cfg.url})
    return result.output
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Union

import structlog
from opentelemetry import trace

from chainpilot.core.context import WorkflowContext
from chainpilot.core.step import BaseStep, FunctionalStep

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

RESULT_KEY = "result"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Pipeline Result
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass
class PipelineExecutionResult:
    """
    Structured result from a Pipeline execution.

    Attributes:
        execution_id: Correlation ID for this run.
        state: Final accumulated pipeline state.
        steps_completed: Names of steps that ran successfully.
        steps_failed: Names of best-effort steps that failed.
        duration_ms: Total pipeline execution time.
        success: False once a required step has failed.
        error: Message of the failing step's exception.
    """

    execution_id: str = ""
    state: dict[str, Any] = field(default_factory=dict)
    steps_completed: list[str] = field(default_factory=list)
    steps_failed: list[str] = field(default_factory=list)
    duration_ms: float = 0.0
    success: bool = True
    error: str | None = None

    @property
    def output(self) -> Any:
        """The value a step stored under `result`, if any."""
        return self.state.get(RESULT_KEY)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Pipeline — Sequential execution engine
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class Pipeline:
    """A named, ordered sequence of steps."""

    def __init__(self, name: str, steps: list[BaseStep]):
        self.name = name
        self.steps = steps

    async def execute(
        self,
        ctx: WorkflowContext,
        *,
        initial_input: dict[str, Any] | None = None,
    ) -> PipelineExecutionResult:
        """
        Execute every step in order.

        Raises:
            Exception: Whatever the first failing non-best-effort step raised.
        """
        if initial_input:
            ctx.update_state(initial_input)

        result = PipelineExecutionResult(execution_id=ctx.execution_id)
        start = time.monotonic()

        with tracer.start_as_current_span(
            "pipeline.execute",
            attributes={
                "pipeline_name": self.name,
                "execution_id": ctx.execution_id,
                "step_count": len(self.steps),
            },
        ) as span:
            ctx.logger.info(
                "pipeline_started",
                pipeline=self.name,
                steps=[s.name for s in self.steps],
            )

            current = None
            try:
                for current in self.steps:
                    try:
                        step_output = await current.invoke(ctx, ctx.state)
                    except Exception as exc:
                        if not current.best_effort:
                            raise
                        result.steps_failed.append(current.name)
                        ctx.logger.warning(
                            "notification_failed",
                            pipeline=self.name,
                            step=current.name,
                            error=str(exc),
                            error_type=type(exc).__name__,
                        )
                        continue

                    if step_output:
                        ctx.update_state(step_output)
                    result.steps_completed.append(current.name)

            except Exception as exc:
                result.success = False
                result.error = str(exc)
                span.record_exception(exc)
                span.set_status(trace.StatusCode.ERROR, str(exc))
                ctx.logger.error(
                    "pipeline_failed",
                    pipeline=self.name,
                    step=current.name if current else "unknown",
                    error=str(exc),
                )
                raise

            finally:
                elapsed = round((time.monotonic() - start) * 1000, 2)
                result.duration_ms = elapsed
                result.state = dict(ctx.state)
                span.set_attribute("duration_ms", elapsed)

            ctx.logger.info(
                "pipeline_completed",
                pipeline=self.name,
                duration_ms=result.duration_ms,
                steps_completed=result.steps_completed,
                steps_failed=result.steps_failed,
            )
        return result

    def __repr__(self) -> str:
        step_names = ", ".join(s.name for s in self.steps)
        return f"<Pipeline {self.name!r} steps=[{step_names}]>"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  PipelineBuilder — Fluent API for pipeline construction
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


StepLike = Union[BaseStep, Callable[..., Any]]


class PipelineBuilder:
    """
    Fluent builder for Pipeline instances.

    Usage:
        pipeline = (
            PipelineBuilder("liquidation_watch")
            .step(fetch_prices)
            .step(check_position)
            .step(decide_action)
            .step(submit_action)
            .notify(send_update)
            .build()
        )
    """

    def __init__(self, name: str):
        self.name = name
        self._steps: list[BaseStep] = []

    def step(self, step_like: StepLike) -> PipelineBuilder:
        """Add a required step. Plain functions are wrapped."""
        self._steps.append(_wrap_step(step_like))
        return self

    def notify(self, step_like: StepLike) -> PipelineBuilder:
        """Add a best-effort step whose failure never fails the run."""
        wrapped = _wrap_step(step_like)
        wrapped.best_effort = True
        self._steps.append(wrapped)
        return self

    def build(self) -> Pipeline:
        if not self._steps:
            raise ValueError(f"Pipeline '{self.name}' has no steps.")
        return Pipeline(self.name, list(self._steps))

    def __repr__(self) -> str:
        return f"<PipelineBuilder {self.name!r} steps={len(self._steps)}>"


def _wrap_step(step_like: StepLike) -> BaseStep:
    if isinstance(step_like, BaseStep):
        return step_like
    if callable(step_like):
        return FunctionalStep(step_like)
    raise TypeError(f"Cannot use {step_like!r} as a pipeline step")
