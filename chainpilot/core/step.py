"""
Steps — Units of work in a workflow pipeline.

  1. BaseStep      — Subclass and implement `run(ctx, state)`.
  2. FunctionalStep — Wraps a plain function (sync or async). Parameters
     are filled from the pipeline state by name; a parameter called
     `ctx` receives the WorkflowContext. A returned dict is merged into
     the state, any other value is stored under the step's name.

Usage:
    async def fetch_price(ctx, url: str) -> dict:
        ...
        return {"price": price}

    step = FunctionalStep(fetch_price)
"""

from __future__ import annotations

import abc
import asyncio
import inspect
import time
from typing import Any, Callable

import structlog
from opentelemetry import trace

from chainpilot.core.context import WorkflowContext

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

CONTEXT_PARAM = "ctx"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  BaseStep — The core step contract
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class BaseStep(abc.ABC):
    """
    A named pipeline step.

    The Pipeline calls `invoke()` (which wraps `run()` with tracing and
    logging), never `run()` directly. A `best_effort` step may fail
    without failing the pipeline.
    """

    def __init__(self, name: str, *, description: str = "", best_effort: bool = False):
        self.name = name
        self.description = description
        self.best_effort = best_effort

    @abc.abstractmethod
    async def run(self, ctx: WorkflowContext, state: dict[str, Any]) -> dict[str, Any]:
        ...

    async def invoke(self, ctx: WorkflowContext, state: dict[str, Any]) -> dict[str, Any]:
        """Run the step inside a span, logging start, completion and failure."""
        with tracer.start_as_current_span(
            "step.invoke",
            attributes={
                "step_name": self.name,
                "step_type": self.__class__.__name__,
                "execution_id": ctx.execution_id,
                "best_effort": self.best_effort,
            },
        ) as span:
            step_ctx = ctx.for_step(self.name)
            step_ctx.logger.debug("step_started")

            start = time.monotonic()
            try:
                result = await self.run(step_ctx, state)
            except Exception as exc:
                elapsed = round((time.monotonic() - start) * 1000, 2)
                span.record_exception(exc)
                span.set_status(trace.StatusCode.ERROR, str(exc))
                span.set_attribute("duration_ms", elapsed)
                raise

            elapsed = round((time.monotonic() - start) * 1000, 2)
            span.set_attribute("duration_ms", elapsed)
            step_ctx.logger.debug("step_finished", duration_ms=elapsed)
            return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  FunctionalStep — Wraps a plain function as a step
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class FunctionalStep(BaseStep):
    """Wraps a plain function (sync or async) as a BaseStep."""

    def __init__(
        self,
        func: Callable[..., Any],
        *,
        name: str | None = None,
        description: str = "",
        best_effort: bool = False,
    ):
        super().__init__(
            name or func.__name__,
            description=description or func.__doc__ or "",
            best_effort=best_effort,
        )
        self._func = func
        self._is_async = asyncio.iscoroutinefunction(func)

        sig = inspect.signature(func)
        self._params: dict[str, inspect.Parameter] = {}
        self._has_var_keyword = False
        for param_name, param in sig.parameters.items():
            if param.kind == inspect.Parameter.VAR_KEYWORD:
                self._has_var_keyword = True
            else:
                self._params[param_name] = param

    def _build_kwargs(self, ctx: WorkflowContext, state: dict[str, Any]) -> dict[str, Any]:
        kwargs: dict[str, Any] = {}
        if self._has_var_keyword:
            kwargs.update(state)

        for param_name, param in self._params.items():
            if param_name == CONTEXT_PARAM:
                kwargs[param_name] = ctx
            elif param_name in state:
                kwargs[param_name] = state[param_name]
            elif param.default is inspect.Parameter.empty:
                raise KeyError(
                    f"Step '{self.name}' needs '{param_name}' but it is not in the pipeline state"
                )
        return kwargs

    async def run(self, ctx: WorkflowContext, state: dict[str, Any]) -> dict[str, Any]:
        kwargs = self._build_kwargs(ctx, state)
        if self._is_async:
            result = await self._func(**kwargs)
        else:
            result = self._func(**kwargs)

        if result is None:
            return {}
        if isinstance(result, dict):
            return result
        return {self.name: result}


def step(
    func: Callable[..., Any] | None = None,
    *,
    name: str | None = None,
    best_effort: bool = False,
) -> FunctionalStep | Callable[..., FunctionalStep]:
    """
    Decorator shorthand for FunctionalStep.

    Usage:
        @step
        def decide(liquidatable: bool) -> dict: ...

        @step(best_effort=True)
        async def notify(ctx, message: str) -> None: ...
    """
    if func is not None:
        return FunctionalStep(func, name=name, best_effort=best_effort)

    def wrapper(f: Callable[..., Any]) -> FunctionalStep:
        return FunctionalStep(f, name=name, best_effort=best_effort)

    return wrapper
