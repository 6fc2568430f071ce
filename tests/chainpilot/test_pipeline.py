"""
Tests for chainpilot.core — context, steps and the pipeline engine.

Covers:
  - WorkflowContext: state management, child context, capability lookup
  - FunctionalStep: sync/async wrapping, state injection, result merging
  - Pipeline: sequential execution, fail-fast, best-effort notify steps
  - PipelineBuilder: build validation, step wrapping
"""

from typing import Any
from unittest.mock import MagicMock

import pytest

from chainpilot.config import PlatformSettings
from chainpilot.connectors.registry import ConnectorRegistry
from chainpilot.core.context import WorkflowContext
from chainpilot.core.pipeline import Pipeline, PipelineBuilder
from chainpilot.core.step import BaseStep, FunctionalStep, step
from chainpilot.errors import ConnectorError, NotificationError, ReadError


def _ctx(**kwargs) -> WorkflowContext:
    defaults = dict(
        workflow_name="test_wf",
        config=MagicMock(),
        connectors=ConnectorRegistry(),
        settings=PlatformSettings(_env_file=None),
    )
    defaults.update(kwargs)
    return WorkflowContext(**defaults)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  WorkflowContext Tests
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestWorkflowContext:
    def test_creation_defaults(self):
        ctx = _ctx()
        assert ctx.execution_id
        assert ctx.state == {}
        assert ctx.metadata == {}
        assert ctx.logger is not None

    def test_get_and_update_state(self):
        ctx = _ctx()
        assert ctx.get("missing") is None
        assert ctx.get("missing", "default") == "default"
        ctx.update_state({"price": "1"})
        assert ctx.get("price") == "1"

    def test_for_step_shares_state(self):
        ctx = _ctx(execution_id="abc")
        child = ctx.for_step("fetch")
        child.update_state({"k": 1})

        assert child.execution_id == "abc"
        assert child.config is ctx.config
        assert ctx.state == {"k": 1}

    def test_elapsed_ms(self):
        assert _ctx().elapsed_ms >= 0

    def test_missing_connector_raises(self):
        with pytest.raises(ConnectorError):
            _ = _ctx().http

    def test_report_without_evm_account_is_unsigned(self):
        registry = ConnectorRegistry()
        evm = MagicMock()
        evm.name = "evm"
        evm.account = None
        registry.register(evm)

        report = _ctx(connectors=registry).report(b"\x01\x02")

        assert report.raw_report == b"\x01\x02"
        assert report.signatures == []
        assert len(report.metadata) == 62


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Step Tests
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@pytest.mark.asyncio
class TestFunctionalStep:
    async def test_sync_function_state_injection(self):
        def double(value: int) -> dict:
            return {"doubled": value * 2}

        result = await FunctionalStep(double).invoke(_ctx(), {"value": 21})
        assert result == {"doubled": 42}

    async def test_async_function_receives_ctx(self):
        async def whoami(ctx) -> dict:
            return {"who": ctx.workflow_name}

        assert await FunctionalStep(whoami).invoke(_ctx(), {}) == {"who": "test_wf"}

    async def test_missing_required_param_raises(self):
        def needs(price: str) -> dict:
            return {}

        with pytest.raises(KeyError, match="price"):
            await FunctionalStep(needs).invoke(_ctx(), {})

    async def test_default_param_used_when_absent(self):
        def optional(limit: int = 3) -> dict:
            return {"limit": limit}

        assert await FunctionalStep(optional).invoke(_ctx(), {}) == {"limit": 3}

    async def test_var_keyword_gets_whole_state(self):
        def everything(**state) -> dict:
            return {"keys": sorted(state)}

        result = await FunctionalStep(everything).invoke(_ctx(), {"a": 1, "b": 2})
        assert result == {"keys": ["a", "b"]}

    async def test_non_dict_result_stored_under_name(self):
        def answer() -> int:
            return 42

        assert await FunctionalStep(answer).invoke(_ctx(), {}) == {"answer": 42}

    async def test_none_result_is_empty(self):
        def nothing() -> None:
            return None

        assert await FunctionalStep(nothing).invoke(_ctx(), {}) == {}

    async def test_decorator(self):
        @step(name="renamed", best_effort=True)
        def fn() -> dict:
            return {}

        assert isinstance(fn, FunctionalStep)
        assert fn.name == "renamed"
        assert fn.best_effort


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Pipeline Tests
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class RecordingStep(BaseStep):
    def __init__(self, name: str, calls: list, output: dict | None = None):
        super().__init__(name)
        self.calls = calls
        self.output = output or {}

    async def run(self, ctx: WorkflowContext, state: dict[str, Any]) -> dict[str, Any]:
        self.calls.append(self.name)
        return self.output


@pytest.mark.asyncio
class TestPipeline:
    async def test_steps_run_in_order_and_merge_state(self):
        calls = []
        pipeline = Pipeline(
            "p",
            [
                RecordingStep("a", calls, {"x": 1}),
                RecordingStep("b", calls, {"y": 2}),
            ],
        )

        result = await pipeline.execute(_ctx(), initial_input={"seed": 0})

        assert calls == ["a", "b"]
        assert result.success
        assert result.state == {"seed": 0, "x": 1, "y": 2}
        assert result.steps_completed == ["a", "b"]
        assert result.duration_ms >= 0

    async def test_output_is_result_key(self):
        pipeline = PipelineBuilder("p").step(lambda: {"result": "0xabc"}).build()
        assert (await pipeline.execute(_ctx())).output == "0xabc"

    async def test_failure_aborts_remaining_steps(self):
        calls = []

        def read() -> dict:
            raise ReadError("HTTP request failed with status: 500")

        pipeline = (
            PipelineBuilder("p")
            .step(read)
            .step(RecordingStep("write", calls))
            .notify(RecordingStep("notify", calls))
            .build()
        )

        with pytest.raises(ReadError, match="status: 500"):
            await pipeline.execute(_ctx())
        assert calls == []

    async def test_best_effort_failure_is_swallowed(self):
        calls = []

        async def notify(ctx) -> None:
            raise NotificationError("Telegram down")

        pipeline = (
            PipelineBuilder("p")
            .step(lambda: {"result": "0xhash"})
            .notify(notify)
            .step(RecordingStep("after", calls))
            .build()
        )

        result = await pipeline.execute(_ctx())

        assert result.success
        assert result.output == "0xhash"
        assert result.steps_failed == ["notify"]
        assert calls == ["after"]

    async def test_best_effort_success_recorded(self):
        pipeline = PipelineBuilder("p").notify(lambda: None).build()
        result = await pipeline.execute(_ctx())
        assert result.steps_completed == ["<lambda>"]
        assert result.steps_failed == []


class TestPipelineBuilder:
    def test_empty_build_raises(self):
        with pytest.raises(ValueError):
            PipelineBuilder("empty").build()

    def test_notify_marks_best_effort(self):
        pipeline = PipelineBuilder("p").step(lambda: None).notify(lambda: None).build()
        assert [s.best_effort for s in pipeline.steps] == [False, True]

    def test_base_steps_kept_as_is(self):
        s = RecordingStep("a", [])
        assert PipelineBuilder("p").step(s).build().steps == [s]

    def test_rejects_non_callables(self):
        with pytest.raises(TypeError):
            PipelineBuilder("p").step(42)

    def test_repr(self):
        pipeline = PipelineBuilder("p").step(RecordingStep("a", [])).build()
        assert repr(pipeline) == "<Pipeline 'p' steps=[a]>"
