"""Tests for toolprobe.optimization.hook - the optimization capture side channel."""

from __future__ import annotations

import pytest

from toolprobe.models.config import ProjectConfig
from toolprobe.models.result import ToolInvocationRecord, TranscriptMessage
from toolprobe.optimization.hook import CaptureOptimizationHook, resolve_optimization_hook


class TestResolveOptimizationHook:
    """Test when a hook is attached."""

    def test_disabled_by_default(self):
        assert resolve_optimization_hook(ProjectConfig()) is None

    def test_enabled_without_key(self):
        assert resolve_optimization_hook(ProjectConfig(optimization_enabled=True)) is None

    def test_enabled_with_key(self):
        config = ProjectConfig(optimization_enabled=True, optimizer_api_key="opt")
        assert isinstance(resolve_optimization_hook(config), CaptureOptimizationHook)


class TestCaptureOptimizationHook:
    """Test buffering and draining captures."""

    @pytest.mark.asyncio
    async def test_captures_are_snapshots(self):
        """Later mutation of the record does not change the capture."""
        hook = CaptureOptimizationHook()
        record = ToolInvocationRecord(
            name="support.lookupCustomer",
            arguments={"customerId": "cust-marcus"},
            response={"customer": {"id": "cust-marcus"}},
        )

        await hook.observe(record, [TranscriptMessage("user", "find marcus")])
        record.arguments["customerId"] = "changed"

        assert len(hook) == 1
        capture = hook.drain()[0]
        assert capture.program == "support.lookupCustomer"
        assert capture.input == {"customerId": "cust-marcus"}
        assert capture.error is None
        assert capture.transcript == [{"role": "user", "content": "find marcus"}]
        assert capture.timestamp
        assert len(hook) == 0

    @pytest.mark.asyncio
    async def test_error_invocations_captured(self):
        hook = CaptureOptimizationHook()
        await hook.observe(ToolInvocationRecord(name="t", arguments={}, error="bad"), [])
        assert hook.drain()[0].error == "bad"
