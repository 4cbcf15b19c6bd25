"""
Tests for the simulation dashboard.
"""

import pytest
from rich.layout import Layout

from simio.cli.dashboard import (
    ACTIVE_FAULT_TICKS_MAX,
    FAULT_LOG_LEN_MAX,
    FILE_FAULT_SYMBOL,
    DashboardState,
    fault_symbol,
    render,
    run_dashboard,
)
from simio.dst import FaultConfig, SimIO
from simio.faults import FaultKind
from simio.pipeline import Pipeline


class TestDashboardState:
    """Tests for what the dashboard shows."""

    def test_fault_symbols(self):
        """Test file faults share one symbol."""
        assert fault_symbol(FaultKind.FILE_WRITE) == FILE_FAULT_SYMBOL
        assert fault_symbol(FaultKind.FILE_SIZE_EXCEEDED) == FILE_FAULT_SYMBOL
        assert fault_symbol(FaultKind.BROKER_READ) != FILE_FAULT_SYMBOL

    def test_status_numbering(self):
        """Test status lines are numbered in order."""
        state = DashboardState()

        state.add_status("first", "second")

        assert list(state.status_log) == ["[0] first", "[1] second"]

    def test_fault_log_is_bounded(self):
        """Test the fault log keeps only the newest entries."""
        state = DashboardState()

        for _ in range(FAULT_LOG_LEN_MAX + 5):
            state.add_fault(FaultKind.KV_READ)

        assert len(state.fault_log) == FAULT_LOG_LEN_MAX

    def test_active_faults_expire(self):
        """Test active faults drop out after enough ticks."""
        state = DashboardState()
        state.add_fault(FaultKind.BROKER_READ)

        for _ in range(ACTIVE_FAULT_TICKS_MAX - 1):
            state.tick()
        assert len(state.active_faults) == 1

        state.tick()
        assert len(state.active_faults) == 0


class TestRender:
    """Tests for drawing the screen."""

    def test_render_without_death(self, quiet_config, settings):
        """Test the layout has no death panel while running."""
        io = SimIO(quiet_config, file_opener=None)

        layout = render(DashboardState(), io, Pipeline(io, settings))

        assert isinstance(layout, Layout)
        with pytest.raises(KeyError):
            layout["death"]

    def test_render_with_death(self, quiet_config, settings):
        """Test the death reason gets its own panel."""
        io = SimIO(quiet_config, file_opener=None)
        state = DashboardState(death_reason="read_message failed after 6 attempts")

        layout = render(state, io, Pipeline(io, settings))

        assert layout["death"] is not None


class TestRunDashboard:
    """Tests for driving the pipeline under the dashboard."""

    @pytest.mark.asyncio
    async def test_runs_iterations(self, quiet_config, settings):
        """Test the dashboard steps the pipeline and logs status."""
        io = SimIO(quiet_config, file_opener=None)
        pipeline = Pipeline(io, settings)

        state = await run_dashboard(io, pipeline, iterations=3, step_interval_secs=0.0, tick_secs=0.0)

        assert pipeline.iteration == 3
        assert state.death_reason is None
        assert state.status_counter == 3 + 3 * 3

    @pytest.mark.asyncio
    async def test_records_death(self, quiet_config, settings):
        """Test a fatal error ends the run and is shown."""
        io = SimIO(quiet_config.with_fault(FaultConfig(FaultKind.BROKER_READ, 1.0)), file_opener=None)
        pipeline = Pipeline(io, settings)

        state = await run_dashboard(io, pipeline, iterations=3, step_interval_secs=0.0, tick_secs=0.0)

        assert state.death_reason is not None
        assert list(state.fault_log) == [FaultKind.BROKER_READ.describe()] * 6

    @pytest.mark.asyncio
    async def test_failed_write_is_logged_as_failure(self, quiet_config, settings):
        """Test a step whose write failed does not claim the output was written."""
        io = SimIO(quiet_config.with_fault(FaultConfig(FaultKind.FILE_WRITE, 1.0)), file_opener=None)
        pipeline = Pipeline(io, settings)

        state = await run_dashboard(io, pipeline, iterations=2, step_interval_secs=0.0, tick_secs=0.0)

        statuses = [line.split("] ", 1)[1] for line in state.status_log]
        assert state.death_reason is None
        assert statuses.count("Failed to write output to file") == 2
        assert "Wrote output to file" not in statuses
