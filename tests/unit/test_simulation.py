"""Unit tests for the frame loop and its controls."""

import numpy as np
import pytest

from fluidlite import Command, Emitter, Frame, LoopState, MoveEmitter, Renderer, SimParams, SimulationLoop
from fluidlite.params import SPEED_MAX, SPEED_MIN
from fluidlite.themes import THEMES


@pytest.fixture
def loop():
    return SimulationLoop(32, 16)


class TestStateMachine:

    def test_starts_running(self, loop):
        assert loop.state is LoopState.RUNNING
        metrics = loop.tick()
        assert metrics["step"] == 1 and metrics["frame"] == 1

    def test_pause_blocks_steps(self, loop):
        loop.apply(Command.TOGGLE_PAUSE)
        assert loop.state is LoopState.PAUSED
        assert loop.tick() is None
        assert loop.steps == 0
        assert loop.frame_count == 1

    def test_step_once_while_paused(self, loop):
        loop.apply(Command.TOGGLE_PAUSE)
        loop.apply(Command.STEP_ONCE)
        assert loop.state is LoopState.STEP_PENDING

        assert loop.tick() is not None
        assert loop.state is LoopState.PAUSED
        assert loop.tick() is None
        assert loop.steps == 1

    def test_step_once_while_running_is_ignored(self, loop):
        loop.apply(Command.STEP_ONCE)
        assert loop.state is LoopState.RUNNING
        assert loop.params.step_pending is False

    def test_unpause_drops_pending_step(self, loop):
        loop.apply(Command.TOGGLE_PAUSE)
        loop.apply(Command.STEP_ONCE)
        loop.apply(Command.TOGGLE_PAUSE)
        assert loop.state is LoopState.RUNNING
        assert loop.params.step_pending is False

    def test_unknown_command(self, loop):
        with pytest.raises(ValueError):
            loop.apply("explode")


class TestCommands:

    def test_toggles(self, loop):
        loop.apply(Command.TOGGLE_VORTICITY)
        assert loop.params.vorticity is False
        loop.apply(Command.TOGGLE_DEBUG)
        assert loop.params.debug is True
        loop.apply(Command.TOGGLE_CONTINUOUS_EMIT)
        assert loop.emitter.continuous is True

    def test_theme_cycles(self, loop):
        names = []
        for _ in range(len(THEMES) + 1):
            names.append(loop.theme.name)
            loop.apply(Command.NEXT_THEME)
        assert names == ["Amber", "Ice", "Mono", "Amber"]

    def test_speed_changes_dt(self, loop):
        loop.apply(Command.SPEED_UP)
        assert loop.params.speed == pytest.approx(1.25)
        assert loop.tick()["dt"] == pytest.approx(loop.params.dt * 1.25)

    def test_speed_is_clamped(self, loop):
        for _ in range(50):
            loop.apply(Command.SPEED_UP)
        assert loop.params.speed == SPEED_MAX
        for _ in range(100):
            loop.apply(Command.SPEED_DOWN)
        assert loop.params.speed == SPEED_MIN

    def test_move_emitter_clamps(self, loop):
        loop.apply(MoveEmitter(100.0, -100.0))
        assert loop.emitter.position == (31.0, 0.0)

    def test_emitter_is_clamped_on_creation(self):
        loop = SimulationLoop(16, 8, emitter=Emitter(50.0, -2.0))
        assert loop.emitter.position == (15.0, 0.0)


class TestInjection:

    def test_inject_is_queued_until_tick(self, loop):
        loop.apply(Command.INJECT_ONCE)
        assert loop.field.total_density() == 0.0
        assert loop.pulses_pending == 1
        loop.tick()
        assert loop.pulses_pending == 0
        assert loop.field.total_density() > 0.0

    def test_inject_lands_while_paused(self, loop):
        loop.apply(Command.TOGGLE_PAUSE)
        loop.apply(Command.INJECT_ONCE)
        loop.apply(Command.INJECT_ONCE)
        assert loop.tick() is None
        assert loop.field.total_density() == pytest.approx(2 * loop.emitter.strength)

    def test_continuous_emission_accumulates(self, loop):
        loop.apply(Command.TOGGLE_CONTINUOUS_EMIT)
        loop.tick()
        first = loop.field.total_density()
        loop.tick()
        assert loop.field.total_density() > first

    def test_continuous_emission_waits_while_paused(self, loop):
        loop.apply(Command.TOGGLE_CONTINUOUS_EMIT)
        loop.apply(Command.TOGGLE_PAUSE)
        loop.tick()
        assert loop.field.total_density() == 0.0


class TestReset:

    def test_reset_clears_field(self, loop, is_blank):
        loop.apply(Command.INJECT_ONCE)
        loop.tick()
        loop.apply(Command.RESET)
        assert is_blank(loop.field)
        assert loop.steps == 0

    def test_reset_reseeds_ring(self):
        loop = SimulationLoop(48, 24, seed_ring=True)
        start = loop.field.density.copy()
        assert start.sum() > 0.0
        loop.tick()
        loop.apply(Command.RESET)
        assert np.array_equal(loop.field.density, start)

    def test_random_directions_replay_after_reset(self):
        loop = SimulationLoop(32, 16, seed=7, random_direction=True)

        def run():
            for _ in range(3):
                loop.apply(Command.INJECT_ONCE)
                loop.tick()
            return loop.field.u.copy()

        first = run()
        loop.apply(Command.RESET)
        second = run()
        assert np.array_equal(first, second)


class TestFrames:

    def test_frame(self, loop):
        loop.apply(Command.INJECT_ONCE)
        frame = loop.frame(Renderer(), cols=16, rows=4)
        assert isinstance(frame, Frame)
        assert (frame.rows, frame.cols) == (4, 16)
        assert loop.frame_count == 1

    def test_debug_frame(self, loop):
        loop.apply(Command.TOGGLE_DEBUG)
        assert loop.frame(Renderer(), cols=16, rows=4).debug

    def test_stats(self, loop):
        loop.tick()
        stats = loop.stats()
        assert stats["frame"] == 1
        assert stats["state"] == "running"
        assert stats["theme"] == "Amber"
        assert stats["dt"] == pytest.approx(SimParams().dt)
        assert stats["emitter"] == (16.0, 8.0)
