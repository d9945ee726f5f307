# tests/unit/logging/test_unit_context.py — v1
"""Tests for logging/context.py — contextual logging variables."""

from __future__ import annotations

from ridecoach.logging.context import (
    clear_context,
    get_context,
    set_run_context,
    set_step_context,
)


class TestLogContext:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_initial_state(self):
        ctx = get_context()
        assert ctx.source_plan_id is None
        assert ctx.run_id is None
        assert ctx.step is None

    def test_set_run_context(self):
        set_run_context("plan1", "run1")
        ctx = get_context()
        assert ctx.source_plan_id == "plan1"
        assert ctx.run_id == "run1"

    def test_set_step_context(self):
        set_run_context("plan1", "run1")
        set_step_context(3)
        assert get_context().step == 3

    def test_new_run_resets_step(self):
        set_step_context(2)
        set_run_context("plan2", "run2")
        assert get_context().step is None

    def test_as_dict_filters_none(self):
        set_run_context("plan1", "run1")
        assert get_context().as_dict() == {"source_plan_id": "plan1", "run_id": "run1"}

    def test_clear(self):
        set_run_context("plan1", "run1")
        set_step_context(1)
        clear_context()
        assert get_context().as_dict() == {}
