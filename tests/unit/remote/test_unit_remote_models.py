# tests/unit/remote/test_unit_remote_models.py — v1
"""Tests for remote/models.py — response parsing and payload building."""

from __future__ import annotations

import pytest

from ridecoach.remote.models import StepResponse, build_step_payload


class TestStepResponse:
    def test_camel_case(self):
        response = StepResponse.model_validate({
            "success": True,
            "fromCache": True,
            "allSections": True,
            "staleReason": "changed",
            "testRequirements": {"t": 1},
            "dataSnapshot": {"hash": "abc123"},
        })
        assert response.from_cache is True
        assert response.stale_reason == "changed"
        assert response.section(1) == {"t": 1}
        assert response.data_snapshot_hash == "abc123"

    def test_snake_case(self):
        response = StepResponse.model_validate({"readiness_analysis": "ready"})
        assert response.section(2) == "ready"

    def test_insufficient_data(self):
        response = StepResponse.model_validate(
            {"success": False, "error": "insufficient_data", "message": "need more"}
        )
        assert response.is_insufficient_data is True

    def test_other_failure_not_insufficient(self):
        response = StepResponse.model_validate({"success": False, "error": "boom"})
        assert response.is_insufficient_data is False

    @pytest.mark.parametrize("body,expected", [
        ({"fromCache": True, "allSections": True}, True),
        ({"fromCache": True}, False),
        ({"allSections": True}, False),
        ({"success": False, "fromCache": True, "allSections": True}, False),
    ])
    def test_is_full_cache_hit(self, body, expected):
        assert StepResponse.model_validate(body).is_full_cache_hit is expected

    def test_sections(self):
        response = StepResponse.model_validate({"showDayGuidance": "g"})
        assert response.sections() == {1: None, 2: None, 3: None, 4: "g"}

    def test_extra_fields_allowed(self):
        response = StepResponse.model_validate({"usage": {"tokens": 10}})
        assert response.model_extra == {"usage": {"tokens": 10}}

    def test_no_snapshot_hash(self):
        assert StepResponse().data_snapshot_hash is None


class TestBuildStepPayload:
    def test_step_one(self):
        payload = build_step_payload("p1", 1, {}, force_refresh=True)
        assert payload == {"eventPrepPlanId": "p1", "step": 1, "forceRefresh": True}

    def test_later_step_carries_prior_results(self):
        payload = build_step_payload("p1", 3, {1: "a", 2: "b"})
        assert payload["priorResults"] == {"testRequirements": "a", "readinessAnalysis": "b"}
        assert "forceRefresh" not in payload

    def test_extra_merged(self):
        payload = build_step_payload("p1", 1, {}, extra={"locale": "en"})
        assert payload["locale"] == "en"

    def test_missing_prior_result_is_key_error(self):
        with pytest.raises(KeyError):
            build_step_payload("p1", 2, {})
