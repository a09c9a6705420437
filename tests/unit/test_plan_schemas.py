"""
Unit tests for the plan wire format.
"""

import json

import pytest

from timora.core.errors import InvalidRequest, RuleViolation
from timora.planner import (
    BreakKind,
    PlanRequest,
    find_violations,
    generate,
    parse_request,
    plan_from_payload,
    plan_to_json,
    plan_to_payload,
)


class TestParseRequest:
    def test_camel_case_request(self):
        request = parse_request({"subjects": ["Math", "Physics"], "hoursPerDay": 3, "days": 1, "goal": "exam"})
        assert request.subjects == ("Math", "Physics")
        assert request.hours_per_day == 3
        assert request.days == 1
        assert request.goal == "exam"

    def test_goal_is_optional(self):
        assert parse_request({"subjects": ["Math"], "hoursPerDay": 1.5, "days": 2}).goal == ""

    def test_missing_field(self):
        with pytest.raises(InvalidRequest) as exc_info:
            parse_request({"subjects": ["Math"], "days": 2})
        assert exc_info.value.field == "hoursPerDay"

    @pytest.mark.parametrize(
        "data",
        [
            {"subjects": [], "hoursPerDay": 2, "days": 1},
            {"subjects": ["Math"], "hoursPerDay": 0, "days": 1},
            {"subjects": ["Math"], "hoursPerDay": 2, "days": 0},
            {"subjects": ["Math"], "hoursPerDay": "lots", "days": 1},
        ],
    )
    def test_invalid_values(self, data):
        with pytest.raises(InvalidRequest):
            parse_request(data)


class TestPlanToPayload:
    def test_example_wire_shape(self, exam_request):
        payload = plan_to_payload(generate(exam_request))
        assert payload["meta"] == {
            "subjects": ["Math", "Physics"],
            "hoursPerDay": 3.0,
            "days": 1,
            "goal": "exam",
        }
        day = payload["days"][0]
        assert day["day"] == 1
        assert day["slots"][0] == {"time": "09:00 - 09:30", "subject": "Breakfast"}
        assert day["slots"][1] == {"time": "09:30 - 10:30", "subject": "Math", "topic": "Practice"}
        assert day["slots"][2] == {"time": "10:30 - 10:40", "subject": "Break"}
        assert day["slots"][-2] == {"time": "13:50 - 19:00", "subject": "Free Time"}
        assert day["slots"][-1] == {"time": "19:00 - 20:00", "subject": "Dinner"}

    def test_break_slots_have_no_topic(self, exam_request):
        payload = plan_to_payload(generate(exam_request))
        for item in payload["days"][0]["slots"]:
            if item["subject"] not in ("Math", "Physics"):
                assert "topic" not in item

    def test_json_is_wrapped_in_plan(self, exam_request):
        document = json.loads(plan_to_json(generate(exam_request)))
        assert set(document) == {"plan"}
        assert document["plan"] == plan_to_payload(generate(exam_request))


class TestPlanFromPayload:
    def test_generated_payload_reads_back(self, exam_request):
        plan = generate(exam_request)
        parsed = plan_from_payload(plan_to_payload(plan), exam_request)
        assert parsed == plan
        assert find_violations(parsed) == []

    def test_long_break_recognised_by_label_or_length(self, rules):
        request = PlanRequest(subjects=("Math",), hours_per_day=6, days=1)
        payload = plan_to_payload(generate(request, rules))
        parsed = plan_from_payload(payload, request, rules)
        assert parsed.days[0].count(BreakKind.LONG_BREAK) == 1

        for item in payload["days"][0]["slots"]:
            if item["subject"] == "Long Break":
                item["subject"] = "Walk"
        parsed = plan_from_payload(payload, request, rules)
        assert parsed.days[0].count(BreakKind.LONG_BREAK) == 1

    def test_meta_comes_from_sent_request(self, exam_request):
        payload = plan_to_payload(generate(exam_request))
        payload["meta"]["hoursPerDay"] = 10
        parsed = plan_from_payload(payload, exam_request)
        assert parsed.meta == exam_request

    def test_unlisted_label_fails_validation(self, exam_request):
        payload = plan_to_payload(generate(exam_request))
        payload["days"][0]["slots"][1]["subject"] = "Netflix"
        parsed = plan_from_payload(payload, exam_request)
        assert any("'Netflix'" in problem for problem in find_violations(parsed))

    @pytest.mark.parametrize("bad_time", ["9am - 10am", "25:00 - 26:00", ""])
    def test_malformed_time_is_rule_violation(self, exam_request, bad_time):
        payload = plan_to_payload(generate(exam_request))
        payload["days"][0]["slots"][1]["time"] = bad_time
        with pytest.raises(RuleViolation):
            plan_from_payload(payload, exam_request)

    def test_structurally_broken_payload(self, exam_request):
        with pytest.raises(RuleViolation):
            plan_from_payload({"days": "tomorrow"}, exam_request)
