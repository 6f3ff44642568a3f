"""
Tests for pulling critic verdicts out of free-form model output.
"""

import json

import pytest
from hypothesis import given
from hypothesis import strategies as st

from petworld.errors import VerdictMalformedError
from petworld.models import Verdict
from petworld.response_parser import EMPTY_OBJECT, extract_json_object, parse_verdict


class TestExtractJsonObject:

    def test_plain_object_is_returned_as_is(self):
        raw = '{"approved": true, "feedback": "ok"}'

        assert extract_json_object(raw) == raw

    def test_strips_fences_and_surrounding_prose(self):
        raw = 'Here is my verdict:\n```json\n{"approved": false, "feedback": "wrong price"}\n```\nThanks!'

        assert extract_json_object(raw) == '{"approved": false, "feedback": "wrong price"}'

    def test_fence_markers_are_case_insensitive(self):
        raw = '```JSON\n{"approved": true, "feedback": "ok"}\n```'

        assert extract_json_object(raw) == '{"approved": true, "feedback": "ok"}'

    def test_nested_braces_keep_outermost_object(self):
        raw = 'noise {"approved": true, "feedback": "ok", "meta": {"k": 1}} noise'

        assert extract_json_object(raw) == '{"approved": true, "feedback": "ok", "meta": {"k": 1}}'

    def test_no_braces_returns_empty_object(self):
        assert extract_json_object("The answer looks correct to me.") == EMPTY_OBJECT

    def test_closing_before_opening_returns_empty_object(self):
        assert extract_json_object("} nothing here {") == EMPTY_OBJECT

    @pytest.mark.parametrize("raw", [None, "", "   \n\t"])
    def test_blank_input_returns_empty_object(self, raw):
        assert extract_json_object(raw) == EMPTY_OBJECT


class TestParseVerdict:

    def test_parses_lowercase_fields(self):
        verdict = parse_verdict('{"approved": true, "feedback": "grounded"}')

        assert verdict == Verdict(approved=True, feedback="grounded")

    @pytest.mark.parametrize("approved_key,feedback_key", [
        ("Approved", "Feedback"),
        ("APPROVED", "FEEDBACK"),
        ("aPpRoVeD", "feedBack"),
    ])
    def test_field_names_match_case_insensitively(self, approved_key, feedback_key):
        verdict = parse_verdict(json.dumps({approved_key: False, feedback_key: "bad price"}))

        assert verdict.approved is False
        assert verdict.feedback == "bad price"

    def test_empty_object_is_malformed(self):
        with pytest.raises(VerdictMalformedError):
            parse_verdict(EMPTY_OBJECT)

    def test_missing_feedback_is_malformed(self):
        with pytest.raises(VerdictMalformedError):
            parse_verdict('{"approved": true}')

    def test_non_object_is_malformed(self):
        with pytest.raises(VerdictMalformedError):
            parse_verdict('[true, "ok"]')

    def test_broken_json_is_malformed(self):
        with pytest.raises(VerdictMalformedError):
            parse_verdict('{"approved": true, "feedback": ')

    def test_log_text_is_normalised_json(self):
        verdict = parse_verdict('{"APPROVED": false, "Feedback": "Price of Kong is 59.00"}')

        assert json.loads(verdict.to_log_text()) == {"approved": False, "feedback": "Price of Kong is 59.00"}


# =============================================================================
# Strategies
# =============================================================================

prose_strategy = st.text(
    max_size=60,
    alphabet=st.characters(whitelist_categories=("L", "N", "Zs"), whitelist_characters=".,!?:-\n"),
)

feedback_strategy = st.text(
    max_size=80,
    alphabet=st.characters(whitelist_categories=("L", "N", "Zs"), whitelist_characters=".,!?:-'\""),
)


@pytest.mark.hypothesis
class TestExtractorRoundTripProperties:

    @given(
        approved=st.booleans(),
        feedback=feedback_strategy,
        before=prose_strategy,
        after=prose_strategy,
        fenced=st.booleans(),
    )
    def test_noise_does_not_change_the_verdict(self, approved, feedback, before, after, fenced):
        obj = json.dumps({"approved": approved, "feedback": feedback})
        body = f"```json\n{obj}\n```" if fenced else obj
        noisy = f"{before}{body}{after}"

        direct = parse_verdict(obj)
        recovered = parse_verdict(extract_json_object(noisy))

        assert recovered.approved == direct.approved == approved
        assert recovered.feedback == direct.feedback == feedback
