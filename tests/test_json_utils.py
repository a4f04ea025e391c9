"""
Tests for JSON recovery from model output: candidate extraction, the
repair-and-parse pipeline and the plain-text sanitizer.
"""

import logging

import pytest

from src.core.json_utils import (
    ESCAPE_RULES,
    LAST_RESORT_RULES,
    REPAIR_RULES,
    ExtractionStatus,
    drop_dangling_commas,
    escape_stray_backslashes,
    extract_candidate,
    resolve_structured,
    resolve_structured_result,
    sanitize_text,
    strip_code_fences,
    strip_extended_unicode_escapes,
    strip_lone_surrogate_escapes,
    strip_short_unicode_escapes,
    strip_unicode_escapes,
)


class TestExtractCandidate:
    def test_spans_first_open_to_last_close(self):
        raw = 'Sure! Here you go: [{"a": [1, 2]}, {"b": 3}] Hope this helps.'
        assert extract_candidate(raw) == '[{"a": [1, 2]}, {"b": 3}]'

    def test_two_arrays_are_spanned_greedily(self):
        assert extract_candidate("[1,2] some text [3,4]") == "[1,2] some text [3,4]"

    @pytest.mark.parametrize("raw", ["", "no brackets at all", "only [ open", "only close ]", "] reversed ["])
    def test_no_candidate(self, raw):
        assert extract_candidate(raw) is None

    @pytest.mark.parametrize("raw", [None, 42, b"[1]", ["[1]"]])
    def test_non_string_input(self, raw):
        assert extract_candidate(raw) is None


class TestRepairRules:
    def test_rule_order(self):
        assert [rule.name for rule in REPAIR_RULES] == [
            "strip_code_fences",
            "strip_extended_unicode_escapes",
            "strip_short_unicode_escapes",
            "strip_lone_surrogate_escapes",
            "escape_stray_backslashes",
            "drop_dangling_commas",
        ]
        assert [rule.name for rule in ESCAPE_RULES] == [
            "strip_extended_unicode_escapes",
            "strip_short_unicode_escapes",
            "strip_lone_surrogate_escapes",
            "escape_stray_backslashes",
        ]
        assert [rule.name for rule in LAST_RESORT_RULES] == [
            "strip_unicode_escapes",
            "drop_dangling_commas",
        ]

    def test_strip_code_fences(self):
        assert strip_code_fences("```json\n[1]\n```") == "\n[1]\n"
        assert strip_code_fences("```\n[1]\n```") == "\n[1]\n"

    def test_strip_extended_unicode_escapes(self):
        assert strip_extended_unicode_escapes(r'"a \u{1F600} b"') == '"a  b"'

    def test_strip_short_unicode_escapes_keeps_valid_ones(self):
        assert strip_short_unicode_escapes(r'"\u12 \u00e9"') == r'"12 \u00e9"'

    def test_escaped_backslash_before_u_is_not_an_escape(self):
        text = r'"C:\\users\\u{x}"'
        assert strip_short_unicode_escapes(text) == text
        assert strip_extended_unicode_escapes(text) == text
        assert escape_stray_backslashes(text) == text

    def test_strip_lone_surrogate_escapes(self):
        assert strip_lone_surrogate_escapes(r'"a\ud83d b"') == '"a b"'
        assert strip_lone_surrogate_escapes(r'"a\ude00 b"') == '"a b"'
        # A valid pair survives, and so do non-surrogate \uDxxx-looking escapes below D800
        assert strip_lone_surrogate_escapes(r'"\ud83d\ude00"') == r'"\ud83d\ude00"'
        assert strip_lone_surrogate_escapes(r'"\ud55c"') == r'"\ud55c"'

    def test_escape_stray_backslashes(self):
        assert escape_stray_backslashes(r'"\s+\d \n \" \\ \/ \u0041"') == r'"\\s+\\d \n \" \\ \/ \u0041"'
        assert escape_stray_backslashes("ends with \\") == "ends with \\\\"

    def test_drop_dangling_commas_skips_strings(self):
        assert drop_dangling_commas('["a, ,b", 1, , 2,]') == '["a, ,b", 1 , 2]'
        assert drop_dangling_commas("[ , 1]") == "[  1]"
        assert drop_dangling_commas('{"a": 1,}') == '{"a": 1}'

    def test_strip_unicode_escapes(self):
        assert strip_unicode_escapes(r'"caf\u00e9 \\u0041"') == r'"caf \\u0041"'


class TestResolveStructured:
    def test_clean_array_fast_path(self):
        raw = '[{"question": "Q1", "options": ["a", "b"]}, {"question": "Q2", "options": []}]'
        result = resolve_structured_result(raw)

        assert result.status is ExtractionStatus.PARSED
        assert result.stage == "direct"
        assert len(result.attempts) == 1
        assert result.records == [
            {"question": "Q1", "options": ["a", "b"]},
            {"question": "Q2", "options": []},
        ]

    def test_fenced_reply_with_prose(self):
        raw = 'Here is your data:\n```json\n[{"question":"Q1","answer":"A1"}]\n```'
        assert resolve_structured(raw) == [{"question": "Q1", "answer": "A1"}]

    def test_fenced_and_unfenced_give_same_value(self):
        array = '[{"term": "ATP", "definition": "energy carrier"}, "x", 3.5, null, true]'
        assert resolve_structured(f"```json\n{array}\n```") == resolve_structured(array)

    def test_fence_inside_brackets_needs_repair(self):
        raw = '[\n```json\n{"a": 1}\n```\n]'
        result = resolve_structured_result(raw)

        assert result.status is ExtractionStatus.REPAIRED
        assert result.stage == "repair"
        assert result.records == [{"a": 1}]

    def test_stray_backslash_is_escaped_and_nothing_else_changes(self):
        raw = r'[{"path": "C:\Program Files\Docs", "note": "keep me"}]'
        result = resolve_structured_result(raw)

        assert result.status is ExtractionStatus.REPAIRED
        assert result.records == [{"path": r"C:\Program Files\Docs", "note": "keep me"}]
        repaired = result.attempts[-1].text
        assert repaired == extract_candidate(raw).replace("\\", "\\\\")

    def test_stray_backslash_next_to_valid_escapes(self):
        raw = r'[{"pattern": "\s+\d", "quote": "say \"hi\"", "tab": "a\tb"}]'
        assert resolve_structured(raw) == [
            {"pattern": r"\s+\d", "quote": 'say "hi"', "tab": "a\tb"},
        ]

    def test_extended_unicode_escape_element_is_removed(self):
        result = resolve_structured_result(r"[1, 2, \u{1F600}, 3]")

        assert result.status is ExtractionStatus.REPAIRED
        assert result.records == [1, 2, 3]

    def test_extended_unicode_escape_inside_string(self):
        assert resolve_structured(r'["smile \u{1F600} now"]') == ["smile  now"]

    def test_short_unicode_escape(self):
        assert resolve_structured(r'["caf\u00e9 \u12 done"]') == ["café 12 done"]

    def test_lone_surrogate_removed_and_pairs_kept(self):
        raw = r'["a\ud83d b", "\ud83d\ude00 50\% off"]'
        assert resolve_structured(raw) == ["a b", "\U0001F600 50\\% off"]

    def test_literal_backslash_u_survives_repair(self):
        raw = r'["C:\\users\\docs", "\q"]'
        assert resolve_structured(raw) == ["C:\\users\\docs", "\\q"]

    def test_commas_inside_strings_survive_repair(self):
        raw = r'["a, ,b", 1, , 2, "\q"]'
        assert resolve_structured(raw) == ["a, ,b", 1, 2, "\\q"]

    def test_last_resort_strips_unicode_escapes(self):
        raw = r'Result: [{"a": 1},\u00a0{"b": 2}]'
        result = resolve_structured_result(raw)

        assert result.status is ExtractionStatus.LOSSY
        assert result.is_lossy
        assert result.stage == "last_resort"
        assert [a.stage for a in result.attempts] == ["direct", "repair", "last_resort"]
        assert result.records == [{"a": 1}, {"b": 2}]

    def test_two_arrays_fail_every_stage(self):
        result = resolve_structured_result("[1,2] some text [3,4]")

        assert result.status is ExtractionStatus.FAILED
        assert not result.ok
        assert result.records == []
        assert len(result.attempts) == 3
        assert all(not attempt.success for attempt in result.attempts)
        assert result.stage is None

    def test_no_brackets_returns_empty(self):
        result = resolve_structured_result("I could not generate a quiz for this content.")

        assert result.status is ExtractionStatus.NO_CANDIDATE
        assert result.records == []
        assert result.attempts == []
        assert resolve_structured("nothing to see") == []

    def test_legitimate_empty_array_is_distinguishable(self):
        empty = resolve_structured_result("No topics found: []")
        failed = resolve_structured_result("No topics found.")

        assert empty.records == failed.records == []
        assert empty.ok and empty.status is ExtractionStatus.PARSED
        assert not failed.ok

    def test_non_standard_constants_are_rejected(self):
        assert resolve_structured("[1, NaN, Infinity]") == []

    def test_records_are_not_coerced(self):
        assert resolve_structured('[1, "1", 1.5, false, null, {"k": [1]}]') == [1, "1", 1.5, False, None, {"k": [1]}]

    @pytest.mark.parametrize("raw", [
        None,
        123,
        "",
        "[",
        "]",
        "[}",
        "[{\"a\": }]",
        "[\\",
        "[\"\\u{zz}\\uD800\\",
        "[" * 100000 + "]" * 100000,
        "```json\n[\n```",
    ])
    def test_never_raises(self, raw):
        assert isinstance(resolve_structured(raw), list)

    def test_failure_logged_with_raw_length(self, caplog):
        raw = "[1,2] some text [3,4]"
        with caplog.at_level(logging.WARNING, logger="studyforge.extraction"):
            resolve_structured(raw)
        assert f"raw length: {len(raw)}" in caplog.text

    def test_no_candidate_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="studyforge.extraction"):
            resolve_structured("plain prose")
        assert "No JSON array candidate" in caplog.text


class TestSanitizeText:
    def test_clean_text_is_unchanged(self):
        text = "# Photosynthesis\n\n- Light reactions\n- Calvin cycle \\n literal\n"
        assert sanitize_text(text) == text

    def test_code_fences_are_kept(self):
        text = "## Example\n```python\nprint('hi')\n```"
        assert sanitize_text(text) == text

    def test_escape_repairs(self):
        raw = r"Emoji \u{1F600} and \u12 and \ud83d and C:\path"
        assert sanitize_text(raw) == r"Emoji  and 12 and  and C:\\path"

    @pytest.mark.parametrize("raw", [
        r"Emoji \u{1F600} and \u12 and C:\path",
        r"\\u{41} \u\u0041 \uD800\uDC00\uDC00",
        "ends with \\",
        r"\x\u{41}\\\q",
        "plain",
    ])
    def test_idempotent(self, raw):
        once = sanitize_text(raw)
        assert sanitize_text(once) == once

    def test_non_string_input(self):
        assert sanitize_text(None) == ""
        assert sanitize_text(42) == "42"
