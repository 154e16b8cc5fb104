"""
Snippet replacement over HTML and batch application (DOM path).

Run: pytest tests/test_snippet_replacer.py -v
"""

import pytest

from cv_optimizer.schemas.optimizer import TextReplacement
from cv_optimizer.services import change_tracker, html_builder, snippet_replacer


# ── Single replacement ───────────────────────────────────────────────────────

class TestReplace:

    def test_simple_prefix_replacement(self):
        result = snippet_replacer.replace("Managed a team of 5 engineers", "Managed a team", "Led a team")
        assert result == "Led a team of 5 engineers"

    def test_across_line_break(self):
        outcome = snippet_replacer.replace_with_outcome(
            "<p>Built<br> scalable systems</p>", "Built scalable", "Designed resilient"
        )
        assert outcome.matched
        assert outcome.strategy == "flexible"
        assert outcome.document == "<p>Designed resilient systems</p>"

    def test_missing_snippet_returns_input_unchanged(self):
        html = "<p>Managed a team of 5 engineers</p>"
        outcome = snippet_replacer.replace_with_outcome(html, "Manged a taem", "Led a team")
        assert not outcome.matched
        assert outcome.strategy is None
        assert outcome.document == html

    def test_idempotent_once_snippet_is_gone(self):
        html = "<p>Managed a team of 5 engineers</p>"
        once = snippet_replacer.replace(html, "Managed a team", "Led a team")
        twice = snippet_replacer.replace(once, "Managed a team", "Led a team")
        assert twice == once

    @pytest.mark.parametrize("html,snippet,new_text", [
        ("<p>Managed a team of 5 engineers</p>", "Managed a team", "Led a squad"),
        ("<ul><li>Wrote Python services</li><li>Ran on-call</li></ul>", "Wrote Python services", "Built Go APIs"),
        ("<p>Cut costs by 30% in 2023</p>", "30% in 2023", "35% within a year"),
    ])
    def test_round_trip(self, html, snippet, new_text):
        forward = snippet_replacer.replace(html, snippet, new_text)
        assert forward != html
        assert snippet_replacer.replace(forward, new_text, snippet) == html

    def test_only_first_occurrence_is_replaced(self):
        result = snippet_replacer.replace("<p>Python</p><p>Python</p>", "Python", "Go")
        assert result == "<p>Go</p><p>Python</p>"

    def test_tag_interrupted_snippet_uses_plain_text_strategy(self):
        outcome = snippet_replacer.replace_with_outcome(
            "<p>Managed a <b>team</b> of 5</p>", "a team of", "a group of"
        )
        assert outcome.strategy == "plain_text"
        assert outcome.document == "<p>Managed a group of 5</p>"

    def test_entity_snippet(self):
        outcome = snippet_replacer.replace_with_outcome("<p>Led R&amp;D efforts</p>", "R&D efforts", "research")
        assert outcome.matched
        assert outcome.document == "<p>Led research</p>"

    def test_strategy_order(self):
        names = [name for name, _ in snippet_replacer.STRATEGIES]
        assert names == ["flexible", "plain_text", "loose", "literal"]

    def test_loose_and_literal_strategies_directly(self):
        assert snippet_replacer.replace_loose("a  B\tc", "b c", "x") == "a  x"
        assert snippet_replacer.replace_literal("a <i>b</i>", "<i>b</i>", "x") == "a x"
        assert snippet_replacer.replace_literal("abc", "", "x") is None

    def test_none_document_is_an_error(self):
        with pytest.raises(ValueError):
            snippet_replacer.replace(None, "a", "b")

    def test_empty_replacement_deletes(self):
        assert snippet_replacer.replace("<p>Keep this. Drop this.</p>", "Drop this.", "") == "<p>Keep this. </p>"


class TestCanLocate:

    @pytest.mark.parametrize("html,snippet,expected", [
        ("<p>Managed a team</p>", "managed a team", True),
        ("<p>Built<br>scalable</p>", "Built scalable", True),
        ("<p>Managed a <b>team</b></p>", "a team", True),
        ("<p>Managed a team</p>", "Manged a team", False),
        ("<p>Managed a team</p>", "", False),
        ("", "Managed", False),
    ])
    def test_classification(self, html, snippet, expected):
        assert snippet_replacer.can_locate(html, snippet) is expected

    def test_read_only(self):
        html = "<p>Managed a team</p>"
        snippet_replacer.can_locate(html, "a team")
        assert html == "<p>Managed a team</p>"


class TestGeneratedDocument:

    @pytest.fixture
    def document(self):
        return html_builder.generate_html(["Jane Doe", "Content strategy lead", "Skills: Arial design, bold layouts"])

    def test_replacement_lands_in_body_not_head(self, document):
        result = snippet_replacer.replace(document, "content", "Editorial")
        assert '<meta name="viewport" content="width=device-width, initial-scale=1.0">' in result
        assert '<p class="cv-paragraph">Editorial strategy lead</p>' in result

    @pytest.mark.parametrize("snippet", ["Document", "cv-document", "charset"])
    def test_markup_only_snippets_do_not_match(self, document, snippet):
        outcome = snippet_replacer.replace_with_outcome(document, snippet, "X")
        assert not outcome.matched
        assert outcome.document == document

    @pytest.mark.parametrize("strategy", [snippet_replacer.replace_loose, snippet_replacer.replace_literal])
    def test_fallback_strategies_skip_css(self, document, strategy):
        result = strategy(document, "Arial", "Helvetica")
        assert "font-family: Arial, Helvetica, sans-serif;" in result
        assert "Skills: Helvetica design, bold layouts" in result

    def test_can_locate_ignores_head(self, document):
        assert snippet_replacer.can_locate(document, "CV Document") is False
        assert snippet_replacer.can_locate(document, "bold layouts") is True


# ── Batch (DOM path) ─────────────────────────────────────────────────────────

class TestApplyAllToDocument:

    def test_applies_in_order_and_reports_unmatched(self):
        html = "<p>Managed a team of 5 engineers</p><p>Skills: Python</p>"
        result = change_tracker.apply_all_to_document(html, [
            TextReplacement(original_text="Managed a team", new_text="Led a team", suggestion_id="s1"),
            TextReplacement(original_text="Skils: Pyton", new_text="Skills: Go", suggestion_id="s2"),
            TextReplacement(original_text="Skills: Python", new_text="Skills: Python, Go", suggestion_id="s3"),
        ])
        assert result.document == "<p>Led a team of 5 engineers</p><p>Skills: Python, Go</p>"
        assert result.applied_count == 2
        assert result.unmatched == ["s2"]
        assert result.strategies == {"s1": "flexible", "s3": "flexible"}

    def test_later_replacements_see_earlier_results(self):
        result = change_tracker.apply_all_to_document("<p>Junior developer</p>", [
            TextReplacement(original_text="Junior developer", new_text="Software engineer"),
            TextReplacement(original_text="Software engineer", new_text="Senior software engineer"),
        ])
        assert result.document == "<p>Senior software engineer</p>"
        assert result.applied_count == 2

    def test_no_matches_returns_original(self):
        html = "<p>Managed a team</p>"
        result = change_tracker.apply_all_to_document(html, [
            TextReplacement(original_text="typo snippet", new_text="x"),
        ])
        assert result.document == html
        assert result.applied_count == 0
        assert result.unmatched == ["replacement-1"]

    def test_empty_batch(self):
        result = change_tracker.apply_all_to_document("<p>x</p>", [])
        assert (result.document, result.applied_count, result.unmatched) == ("<p>x</p>", 0, [])
