"""
External stages around the matching core: suggestion model, OCR, text
extraction, HTML reconstruction and HTML -> PDF rendering. Network and
browser access are replaced with fakes.

Run: pytest tests/test_collaborators.py -v
"""

import asyncio
import json
from contextlib import asynccontextmanager

import httpx
import pytest
from playwright.async_api import Error as PlaywrightError

from cv_optimizer.core.errors import (
    InsufficientTextError,
    OcrError,
    RenderingError,
    SuggestionGenerationError,
)
from cv_optimizer.llm.openai_client import OpenAIClient
from cv_optimizer.llm.suggestion_generator import SuggestionGenerator, parse_suggestions
from cv_optimizer.schemas.optimizer import (
    HtmlToPdfOptions,
    RiskLevel,
    Suggestion,
    SuggestionStatus,
)
from cv_optimizer.services import html_builder
from cv_optimizer.services.html_renderer import BrowserPool, inject_css, render_html_to_pdf
from cv_optimizer.services.ocr_client import OcrSpaceClient
from cv_optimizer.services.text_extraction import extract_resume_text

ITEM = {
    "id": "suggestion-1",
    "section": "experience",
    "originalSnippet": "Managed a team",
    "proposedText": "Led a team",
    "reason": "Stronger verb",
    "riskLevel": "low",
}


# ── Suggestion parsing ────────────────────────────────────────────────────────

class TestParseSuggestions:

    @pytest.mark.parametrize("payload", [
        [ITEM],
        {"suggestions": [ITEM]},
        ITEM,
        {"results": [ITEM]},
    ], ids=["array", "suggestions-key", "single-object", "any-array-key"])
    def test_accepted_shapes(self, payload):
        suggestions = parse_suggestions(json.dumps(payload))
        assert len(suggestions) == 1
        s = suggestions[0]
        assert (s.id, s.original_snippet, s.proposed_text) == ("suggestion-1", "Managed a team", "Led a team")
        assert s.risk_level == RiskLevel.LOW
        assert s.status == SuggestionStatus.PENDING

    def test_defaults_filled(self):
        suggestions = parse_suggestions(json.dumps({"suggestions": [
            {"originalSnippet": "a", "proposedText": "b"},
            {"originalSnippet": "c", "proposedText": "d", "riskLevel": "HIGH"},
            {"originalSnippet": "e", "proposedText": "f", "riskLevel": "extreme"},
        ]}))
        assert [s.id for s in suggestions] == ["suggestion-1", "suggestion-2", "suggestion-3"]
        assert all(s.section == "other" and s.reason == "" for s in suggestions)
        assert [s.risk_level for s in suggestions] == [RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.MEDIUM]

    def test_duplicate_ids_made_unique(self):
        suggestions = parse_suggestions(json.dumps([ITEM, ITEM]))
        assert len({s.id for s in suggestions}) == 2

    def test_non_object_items_skipped(self):
        assert len(parse_suggestions(json.dumps([ITEM, "junk", 3]))) == 1

    def test_object_without_array(self):
        assert parse_suggestions(json.dumps({"note": "nothing to suggest"})) == []

    def test_invalid_json(self):
        with pytest.raises(SuggestionGenerationError):
            parse_suggestions("Here are your suggestions: ...")


class FakeOpenAIClient:
    def __init__(self, content):
        self.content = content
        self.prompts = []

    async def _send_request(self, system_prompt, user_prompt, temperature=0.7, max_tokens=4000, json_mode=True):
        self.prompts.append((system_prompt, user_prompt))
        return self.content


class TestSuggestionGenerator:

    def test_generate_truncates_inputs(self):
        client = FakeOpenAIClient(json.dumps({"suggestions": [ITEM]}))
        generator = SuggestionGenerator(client=client)
        suggestions = asyncio.run(generator.generate("r" * 9000, "j" * 5000))

        assert len(suggestions) == 1
        _, user_prompt = client.prompts[0]
        assert "r" * 8000 in user_prompt and "r" * 8001 not in user_prompt
        assert "j" * 4000 in user_prompt and "j" * 4001 not in user_prompt

    def test_missing_api_key(self):
        with pytest.raises(SuggestionGenerationError):
            OpenAIClient(api_key="")


# ── OCR ───────────────────────────────────────────────────────────────────────

class TestOcrClient:

    def test_unconfigured_returns_none(self):
        assert asyncio.run(OcrSpaceClient(api_key="").extract_text(b"%PDF")) is None

    def test_joins_parsed_results(self, monkeypatch):
        client = OcrSpaceClient(api_key="k")

        async def fake_send(pdf_bytes):
            return {"ParsedResults": [{"ParsedText": "page one"}, {"ParsedText": "page two"}]}

        monkeypatch.setattr(client, "_send_request", fake_send)
        assert asyncio.run(client.extract_text(b"%PDF")) == "page one\npage two"

    @pytest.mark.parametrize("failure", [
        OcrError("OCR API returned 500"),
        httpx.ConnectError("unreachable"),
    ])
    def test_failures_return_none(self, monkeypatch, failure):
        client = OcrSpaceClient(api_key="k")

        async def fake_send(pdf_bytes):
            raise failure

        monkeypatch.setattr(client, "_send_request", fake_send)
        assert asyncio.run(client.extract_text(b"%PDF")) is None

    def test_processing_error_returns_none(self, monkeypatch):
        client = OcrSpaceClient(api_key="k")

        async def fake_send(pdf_bytes):
            return {"IsErroredOnProcessing": True, "ErrorMessage": ["bad file"]}

        monkeypatch.setattr(client, "_send_request", fake_send)
        assert asyncio.run(client.extract_text(b"%PDF")) is None


# ── Text extraction ───────────────────────────────────────────────────────────

class FakeOcr:
    def __init__(self, text=None):
        self.text = text
        self.calls = 0

    async def extract_text(self, pdf_bytes):
        self.calls += 1
        return self.text


class TestExtraction:

    def test_text_layer_used_when_sufficient(self, resume_pdf):
        ocr = FakeOcr("should not be used")
        result = asyncio.run(extract_resume_text(resume_pdf, ocr_client=ocr))
        assert "Managed a team" in result.text
        assert result.page_count == 1
        assert not result.used_ocr
        assert ocr.calls == 0

    def test_ocr_fallback_for_thin_text(self, pdf_factory):
        ocr = FakeOcr("Recovered résumé text " * 10)
        result = asyncio.run(extract_resume_text(pdf_factory([[]]), ocr_client=ocr))
        assert result.used_ocr
        assert result.text.startswith("Recovered")
        assert ocr.calls == 1

    def test_insufficient_text(self, pdf_factory):
        with pytest.raises(InsufficientTextError):
            asyncio.run(extract_resume_text(pdf_factory([[(72, 72, "Jane Doe")]]), ocr_client=FakeOcr(None)))

    def test_unreadable_pdf_falls_back_to_ocr(self):
        result = asyncio.run(extract_resume_text(b"not a pdf", ocr_client=FakeOcr("x" * 200)))
        assert result.used_ocr
        assert result.page_count == 0


# ── HTML reconstruction ───────────────────────────────────────────────────────

class TestHtmlBuilder:

    def test_split_paragraphs(self):
        assert html_builder.split_paragraphs("a\nb\n\n\n c \n\n") == ["a\nb", "c"]

    def test_generate_escapes_and_keeps_line_breaks(self):
        html = html_builder.generate_html(["Tom & Jerry's <b>", "line1\nline2"])
        assert '<p class="cv-paragraph">Tom &amp; Jerry&#039;s &lt;b&gt;</p>' in html
        assert '<p class="cv-paragraph">line1<br>line2</p>' in html
        assert '<div class="cv-document">' in html
        assert ".suggestion-marker" in html

    def test_convert_pdf(self, resume_pdf):
        result = html_builder.convert_pdf_to_html(resume_pdf)
        assert result.page_count == 1
        assert "Managed a team" in result.extracted_text
        assert "cv-paragraph" in result.html
        assert (result.width, result.height) == (612, 792)
        assert result.fonts == ["Arial", "Helvetica", "sans-serif"]

    def test_pending_markers(self):
        html = "<p>Managed a team of 5</p><p>Skills: Python</p>"
        marked = html_builder.inject_suggestion_markers(html, [
            Suggestion(id="s1", original_snippet="Managed a team", proposed_text="Led a team"),
            Suggestion(id="s2", original_snippet="Skills: Python", proposed_text="x",
                       status=SuggestionStatus.REJECTED),
        ])
        assert '<mark class="suggestion-marker" data-suggestion-id="s1">Managed a team</mark> of 5' in marked
        assert "<p>Skills: Python</p>" in marked

    def test_applied_markers(self):
        html = "<p>Led a team of 5</p>"
        marked = html_builder.mark_applied_suggestions(html, [
            Suggestion(id="s1", original_snippet="Managed a team", proposed_text="Led a team",
                       status=SuggestionStatus.ACCEPTED, applied_text="Led a team", applied_in_html=True),
        ])
        assert marked == '<p><mark class="suggestion-applied">Led a team</mark> of 5</p>'

    def test_accepted_but_not_in_html_is_not_marked(self):
        html = "<p>Led a team of 5</p>"
        marked = html_builder.mark_applied_suggestions(html, [
            Suggestion(id="s1", original_snippet="Headed a team", proposed_text="Led a team",
                       status=SuggestionStatus.MAPPED, applied_text="Led a team"),
        ])
        assert marked == html

    def test_markers_stay_out_of_head_markup(self):
        html = html_builder.generate_html(["Jane Doe", "Content strategy lead"])
        marked = html_builder.inject_suggestion_markers(html, [
            Suggestion(id="s1", original_snippet="content", proposed_text="Editorial"),
        ])
        assert '<meta name="viewport" content="width=device-width' in marked
        assert '<mark class="suggestion-marker" data-suggestion-id="s1">Content</mark> strategy lead' in marked
        assert marked.count("suggestion-marker\" data-suggestion-id") == 1


# ── HTML -> PDF ───────────────────────────────────────────────────────────────

class FakePage:
    def __init__(self, fail=False):
        self.fail = fail
        self.content = None
        self.pdf_kwargs = None

    async def set_content(self, html, wait_until=None, timeout=None):
        if self.fail:
            raise PlaywrightError("Timeout 30000ms exceeded")
        self.content = html

    async def pdf(self, **kwargs):
        self.pdf_kwargs = kwargs
        return b"%PDF-1.7 rendered"


class FakePool:
    def __init__(self, fail=False):
        self.page_obj = FakePage(fail)
        self.viewports = []

    @asynccontextmanager
    async def page(self, viewport=None):
        self.viewports.append(viewport)
        yield self.page_obj


class TestRenderer:

    def test_inject_css_before_head_close(self):
        assert inject_css("<html><head></head><body/></html>", "p{}") == \
            "<html><head><style>p{}</style></head><body/></html>"

    def test_inject_css_without_head(self):
        assert inject_css("<p>x</p>", "p{}") == "<style>p{}</style><p>x</p>"
        assert inject_css("<p>x</p>", None) == "<p>x</p>"

    def test_render_with_defaults(self):
        pool = FakePool()
        pdf = asyncio.run(render_html_to_pdf(pool, "<html><head></head></html>", "p{}"))
        assert pdf.startswith(b"%PDF")
        assert pool.viewports == [{"width": 794, "height": 1123}]
        assert "<style>p{}</style>" in pool.page_obj.content
        kwargs = pool.page_obj.pdf_kwargs
        assert kwargs["format"] == "A4"
        assert kwargs["print_background"] is True
        assert kwargs["margin"] == {"top": "0", "right": "0", "bottom": "0", "left": "0"}

    def test_letter_viewport(self):
        pool = FakePool()
        asyncio.run(render_html_to_pdf(pool, "<p>x</p>", options=HtmlToPdfOptions(format="Letter", scale=0.9)))
        assert pool.viewports == [{"width": 816, "height": 1056}]
        assert pool.page_obj.pdf_kwargs["scale"] == 0.9

    def test_failure_is_wrapped(self):
        with pytest.raises(RenderingError):
            asyncio.run(render_html_to_pdf(FakePool(fail=True), "<p>x</p>"))

    def test_pool_is_lazy(self):
        pool = BrowserPool(size=3)
        assert pool.size == 3
        assert not pool.started
