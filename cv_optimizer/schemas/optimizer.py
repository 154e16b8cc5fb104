# File: cv_optimizer/schemas/optimizer.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SuggestionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    MAPPED = "mapped"


class EditMode(str, Enum):
    REPLACE = "replace"
    INSERT = "insert"
    DELETE = "delete"


class TextContext(CamelModel):
    before: str = ""
    after: str = ""


class Suggestion(CamelModel):
    id: str
    section: str = "other"
    original_snippet: str
    proposed_text: str
    reason: str = ""
    risk_level: RiskLevel = RiskLevel.MEDIUM
    status: SuggestionStatus = SuggestionStatus.PENDING
    confidence: Optional[float] = None
    text_context: Optional[TextContext] = None
    applied_text: Optional[str] = None  # what was actually written, if edited on accept
    applied_in_html: bool = False  # applied_text currently stands in the working HTML


class BoundingBox(CamelModel):
    x: float
    y: float
    width: float
    height: float


class AppliedEdit(CamelModel):
    suggestion_id: str
    page_index: int
    bbox: BoundingBox
    mode: EditMode = EditMode.REPLACE
    original_text: str = ""
    new_text: str = ""


class ChangeSet(CamelModel):
    applied_edits: List[AppliedEdit] = Field(default_factory=list)
    timestamp: str
    job_description_preview: str = ""


class TextReplacement(CamelModel):
    original_text: str
    new_text: str
    suggestion_id: Optional[str] = None


# ── Change log ───────────────────────────────────────────────────────────

class AppliedChangeEntry(CamelModel):
    section: str
    original: str
    replacement: str
    reason: str


class ProposedChangeEntry(CamelModel):
    section: str
    original: str
    suggested: str
    reason: str


class ChangeLog(CamelModel):
    timestamp: str
    applied_changes: List[AppliedChangeEntry] = Field(default_factory=list)
    rejected_changes: List[ProposedChangeEntry] = Field(default_factory=list)
    pending_changes: List[ProposedChangeEntry] = Field(default_factory=list)


# ── Request / response bodies ────────────────────────────────────────────

class OptimizeResponse(CamelModel):
    session_id: str
    suggestions: List[Suggestion]
    extracted_text: str
    page_count: int


class HtmlMetadata(CamelModel):
    width: float
    height: float
    fonts: List[str]


class HtmlConversionResponse(CamelModel):
    html: str
    css: str
    extracted_text: str
    page_count: int
    metadata: HtmlMetadata


class PdfMargin(CamelModel):
    top: str = "0"
    right: str = "0"
    bottom: str = "0"
    left: str = "0"


class HtmlToPdfOptions(CamelModel):
    format: str = "A4"  # "A4" | "Letter"
    margin: PdfMargin = Field(default_factory=PdfMargin)
    print_background: bool = True
    scale: float = 1.0


class HtmlToPdfRequest(CamelModel):
    html: str
    css: Optional[str] = None
    options: Optional[HtmlToPdfOptions] = None


class ApplySuggestionsRequest(CamelModel):
    html: str
    replacements: List[TextReplacement]


class ApplySuggestionsResponse(CamelModel):
    html: str
    applied_count: int
    unmatched: List[str]


class LocateRequest(CamelModel):
    html: str
    snippets: List[str]


class SnippetLocation(CamelModel):
    snippet: str
    found: bool
    start: Optional[int] = None
    end: Optional[int] = None
    matched_text: Optional[str] = None


class LocateResponse(CamelModel):
    locations: List[SnippetLocation]
    found_count: int


class AcceptSuggestionRequest(CamelModel):
    custom_text: Optional[str] = None


class SessionResponse(CamelModel):
    session_id: str
    page_count: int
    html: str
    suggestions: List[Suggestion]
    applied_edits: List[AppliedEdit]
    found_count: int
    pending_count: int
    accepted_count: int


class AutoMapResponse(CamelModel):
    mapped: List[AppliedEdit]
    unmatched: List[str]
