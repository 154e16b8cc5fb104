"""
Failures raised by the collaborators around the matching core.

Matching and replacing never raise for bad text; they return "no match".
Only the pipeline stages that talk to the outside world (extraction, OCR,
the suggestion model, the HTML renderer) raise, and the endpoints turn these
into HTTP errors for the stage that failed.
"""


class UpstreamCollaboratorError(Exception):
    """Base class for a failing or misbehaving external stage."""

    stage = "upstream"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ExtractionError(UpstreamCollaboratorError):
    stage = "extraction"


class InsufficientTextError(ExtractionError):
    """Not enough selectable text, even after OCR."""


class OcrError(UpstreamCollaboratorError):
    stage = "ocr"


class SuggestionGenerationError(UpstreamCollaboratorError):
    stage = "suggestions"


class RenderingError(UpstreamCollaboratorError):
    stage = "rendering"
