# File: cv_optimizer/llm/suggestion_generator.py
import json
import logging
from typing import Any, List, Optional

from pydantic import ValidationError

from cv_optimizer.core.errors import SuggestionGenerationError
from cv_optimizer.llm.openai_client import OpenAIClient
from cv_optimizer.schemas.optimizer import RiskLevel, Suggestion, SuggestionStatus

logger = logging.getLogger(__name__)

MAX_RESUME_CHARS = 8000
MAX_JOB_DESCRIPTION_CHARS = 4000

SYSTEM_PROMPT = """You are an expert CV/resume optimizer. Your task is to analyze a resume against a job description and provide specific, actionable suggestions to improve the resume's match with the job requirements.

For each suggestion:
1. Identify a specific phrase, sentence, or section that could be improved
2. Provide the exact replacement text
3. Explain why this change improves the match
4. Assess the risk level (low = minor wording change, medium = moderate content change, high = significant claim change)

Focus on:
- Keyword optimization (matching job description terminology)
- Quantifying achievements where possible
- Highlighting relevant skills and experience
- Improving action verbs
- Removing irrelevant information

IMPORTANT:
- Only suggest changes to text that actually exists in the resume
- Copy originalSnippet verbatim from the resume so it can be found again
- Keep suggestions realistic and truthful (don't fabricate experience)
- Provide 5-10 high-impact suggestions

Respond with a JSON object."""

USER_PROMPT_TEMPLATE = """RESUME:
{resume_text}

JOB DESCRIPTION:
{job_description}

Analyze this resume against the job description and provide optimization suggestions.
Return a JSON object with a "suggestions" array containing 5-10 suggestions:
{{
  "suggestions": [
    {{
      "id": "suggestion-1",
      "section": "summary|experience|skills|education|other",
      "originalSnippet": "exact text from resume to change",
      "proposedText": "the improved replacement text",
      "reason": "why this improves the match",
      "riskLevel": "low|medium|high"
    }}
  ]
}}

IMPORTANT: Always return multiple suggestions (5-10) in the suggestions array, not just one."""


def _suggestion_items(parsed: Any) -> List[Any]:
    # the model returns a bare array, {"suggestions": [...]}, a single
    # suggestion object, or the array under some other key
    if isinstance(parsed, list):
        return parsed
    if not isinstance(parsed, dict):
        return []
    if isinstance(parsed.get("suggestions"), list):
        return parsed["suggestions"]
    if parsed.get("id") and parsed.get("originalSnippet"):
        return [parsed]
    for value in parsed.values():
        if isinstance(value, list):
            return value
    return []


def _risk(value: Any) -> RiskLevel:
    try:
        return RiskLevel(str(value).lower())
    except ValueError:
        return RiskLevel.MEDIUM


def parse_suggestions(content: str) -> List[Suggestion]:
    """Turn the model's JSON into pending Suggestions, filling defaults."""
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"[LLM] Failed to parse OpenAI response: {content[:200]}")
        raise SuggestionGenerationError("Failed to parse AI suggestions") from e

    suggestions: List[Suggestion] = []
    seen_ids = set()
    for idx, item in enumerate(_suggestion_items(parsed)):
        if not isinstance(item, dict):
            continue
        sid = str(item.get("id") or f"suggestion-{idx + 1}")
        if sid in seen_ids:
            sid = f"{sid}-{idx + 1}"
        seen_ids.add(sid)
        try:
            suggestions.append(Suggestion(
                id=sid,
                section=item.get("section") or "other",
                original_snippet=item.get("originalSnippet") or "",
                proposed_text=item.get("proposedText") or "",
                reason=item.get("reason") or "",
                risk_level=_risk(item.get("riskLevel") or "medium"),
                status=SuggestionStatus.PENDING,
            ))
        except ValidationError as e:
            logger.warning(f"[LLM] Dropping malformed suggestion {sid}: {e}")

    logger.info(f"[LLM] Parsed {len(suggestions)} suggestions")
    return suggestions


class SuggestionGenerator:
    def __init__(self, client: Optional[OpenAIClient] = None):
        self._client = client

    @property
    def client(self) -> OpenAIClient:
        if self._client is None:
            self._client = OpenAIClient()
        return self._client

    async def generate(self, resume_text: str, job_description: str) -> List[Suggestion]:
        user_prompt = USER_PROMPT_TEMPLATE.format(
            resume_text=resume_text[:MAX_RESUME_CHARS],
            job_description=job_description[:MAX_JOB_DESCRIPTION_CHARS],
        )
        logger.info(f"[LLM] Generating suggestions for resume of {len(resume_text)} chars")
        content = await self.client._send_request(SYSTEM_PROMPT, user_prompt, temperature=0.7, max_tokens=4000)
        return parse_suggestions(content)
