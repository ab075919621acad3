"""Priority assessment and location-query refinement on a local Ollama model."""
import base64
import json
import logging
from typing import Any, Optional

import httpx

from app.config import settings
from app.models.intake import MANUAL_REVIEW, Assessment, MediaFile
from app.models.report import Priority, ReportType

logger = logging.getLogger(__name__)

ALLOWED_PRIORITIES = {p.value for p in Priority}

BASE_TEXT_PROMPT = """You are an AI assistant for an animal rescue organization. Your task is to analyze a text description of an incident and assign a priority level. Respond ONLY with a valid JSON object containing two keys: "priority" and "justification". Do not include any other text, explanations, or markdown formatting. The priority must be one of: "High", "Medium", "Low", "Info", or "Manual Review". The justification should be a single, brief sentence."""

REPORT_TYPE_CONTEXT = {
    ReportType.EMERGENCY: 'The report is for a "Medical Emergency". Assess urgency based on keywords like "bleeding", "unconscious", "unable to move", "seizures", "hit by vehicle". Severe injury implies "High" priority.',
    ReportType.ABUSE: 'The report is for "Abuse or Neglect". Intentional cruelty warrants "High" priority. Signs of long-term neglect (very skinny, matted fur) should be "Medium".',
}
ROUTINE_CONTEXT = 'This is a routine request or informational report. Assign "Low" or "Info" priority.'

VISION_PROMPT = """Analyze this image of a street animal, considering the user's description: "{description}". Based on visible signs of injury, distress, or illness, assess the medical urgency. Respond with ONLY a JSON object with two keys: "priority" (must be "High", "Medium", or "Low") and "justification" (a brief, one-sentence explanation)."""

REFINE_PROMPT = """Given the user-provided location in {region}: "{raw}". Refine it into a precise, searchable address like "Landmark, Area, City". Remove ambiguous terms. If it's already a good address, return it. Respond with only the refined address."""

INCOMPLETE_JUSTIFICATION = "Analysis incomplete. Manual review required."


class AssessmentError(Exception):
    pass


def text_prompt(report_type: ReportType, description: str) -> str:
    context = REPORT_TYPE_CONTEXT.get(report_type, ROUTINE_CONTEXT)
    return f'{BASE_TEXT_PROMPT} {context} The user\'s report is: "{description}"'


def _parse_json(text: str) -> dict[str, Any]:
    """Extract JSON from a model response, handling markdown code blocks."""
    text = (text or "").strip()
    if text.startswith("```"):
        lines = text.split("\n")
        text = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("model response is not a JSON object")
    return data


def _to_assessment(content: dict[str, Any]) -> Assessment:
    priority = content.get("priority") or MANUAL_REVIEW
    if priority not in ALLOWED_PRIORITIES:
        logger.info("Model returned unknown priority %r; using Manual Review", priority)
        priority = MANUAL_REVIEW
    justification = content.get("justification") or INCOMPLETE_JUSTIFICATION
    return Assessment(priority=priority, justification=justification)


class OllamaAssessor:
    """PriorityAssessor backed by Ollama's /api/generate endpoint."""

    def __init__(
        self,
        url: str | None = None,
        vision_model: str | None = None,
        text_model: str | None = None,
        timeout: float | None = None,
        region: str | None = None,
    ):
        self.url = settings.ollama_url if url is None else url
        self.vision_model = vision_model or settings.ollama_vision_model
        self.text_model = text_model or settings.ollama_text_model
        self.timeout = timeout if timeout is not None else settings.ai_timeout_seconds
        self.region = region or settings.service_region

    def is_available(self) -> bool:
        return bool(self.url)

    async def _generate(self, body: dict[str, Any]) -> str:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(self.url, json=body)
            if not r.is_success:
                raise AssessmentError(f"Ollama request failed with status {r.status_code}")
            data = r.json()
        if not isinstance(data, dict):
            raise AssessmentError("Ollama response is not a JSON object")
        response = data.get("response") or ""
        if not isinstance(response, str):
            raise AssessmentError("Ollama response field is not text")
        return response

    async def assess_priority(
        self,
        description: str,
        report_type: ReportType,
        media: Optional[MediaFile] = None,
    ) -> Assessment:
        """Classify a report. Raises AssessmentError when the model cannot be used."""
        if media is None and not description.strip():
            return Assessment.manual_review("No information provided.")
        if not self.is_available():
            raise AssessmentError("AI assessment disabled")

        if media is not None:
            model = self.vision_model
            body = {
                "model": model,
                "prompt": VISION_PROMPT.format(description=description),
                "images": [base64.b64encode(media.data).decode("ascii")],
                "format": "json",
                "stream": False,
            }
        else:
            model = self.text_model
            body = {
                "model": model,
                "prompt": text_prompt(report_type, description),
                "format": "json",
                "stream": False,
            }

        try:
            response = await self._generate(body)
            assessment = _to_assessment(_parse_json(response))
        except AssessmentError:
            raise
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Ollama assess_priority with %s failed: %s", model, e)
            raise AssessmentError(str(e)) from e
        logger.info("Assessed %s report with %s: %s", report_type.value, model, assessment.priority)
        return assessment

    async def refine_location_query(self, raw: str) -> str:
        """Rewrite a free-text location into a more searchable address. Best effort."""
        if not raw.strip() or not self.is_available():
            return raw
        body = {
            "model": self.text_model,
            "prompt": REFINE_PROMPT.format(region=self.region, raw=raw),
            "stream": False,
        }
        try:
            refined = (await self._generate(body)).strip().replace('"', "")
        except (AssessmentError, httpx.HTTPError, ValueError) as e:
            logger.warning("Ollama refine_location_query failed: %s", e)
            return raw
        return refined or raw
