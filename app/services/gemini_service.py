# app/services/gemini_service.py

import asyncio
import json
import logging
import re
from typing import Optional, Dict, Any

from google import genai

from app.core.config import settings as default_settings, Settings
from app.core.exceptions import ExternalServiceError
from app.schemas.inspections import AIAnalysisResult


logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "AI analysis complete."

HIRA_PROMPT = """You are a certified workplace safety expert specializing in HIRA (Hazard Identification and Risk Assessment) with 20+ years of field experience across construction, manufacturing, and industrial sectors.

Analyze this workplace photograph thoroughly and identify ALL potential hazards visible in the image.

For each hazard, provide a detailed HIRA assessment.

SEVERITY SCALE (1-5):
1 = Minor injury (minor cuts, bruises, no lost time)
2 = First aid case (requires first aid treatment)
3 = Medical treatment case (requires medical attention, possible lost time)
4 = Serious injury (lost time injury, possible permanent disability)
5 = Fatality or catastrophic event

LIKELIHOOD SCALE (1-5):
1 = Rare (< 1% chance, highly unlikely under normal conditions)
2 = Unlikely (1-10% chance, could happen but rarely does)
3 = Possible (10-50% chance, might happen under normal conditions)
4 = Likely (50-90% chance, will probably occur under normal conditions)
5 = Almost certain (> 90% chance, expected to occur frequently)

RISK SCORE = Severity x Likelihood
RISK LEVELS: Low (1-5) | Medium (6-10) | High (11-15) | Extreme (16-25)

HAZARD CATEGORIES:
- Physical: Struck-by, caught-in, fall hazards, noise, vibration, radiation, temperature
- Chemical: Toxic substances, flammable materials, corrosives, carcinogens
- Biological: Bacteria, viruses, fungi, blood-borne pathogens
- Ergonomic: Manual handling, repetitive motion, awkward postures, poor workstation design
- Electrical: Exposed wiring, overloaded circuits, improper grounding, arc flash
- Fire: Flammable materials, ignition sources, blocked exits, inadequate fire suppression
- Mechanical: Unguarded machinery, rotating parts, pressure systems, cutting edges
- Environmental: Dust, fumes, inadequate ventilation, lighting, housekeeping
- Psychosocial: Lone working, excessive workload, violence or harassment exposure

Respond ONLY with a valid JSON object, with no markdown and no explanation. Use this exact structure:
{
  "hazards": [
    {
      "description": "Clear, specific description of the hazard and why it is dangerous",
      "category": "Physical|Chemical|Biological|Ergonomic|Electrical|Fire|Mechanical|Environmental|Psychosocial",
      "hazard_type": "Specific hazard type (e.g., Fall from Height, PPE Non-compliance, Electrical Exposure)",
      "severity": 1,
      "likelihood": 1,
      "corrective_actions": {
        "engineering": "Engineering control: eliminate or reduce the hazard at source",
        "administrative": "Administrative control: procedures, training, scheduling, signage",
        "ppe": "Personal protective equipment required",
        "immediate": "Immediate action to take right now to prevent injury"
      },
      "confidence": 0.85
    }
  ],
  "overall_risk_level": "Low|Medium|High|Extreme",
  "summary": "Professional 2-3 sentence overall assessment of the workplace safety conditions observed in this photo."
}

If the image shows no visible workplace hazards or is not a workplace scene, return:
{"hazards":[],"overall_risk_level":"Low","summary":"No significant workplace hazards identified in this image."}"""

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_analysis_text(raw_text: Optional[str]) -> AIAnalysisResult:
    """Parse Gemini's answer into an AIAnalysisResult.

    Tolerates code fences and prose around the JSON object. Field contents are
    left for the hazard normalizer; only the envelope is checked here.
    """
    text = (raw_text or "").strip()
    if not text:
        raise ExternalServiceError("AI service returned an empty response")

    text = _FENCE_RE.sub("", text).strip()
    parsed = _loads_object(text)
    if parsed is None:
        match = _OBJECT_RE.search(text)
        parsed = _loads_object(match.group(0)) if match else None
    if parsed is None:
        raise ExternalServiceError("Failed to parse AI response as JSON")

    hazards = parsed.get("hazards")
    level = parsed.get("overall_risk_level")
    summary = parsed.get("summary")
    return AIAnalysisResult(
        hazards=hazards if isinstance(hazards, list) else [],
        overall_risk_level=level if isinstance(level, str) else None,
        summary=summary.strip() if isinstance(summary, str) and summary.strip() else DEFAULT_SUMMARY,
    )


class GeminiImageAnalyzer:
    """AI vision collaborator backed by Google Gemini."""

    def __init__(self, settings: Settings = default_settings):
        self.api_key = settings.GEMINI_API_KEY
        self.model_name = settings.GEMINI_MODEL
        self._client: Optional[genai.Client] = None

    def _configure_google_client(self) -> genai.Client:
        if not self.api_key:
            raise ExternalServiceError("GEMINI_API_KEY is not configured")
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def analyze_image(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> AIAnalysisResult:
        client = self._configure_google_client()

        def sync_call():
            return client.models.generate_content(
                model=self.model_name,
                contents=[
                    {"text": HIRA_PROMPT},
                    {"inline_data": {"mime_type": mime_type, "data": image_bytes}},
                ],
            )

        try:
            response = await asyncio.to_thread(sync_call)
        except Exception as exc:
            err_str = str(exc)
            logger.warning("Gemini call failed", extra={"model": self.model_name, "error": err_str})
            if "RESOURCE_EXHAUSTED" in err_str or "429" in err_str:
                raise ExternalServiceError("AI service quota exhausted. Please check your plan or billing.") from exc
            raise ExternalServiceError(f"AI service error: {err_str}") from exc

        return parse_analysis_text(getattr(response, "text", None))
