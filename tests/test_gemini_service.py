import pytest

from app.core.config import Settings
from app.core.exceptions import ExternalServiceError
from app.services.gemini_service import DEFAULT_SUMMARY, GeminiImageAnalyzer, parse_analysis_text

PAYLOAD = '{"hazards": [{"description": "Loose cable", "severity": 2}], "overall_risk_level": "Low", "summary": "Tidy site."}'


def test_parses_plain_json():
    result = parse_analysis_text(PAYLOAD)
    assert result.hazards == [{"description": "Loose cable", "severity": 2}]
    assert result.overall_risk_level == "Low"
    assert result.summary == "Tidy site."


def test_strips_code_fences():
    result = parse_analysis_text(f"```json\n{PAYLOAD}\n```")
    assert len(result.hazards) == 1


def test_finds_object_inside_prose():
    result = parse_analysis_text(f"Here is the assessment you asked for:\n{PAYLOAD}\nStay safe!")
    assert result.summary == "Tidy site."


def test_envelope_fields_are_tolerated():
    result = parse_analysis_text('{"hazards": "none", "overall_risk_level": 4, "summary": "   "}')
    assert result.hazards == []
    assert result.overall_risk_level is None
    assert result.summary == DEFAULT_SUMMARY


@pytest.mark.parametrize("text", [None, "", "   ", "I could not analyse this image.", "[1, 2, 3]", "{broken"])
def test_unparseable_answers_raise(text):
    with pytest.raises(ExternalServiceError):
        parse_analysis_text(text)


@pytest.mark.asyncio
async def test_missing_api_key_is_an_external_service_error():
    analyzer = GeminiImageAnalyzer(Settings(GEMINI_API_KEY=None))
    with pytest.raises(ExternalServiceError):
        await analyzer.analyze_image(b"img", "image/png")


@pytest.mark.asyncio
async def test_client_errors_are_wrapped(monkeypatch):
    analyzer = GeminiImageAnalyzer(Settings(GEMINI_API_KEY="test-key"))

    class ExplodingModels:
        def generate_content(self, **kwargs):
            raise RuntimeError("429 RESOURCE_EXHAUSTED")

    class FakeClient:
        models = ExplodingModels()

    monkeypatch.setattr(analyzer, "_configure_google_client", lambda: FakeClient())

    with pytest.raises(ExternalServiceError, match="quota"):
        await analyzer.analyze_image(b"img", "image/png")


@pytest.mark.asyncio
async def test_response_text_is_parsed(monkeypatch):
    analyzer = GeminiImageAnalyzer(Settings(GEMINI_API_KEY="test-key"))
    seen = {}

    class Response:
        text = PAYLOAD

    class Models:
        def generate_content(self, model, contents):
            seen["model"] = model
            seen["parts"] = contents
            return Response()

    class FakeClient:
        models = Models()

    monkeypatch.setattr(analyzer, "_configure_google_client", lambda: FakeClient())

    result = await analyzer.analyze_image(b"img", "image/webp")

    assert result.overall_risk_level == "Low"
    assert seen["model"] == analyzer.model_name
    assert seen["parts"][1]["inline_data"]["mime_type"] == "image/webp"
