from fastapi import Request

from app.services.gemini_service import GeminiImageAnalyzer
from utils.file_utils import ImageStorage


def get_storage(request: Request) -> ImageStorage:
    return request.app.state.storage


def get_analyzer(request: Request) -> GeminiImageAnalyzer:
    """The AI vision collaborator; tests install any object with ``analyze_image``."""
    return request.app.state.analyzer
