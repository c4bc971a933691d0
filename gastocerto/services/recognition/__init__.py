"""Document recognition services package."""

from gastocerto.services.recognition.interface import (
    RecognitionFailure,
    RecognitionServiceInterface,
)
from gastocerto.services.recognition.gemini_service import (
    GeminiRecognitionService,
    parse_single_payload,
    parse_statement_payload,
)

__all__ = [
    "GeminiRecognitionService",
    "RecognitionFailure",
    "RecognitionServiceInterface",
    "parse_single_payload",
    "parse_statement_payload",
]
