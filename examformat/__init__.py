"""Core modules for extracting exam questions and laying out exam papers."""

from .models import ExamData, ExamHeaderInfo, ExtractionResult, Question
from .service import ExamFormatService

__all__ = [
    "ExamData",
    "ExamHeaderInfo",
    "ExtractionResult",
    "Question",
    "ExamFormatService",
]
