"""Item classification components.

This package provides:
- Prompt assembly and decision parsing
- Classification service calling an OpenAI-compatible completion endpoint
"""

from feedfilter.classifier.prompts import build_prompt, parse_decision
from feedfilter.classifier.service import ClassificationResult, ClassificationService

__all__ = [
    # Prompts
    "build_prompt",
    "parse_decision",
    # Service
    "ClassificationResult",
    "ClassificationService",
]
