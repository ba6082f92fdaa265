"""Detection result models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class DetectionMethod(str, Enum):
    """Which stage produced a classification."""

    BLOOM = "bloom"  # Hostname filter hit confirmed by the corpus
    SIMHASH = "simhash"  # Page fingerprint matched a corpus sample
    GEMINI = "gemini"  # Fallback classifier verdict
    GEMINI_MISSING_KEY = "gemini-missing-key"  # Fallback skipped, no credential
    GEMINI_ERROR = "gemini-error"  # Transport failure or non-2xx status
    GEMINI_FORMAT_ERROR = "gemini-format-error"  # Unexpected response shape
    NONE = "none"  # No stage found evidence

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classifying one page."""

    is_phishing: bool
    method: DetectionMethod = DetectionMethod.NONE

    @classmethod
    def negative(cls, method: DetectionMethod = DetectionMethod.NONE) -> "ClassificationResult":
        return cls(is_phishing=False, method=method)

    def to_dict(self) -> dict:
        return {"isPhishing": self.is_phishing, "method": self.method.value}
