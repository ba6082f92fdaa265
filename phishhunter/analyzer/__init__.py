"""Analyzer modules for PhishHunter."""

from .engine import DetectionEngine, fingerprint_matches
from .fingerprint import clean_html, compute_fingerprint, strip_scripts_and_styles
from .gemini import GeminiClassifier
from .membership import FilterManager, MembershipFilter
from .models import ClassificationResult, DetectionMethod

__all__ = [
    "ClassificationResult",
    "DetectionEngine",
    "DetectionMethod",
    "FilterManager",
    "GeminiClassifier",
    "MembershipFilter",
    "clean_html",
    "compute_fingerprint",
    "fingerprint_matches",
    "strip_scripts_and_styles",
]
