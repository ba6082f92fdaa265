"""PhishHunter: layered phishing page detection."""

__version__ = "0.3.0"
