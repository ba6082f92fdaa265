"""Utility helpers for PhishHunter."""
