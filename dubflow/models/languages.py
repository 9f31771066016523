"""Languages offered for subtitles and dubbing."""

from __future__ import annotations

LANGUAGES: dict[str, str] = {
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
    "hi": "Hindi",
}


def is_supported(code: str) -> bool:
    return code in LANGUAGES


def language_name(code: str) -> str:
    """Display name for a language code; unknown codes are shown as-is."""
    return LANGUAGES.get(code, code)
