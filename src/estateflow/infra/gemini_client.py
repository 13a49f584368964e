"""Gemini model factory for the EstateFlow assistant."""

import google.generativeai as genai

from estateflow.app.config import get_settings


def get_model(
    model_name: str | None = None,
    temperature: float | None = None,
    system_instruction: str | None = None,
):
    """Return a configured Gemini GenerativeModel instance.

    Args:
        model_name: Gemini model identifier. Defaults to ``settings.gemini_model``.
        temperature: Generation temperature (0.0-2.0).
        system_instruction: Optional system-level instruction.

    Returns:
        A ``google.generativeai.GenerativeModel`` ready for ``start_chat``.
    """
    settings = get_settings()
    genai.configure(api_key=settings.gemini_api_key)

    generation_config = {
        "temperature": settings.gemini_temperature if temperature is None else temperature,
    }

    return genai.GenerativeModel(
        model_name=model_name or settings.gemini_model,
        generation_config=generation_config,
        system_instruction=system_instruction,
    )


def to_history_entry(role: str, text: str) -> dict:
    """Build one ``start_chat`` history entry."""
    return {"role": role, "parts": [text]}
