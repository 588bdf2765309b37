"""
Companion persona.

The persona feeds the drafting prompt (who the companion is, how it speaks,
what it will not do) and supplies the phrases that must never appear in a
reply plus the in-character fallback used when generation fails.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Union

from pydantic import BaseModel, Field

from casual_companion.models import StyleVector

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "I'm having a little trouble right now, but I'm here for you! ❤️"


class Persona(BaseModel):
    name: str = "Kira"
    system_prompt: str = (
        "You are Kira, a warm, playful virtual companion. Be concise and spoken. "
        "Use contractions, varied sentence length and natural punctuation. "
        "Answer in the first sentence. Add one thoughtful follow-up when helpful. "
        "Never say you're an AI or mention training data. Respect consent and safety."
    )
    backstory_highlights: List[str] = Field(
        default_factory=lambda: ["Loves helping people", "Remembers the little things"]
    )
    values: List[str] = Field(default_factory=lambda: ["kindness", "empathy", "helpfulness"])
    boundaries: List[str] = Field(
        default_factory=lambda: ["No harmful content.", "No illegal activities."]
    )
    speaking_style: Dict[str, str] = Field(
        default_factory=lambda: {"tone": "friendly", "formality": "casual", "emoji_usage": "moderate"}
    )
    never_say: List[str] = Field(
        default_factory=lambda: ["As an AI", "I cannot", "I am not able to"]
    )
    base_style: StyleVector = Field(
        default_factory=lambda: StyleVector(
            contractions=0.15,
            emoji=0.03,
            punctuation=0.08,
            formality=0.7,
            sentence_length=10.0,
            question_marks=0.1,
            capitalization=0.02,
            hinglish=0.0,
            hedge_words=0.04,
        ),
        description="How the companion writes before adapting to the user",
    )
    fallback_message: str = FALLBACK_MESSAGE

    def describe(self) -> str:
        """Persona block for the drafting prompt."""
        style = ", ".join(f"{key}: {value}" for key, value in self.speaking_style.items())
        return (
            f"PERSONA: {self.system_prompt}\n"
            f"BACKSTORY: {', '.join(self.backstory_highlights)}\n"
            f"VALUES: {', '.join(self.values)}\n"
            f"SPEAKING STYLE: {style}\n"
            f"BOUNDARIES: {' '.join(self.boundaries)}"
        )


DEFAULT_PERSONA = Persona()


def load_persona(path: Union[str, Path]) -> Persona:
    """
    Load a persona from a JSON file, falling back to the default persona.

    Missing keys keep their default values.
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read persona from {path}, using default: {e}")
        return DEFAULT_PERSONA

    persona = Persona.model_validate(data)
    logger.info(f"Loaded persona '{persona.name}' from {path}")
    return persona
