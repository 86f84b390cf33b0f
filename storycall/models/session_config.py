"""
Session configuration sent to the OpenAI Realtime API.

A SessionConfiguration is built once per call attempt from the server defaults
and rendered into the provider's ``session`` object for the SDP exchange and
for ephemeral credential requests.
"""

from typing import Any, Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from storycall.config.constants import DEFAULT_OUTPUT_MODALITIES
from storycall.config.prompts import AGENT_INSTRUCTIONS
from storycall.config.settings import Settings


class SessionConfiguration(BaseModel):
    """Immutable record of the realtime session parameters."""

    model_config = ConfigDict(frozen=True)

    model: str = Field(..., description="Realtime model identifier")
    voice: str = Field(..., description="Output voice identifier")
    output_modalities: Tuple[str, ...] = Field(default=DEFAULT_OUTPUT_MODALITIES)
    instructions: str = Field(default=AGENT_INSTRUCTIONS)

    @field_validator("model", "voice")
    def validate_not_empty(cls, v):
        """Model and voice identifiers cannot be blank."""
        if not v.strip():
            raise ValueError("Identifier cannot be empty")
        return v

    @field_validator("output_modalities")
    def validate_modalities(cls, v):
        """At least one known output modality is required."""
        if not v or any(m not in ("audio", "text") for m in v):
            raise ValueError(f"Unsupported output modalities: {v}")
        return v

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionConfiguration":
        return cls(model=settings.model, voice=settings.voice)

    def to_upstream(self) -> Dict[str, Any]:
        """Render the provider's ``session`` object."""
        return {
            "type": "realtime",
            "model": self.model,
            "output_modalities": list(self.output_modalities),
            "audio": {"output": {"voice": self.voice}},
            "instructions": self.instructions,
        }
