"""
Tool execution models.
"""

from dataclasses import dataclass


@dataclass
class ToolResult:
    """Outcome of one tool call.

    ``model_text`` is fed back to the completion service as the tool message;
    ``public_text`` is safe to show the patient if the follow-up call fails.
    """

    ok: bool
    model_text: str
    public_text: str

    def __str__(self) -> str:  # pragma: no cover - simple
        return self.public_text
