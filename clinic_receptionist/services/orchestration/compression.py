"""
History compression for long free-text conversations.
"""

from typing import Dict, List, Optional

from agents import Agent, ModelSettings, RunConfig, Runner
from pydantic import BaseModel, ConfigDict

from ...config import Settings, get_settings
from ...utils.logging import get_logger

logger = get_logger("clinic_receptionist.compression")

SUMMARY_INSTRUCTIONS = (
    "In 2-3 short sentences summarize: what does the patient want (book, change, cancel, hours, "
    "insurance) and what info we already have (date, time, name, email, phone). No fluff."
)


class HistorySummary(BaseModel):
    """Structured output of the summarizer."""

    model_config = ConfigDict(extra="forbid")

    summary: str


class HistoryCompressor:
    """Fold older turns into one context line via a small auxiliary agent."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.agent = Agent(
            name="History Summarizer",
            instructions=SUMMARY_INSTRUCTIONS,
            model=self.settings.summary_model,
            model_settings=ModelSettings(temperature=0.0, max_tokens=150),
            output_type=HistorySummary,
        )

    def truncate(self, messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
        return messages[-self.settings.history_compress_threshold:]

    async def compress(self, messages: List[Dict[str, str]]) -> List[Dict[str, str]]:
        """Return ``messages`` unchanged, or a summary line plus the recent turns."""
        threshold = self.settings.history_compress_threshold
        keep = self.settings.history_keep_recent
        if len(messages) <= threshold:
            return messages

        older, recent = messages[:-keep], messages[-keep:]
        transcript = "\n".join(f"{m['role']}: {m['content']}" for m in older)
        try:
            result = await Runner.run(
                self.agent,
                input=transcript,
                run_config=RunConfig(tracing_disabled=True, trace_include_sensitive_data=False),
            )
            output = result.final_output
            summary = output.summary.strip() if isinstance(output, HistorySummary) else ""
        except Exception:
            logger.exception("History summarization failed; truncating instead")
            return self.truncate(messages)

        if not summary:
            logger.warning("History summarization returned nothing; truncating instead")
            return self.truncate(messages)
        return [{"role": "user", "content": f"[Context: {summary}]"}] + recent
