from types import SimpleNamespace

import pytest

import clinic_receptionist.services.orchestration.compression as compression_module
from clinic_receptionist.services.orchestration import HistoryCompressor, HistorySummary


def history(n):
    return [{"role": "user" if i % 2 == 0 else "assistant", "content": f"m{i}"} for i in range(n)]


@pytest.fixture
def compressor(settings):
    return HistoryCompressor(settings)


@pytest.mark.asyncio
async def test_short_history_is_untouched(compressor, monkeypatch):
    async def should_not_run(*args, **kwargs):
        raise AssertionError("summarizer should not run")

    monkeypatch.setattr(compression_module.Runner, "run", should_not_run)
    messages = history(10)

    assert await compressor.compress(messages) == messages


@pytest.mark.asyncio
async def test_long_history_is_summarized(compressor, monkeypatch):
    seen = {}

    async def fake_run(agent, input, run_config=None):
        seen["input"] = input
        return SimpleNamespace(final_output=HistorySummary(summary="Wants a cleaning Friday; name Jane."))

    monkeypatch.setattr(compression_module.Runner, "run", fake_run)
    messages = history(12)

    result = await compressor.compress(messages)

    assert result[0] == {"role": "user", "content": "[Context: Wants a cleaning Friday; name Jane.]"}
    assert result[1:] == messages[-4:]
    assert "user: m0" in seen["input"]
    assert "m8" not in seen["input"]


@pytest.mark.asyncio
async def test_summarizer_failure_truncates(compressor, monkeypatch):
    async def failing_run(*args, **kwargs):
        raise RuntimeError("model unavailable")

    monkeypatch.setattr(compression_module.Runner, "run", failing_run)
    messages = history(15)

    assert await compressor.compress(messages) == messages[-10:]


@pytest.mark.asyncio
async def test_empty_summary_truncates(compressor, monkeypatch):
    async def empty_run(*args, **kwargs):
        return SimpleNamespace(final_output=HistorySummary(summary="   "))

    monkeypatch.setattr(compression_module.Runner, "run", empty_run)
    messages = history(11)

    assert await compressor.compress(messages) == messages[-10:]
