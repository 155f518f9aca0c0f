import pytest

from app.ai.capability import GeminiLabCapability, GenerationError
from app.ai.gemini_core import GeminiClient, GeminiUnavailable, KeyStats


def test_rate_limited_key_is_skipped(monkeypatch):
    client = GeminiClient(["k1", "k2"], "gemini-test")
    used = []

    def fake_call(api_key, prompt):
        used.append(api_key)
        if api_key == "k1":
            raise RuntimeError("429 RESOURCE_EXHAUSTED")
        return "ok"

    monkeypatch.setattr(client, "_call", fake_call)

    assert client.generate_sync("hello") == "ok"
    assert client.generate_sync("again") == "ok"
    # k1 is backing off, so the second request goes straight to k2
    assert used == ["k1", "k2", "k2"]
    assert client.key_stats[0].consecutive_429s == 1


def test_all_keys_limited_raises_unavailable(monkeypatch):
    client = GeminiClient(["k1"], "gemini-test")

    def fake_call(api_key, prompt):
        raise RuntimeError("quota exceeded")

    monkeypatch.setattr(client, "_call", fake_call)

    with pytest.raises(GeminiUnavailable):
        client.generate_sync("hello")


def test_other_errors_propagate(monkeypatch):
    client = GeminiClient(["k1"], "gemini-test")

    def fake_call(api_key, prompt):
        raise ValueError("bad request")

    monkeypatch.setattr(client, "_call", fake_call)

    with pytest.raises(ValueError):
        client.generate_sync("hello")


def test_no_keys_is_unavailable():
    with pytest.raises(GeminiUnavailable):
        GeminiClient([], "gemini-test").generate_sync("hello")


def test_rpm_window():
    stats = KeyStats(key_name="key_1", rpm_limit=2)
    stats.record_request()
    assert stats.can_make_request()
    stats.record_request()
    assert not stats.can_make_request()


class FakeClient:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.error:
            raise self.error
        return self.reply


@pytest.mark.asyncio
async def test_capability_parses_fenced_json():
    client = FakeClient(reply='```json\n{"title": "Lab", "virtualLab": {}}\n```')

    result = await GeminiLabCapability(client).generate_lab_content("fizz", "chemistry", 2)

    assert result.ok
    assert result.value["title"] == "Lab"
    assert "fizz" in client.prompts[0]


@pytest.mark.asyncio
@pytest.mark.parametrize("client, expected", [
    (FakeClient(error=GeminiUnavailable("none")), GenerationError.UNAVAILABLE),
    (FakeClient(error=RuntimeError("500")), GenerationError.UPSTREAM),
    (FakeClient(reply="sorry, I cannot help"), GenerationError.UNPARSABLE),
])
async def test_capability_maps_failures(client, expected):
    result = await GeminiLabCapability(client).generate_hint({}, None, {"subject": "physics"})

    assert not result.ok
    assert result.error == expected
