"""
Tests for the provider adapters and their offline fallbacks.

No network: the Gemini client and ``requests.post`` are replaced with mocks.
"""

import io
import json
import wave
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from config.settings import Settings
from services.providers import build_providers
from services.providers.azure_speech import AzureSpeechSynthesizer
from services.providers.base import Gloss
from services.providers.gemini import GeminiLexicon, parse_ocr_payload
from services.providers.offline import OfflineLexicon, SilentSpeech, silent_wav
from utils import circuit_breaker
from utils.exceptions import ProviderError


@pytest.fixture(autouse=True)
def fresh_circuits(monkeypatch):
    """Each test starts with closed circuits."""
    monkeypatch.setattr(circuit_breaker, "_circuit_breakers", {})


def _gemini_client(*replies):
    """Fake google-genai client whose generate_content yields ``replies`` in order."""
    side_effect = [
        reply if isinstance(reply, Exception) else SimpleNamespace(text=reply)
        for reply in replies
    ]
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(side_effect=side_effect)
    return client


class TestOfflineProviders:

    def test_silent_wav_header(self):
        data = silent_wav()
        assert data[:4] == b"RIFF" and data[8:12] == b"WAVE"

        with wave.open(io.BytesIO(data)) as clip:
            assert clip.getnchannels() == 1
            assert clip.getsampwidth() == 2
            assert clip.getframerate() == 16000
            assert clip.getnframes() == 16000 * 800 // 1000

    @pytest.mark.asyncio
    async def test_offline_lexicon(self):
        lexicon = OfflineLexicon()

        [candidate] = await lexicon.extract(b"img", "image/jpeg")
        english = await lexicon.define("apple")
        chinese = await lexicon.translate("apple", english)

        assert candidate.lemma == "example"
        assert candidate.confidence == pytest.approx(0.42)
        assert english.offline and chinese.offline
        assert "apple" in english.definition
        assert "apple" in chinese.example

    @pytest.mark.asyncio
    async def test_silent_speech(self):
        audio = await SilentSpeech().synthesize("hello", "en-US-AriaNeural")
        assert audio.offline
        assert audio.extension == ".wav"


class TestParseOcrPayload:

    def test_words_object(self):
        payload = {"words": [{"lemma": "Cat", "confidence": 0.9}, {"word": "dog", "confidence": 2}]}
        candidates = parse_ocr_payload(payload)

        assert [(c.lemma, c.confidence) for c in candidates] == [("cat", 0.9), ("dog", 1.0)]

    def test_bare_list_of_strings(self):
        assert [c.lemma for c in parse_ocr_payload(["apple", " ", "Pear"])] == ["apple", "pear"]

    def test_single_object(self):
        [candidate] = parse_ocr_payload({"lemma": "tree", "confidence": "bad"})
        assert candidate.lemma == "tree"
        assert candidate.confidence == 0.0

    def test_empty_words(self):
        assert parse_ocr_payload({"words": []}) == []

    def test_unexpected_shape(self):
        with pytest.raises(ProviderError):
            parse_ocr_payload("cat dog")


class TestGeminiLexicon:

    def test_requires_key_or_client(self):
        with pytest.raises(ValueError):
            GeminiLexicon(api_key=None)

    @pytest.mark.asyncio
    async def test_define_parses_fenced_json(self):
        reply = "```json\n" + json.dumps({"definition": "A fruit.", "example": "I ate an apple."}) + "\n```"
        lexicon = GeminiLexicon(client=_gemini_client(reply), max_retries=0)

        gloss = await lexicon.define("apple")

        assert gloss == Gloss(definition="A fruit.", example="I ate an apple.")

    @pytest.mark.asyncio
    async def test_extract(self):
        reply = json.dumps({"words": [{"lemma": "cat", "confidence": 0.8}]})
        lexicon = GeminiLexicon(client=_gemini_client(reply), max_retries=0)

        [candidate] = await lexicon.extract(b"img", "image/png")

        assert candidate.lemma == "cat"

    @pytest.mark.asyncio
    async def test_empty_extraction_is_not_replaced(self):
        lexicon = GeminiLexicon(client=_gemini_client(json.dumps({"words": []})), max_retries=0)

        assert await lexicon.extract(b"img", "image/png") == []

    @pytest.mark.asyncio
    async def test_api_error_falls_back_to_placeholder(self):
        lexicon = GeminiLexicon(client=_gemini_client(RuntimeError("quota")), max_retries=0)

        gloss = await lexicon.define("apple")

        assert gloss.offline
        assert "apple" in gloss.definition

    @pytest.mark.asyncio
    async def test_incomplete_entry_falls_back(self):
        reply = json.dumps({"definition": "A fruit.", "example": ""})
        lexicon = GeminiLexicon(client=_gemini_client(reply), max_retries=0)

        gloss = await lexicon.translate("apple", Gloss("A fruit.", "I ate an apple."))

        assert gloss.offline

    @pytest.mark.asyncio
    async def test_retry_then_success(self):
        reply = json.dumps({"definition": "A fruit.", "example": "I ate an apple."})
        client = _gemini_client(RuntimeError("flaky"), reply)
        lexicon = GeminiLexicon(client=client, max_retries=1)

        gloss = await lexicon.define("apple")

        assert not gloss.offline
        assert client.aio.models.generate_content.await_count == 2

    @pytest.mark.asyncio
    async def test_open_circuit_skips_calls(self):
        client = _gemini_client(*[RuntimeError("down")] * 10)
        lexicon = GeminiLexicon(client=client, max_retries=0)

        for _ in range(6):
            assert (await lexicon.define("apple")).offline

        # Threshold is 5 failures; the sixth call never reaches the client
        assert client.aio.models.generate_content.await_count == 5


class TestAzureSpeech:

    def test_ssml_is_escaped(self):
        ssml = AzureSpeechSynthesizer.build_ssml("Tom & <Jerry>", "en-US-AriaNeural")
        assert "Tom &amp; &lt;Jerry&gt;" in ssml
        assert "<voice name='en-US-AriaNeural'>" in ssml

    @pytest.mark.asyncio
    async def test_successful_synthesis(self):
        response = MagicMock(status_code=200, content=b"RIFFdata")
        synthesizer = AzureSpeechSynthesizer(api_key="key", max_retries=0)

        with patch("services.providers.azure_speech.requests.post", return_value=response) as post:
            audio = await synthesizer.synthesize("apple", "en-US-AriaNeural")

        assert audio.data == b"RIFFdata"
        assert not audio.offline
        headers = post.call_args.kwargs["headers"]
        assert headers["X-Microsoft-OutputFormat"] == "riff-16khz-16bit-mono-pcm"
        assert post.call_args.args[0] == "https://eastus.tts.speech.microsoft.com/cognitiveservices/v1"

    @pytest.mark.asyncio
    async def test_error_status_gives_silent_clip(self):
        response = MagicMock(status_code=401, text="Unauthorized", content=b"")
        synthesizer = AzureSpeechSynthesizer(api_key="key", max_retries=0)

        with patch("services.providers.azure_speech.requests.post", return_value=response):
            audio = await synthesizer.synthesize("apple", "en-US-AriaNeural")

        assert audio.offline
        assert audio.data == silent_wav()


class TestBuildProviders:

    def test_offline_without_keys(self):
        config = Settings(GOOGLE_API_KEY=None, AZURE_SPEECH_API_KEY=None)
        providers = build_providers(config)

        assert isinstance(providers.definitions, OfflineLexicon)
        assert isinstance(providers.speech, SilentSpeech)
        assert providers.mode["speech"] == "offline"

    def test_force_mock_overrides_keys(self):
        config = Settings(
            GOOGLE_API_KEY="g",
            GEMINI_FORCE_MOCK=True,
            AZURE_SPEECH_API_KEY="a",
            AZURE_SPEECH_FORCE_MOCK=True,
        )
        providers = build_providers(config)

        assert isinstance(providers.ocr, OfflineLexicon)
        assert isinstance(providers.speech, SilentSpeech)

    def test_live_speech_with_key(self):
        config = Settings(AZURE_SPEECH_API_KEY="a", AZURE_SPEECH_REGION="westeurope")
        providers = build_providers(config)

        assert isinstance(providers.speech, AzureSpeechSynthesizer)
        assert providers.speech.region == "westeurope"
