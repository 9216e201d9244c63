"""
Text-to-Speech Service

Provides text-to-speech using the Azure Speech REST API.
Audio is requested as 16 kHz 16-bit mono RIFF/WAV so live clips and the
silent fallback share one container format.

Usage:
    from services.providers.azure_speech import AzureSpeechSynthesizer

    synthesizer = AzureSpeechSynthesizer(api_key="...", region="eastus")
    audio = await synthesizer.synthesize("apple", "en-US-AriaNeural")
"""

import asyncio
import time
from xml.sax.saxutils import escape

import requests

from services.providers.base import SpeechSynthesizer, SynthesizedAudio
from services.providers.offline import silent_wav
from utils.circuit_breaker import resilient_call
from utils.exceptions import ProviderError
from utils.logging import get_logger, log_api_call

logger = get_logger(__name__)


class AzureSpeechSynthesizer(SpeechSynthesizer):
    """
    Azure neural text-to-speech.

    Attributes:
        api_key: Azure Speech subscription key
        region: Azure region hosting the resource
        timeout: Per-attempt timeout in seconds
    """

    ENDPOINT = "https://{region}.tts.speech.microsoft.com/cognitiveservices/v1"
    OUTPUT_FORMAT = "riff-16khz-16bit-mono-pcm"
    CIRCUIT_NAME = "azure-speech"

    def __init__(
        self,
        api_key: str,
        region: str = "eastus",
        timeout: float = 30.0,
        max_retries: int = 1,
    ):
        if not api_key:
            raise ValueError("Azure Speech key not found. Set AZURE_SPEECH_API_KEY env variable.")

        self.api_key = api_key
        self.region = region
        self.timeout = timeout
        self.max_retries = max_retries
        self.name = f"azure:{region}"
        self._fallback = silent_wav()

        logger.info(f"AzureSpeechSynthesizer initialized, region: {self.region}")

    @staticmethod
    def build_ssml(text: str, voice: str) -> str:
        """Wrap text in the SSML envelope Azure expects."""
        return (
            "<speak version='1.0' xml:lang='en-US'>"
            f"<voice name='{escape(voice)}'>{escape(text)}</voice>"
            "</speak>"
        )

    async def synthesize(self, text: str, voice: str) -> SynthesizedAudio:
        """
        Convert text to speech audio.

        Returns:
            SynthesizedAudio: WAV bytes; a silent clip if the service fails
        """
        try:
            data = await resilient_call(
                asyncio.to_thread, self._post, text, voice,
                max_retries=self.max_retries,
                initial_delay=0.5,
                circuit_name=self.CIRCUIT_NAME,
                timeout=self.timeout,
            )
            return SynthesizedAudio(data=data, extension=".wav")
        except Exception as e:
            logger.warning(f"Speech synthesis degraded to silent clip: {e!r}")
            return SynthesizedAudio(data=self._fallback, extension=".wav", offline=True)

    def _post(self, text: str, voice: str) -> bytes:
        url = self.ENDPOINT.format(region=self.region)
        headers = {
            "Ocp-Apim-Subscription-Key": self.api_key,
            "Content-Type": "application/ssml+xml",
            "X-Microsoft-OutputFormat": self.OUTPUT_FORMAT,
            "User-Agent": "snapvocab",
        }

        start = time.perf_counter()
        try:
            logger.debug(f"Generating speech for: '{text[:50]}'")
            response = requests.post(
                url,
                data=self.build_ssml(text, voice).encode("utf-8"),
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout:
            log_api_call("AzureSpeech", "text-to-speech", success=False, error="timeout")
            raise
        except requests.RequestException as e:
            log_api_call("AzureSpeech", "text-to-speech", success=False, error=str(e))
            raise

        duration = (time.perf_counter() - start) * 1000
        if response.status_code != 200:
            error_msg = f"Status {response.status_code}: {response.text[:200]}"
            log_api_call("AzureSpeech", "text-to-speech", success=False, duration_ms=duration, error=error_msg)
            raise ProviderError(error_msg, service="azure-speech")

        if not response.content:
            log_api_call("AzureSpeech", "text-to-speech", success=False, duration_ms=duration, error="empty body")
            raise ProviderError("Azure Speech returned no audio", service="azure-speech")

        log_api_call("AzureSpeech", "text-to-speech", success=True, duration_ms=duration)
        return response.content
