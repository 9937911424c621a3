"""Voice synthesis via edge-tts, played back through sounddevice."""

import asyncio
import io
import logging

import edge_tts
import numpy as np
from pydub import AudioSegment

from sentence_practice.constants import TTS_RATE, TTS_RETRY_BASE_DELAY, TTS_RETRY_COUNT
from sentence_practice.models import SynthesisEvent

logger = logging.getLogger(__name__)

# Hardcoded English voice pool (avoids network call at startup)
VOICE_POOL = [
    "en-US-AriaNeural",
    "en-US-DavisNeural",
    "en-US-GuyNeural",
    "en-US-JennyNeural",
    "en-US-SaraNeural",
    "en-US-TonyNeural",
    "en-GB-RyanNeural",
    "en-GB-SoniaNeural",
    "en-GB-ThomasNeural",
    "en-AU-NatashaNeural",
    "en-AU-WilliamNeural",
    "en-CA-ClaraNeural",
    "en-CA-LiamNeural",
    "en-IE-EmilyNeural",
]


class SynthesisError(Exception):
    pass


async def synthesize(text: str, voice: str, rate: str = TTS_RATE) -> bytes:
    """Fetch MP3 audio for text with retry logic.

    Retries on network errors, HTTP errors, or an empty audio stream, with
    exponential backoff between attempts. Rate is a relative string like "-10%".
    """
    last_error = None
    for attempt in range(TTS_RETRY_COUNT):
        try:
            communicate = edge_tts.Communicate(text, voice, rate=rate)
            audio = bytearray()
            async for chunk in communicate.stream():
                if chunk["type"] == "audio":
                    audio.extend(chunk["data"])

            if audio:
                return bytes(audio)

            # Empty stream counts as a failure
            last_error = SynthesisError(f"TTS produced no audio for: {text[:50]}...")
        except Exception as e:
            last_error = e

        if attempt < TTS_RETRY_COUNT - 1:
            delay = TTS_RETRY_BASE_DELAY * (2 ** attempt)
            logger.warning("Synthesis attempt %d failed (%s), retrying in %.1fs", attempt + 1, last_error, delay)
            await asyncio.sleep(delay)

    raise last_error


def decode_audio(data: bytes) -> tuple[np.ndarray, int, float]:
    """Decode MP3 bytes into (samples, frame_rate, duration_seconds).

    Samples are float32 in [-1, 1], shaped (frames, channels).
    """
    audio = AudioSegment.from_file(io.BytesIO(data), format="mp3")
    samples = np.array(audio.get_array_of_samples(), dtype=np.float32)
    samples = samples / float(1 << (8 * audio.sample_width - 1))
    samples = samples.reshape((-1, audio.channels))
    return samples, audio.frame_rate, len(audio) / 1000.0


class SoundDevicePlayer:
    """Non-blocking playback on the default output device."""

    def play(self, samples: np.ndarray, frame_rate: int) -> None:
        import sounddevice as sd
        sd.play(samples, frame_rate)

    def stop(self) -> None:
        import sounddevice as sd
        sd.stop()


class SynthesisHandle:
    """The single in-flight utterance returned by EdgeSynthesisBackend.request()."""

    def __init__(self, task: asyncio.Task, player):
        self._task = task
        self._player = player

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        """Abort synthesis or silence playback. No further events are emitted."""
        if self._task.done():
            return
        self._task.cancel()
        self._player.stop()


class EdgeSynthesisBackend:
    """Synthesis backend emitting start/end/error events for each request.

    request() must be called from a running event loop. Events are delivered
    on that loop: "start" once audio begins playing, "end" when the clip has
    finished, or a single "error" if synthesis fails after all retries.
    """

    def __init__(self, player=None):
        self._player = player if player is not None else SoundDevicePlayer()

    def request(self, text: str, voice: str, rate: str, on_event) -> SynthesisHandle:
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._run(text, voice, rate, on_event))
        return SynthesisHandle(task, self._player)

    async def _run(self, text: str, voice: str, rate: str, on_event) -> None:
        try:
            data = await synthesize(text, voice, rate=rate)
            samples, frame_rate, duration = decode_audio(data)
        except Exception as e:
            logger.warning("Synthesis failed for %r: %s", text[:50], e)
            on_event(SynthesisEvent("error", code="synthesis-failed"))
            return

        try:
            self._player.play(samples, frame_rate)
        except Exception as e:
            logger.warning("Audio playback failed: %s", e)
            on_event(SynthesisEvent("error", code="audio-output"))
            return

        on_event(SynthesisEvent("start"))
        await asyncio.sleep(duration)
        on_event(SynthesisEvent("end"))


def list_voices(filter_str: str | None = None) -> list[str]:
    """Voices from the bundled pool, optionally filtered by substring."""
    if not filter_str:
        return list(VOICE_POOL)
    return [v for v in VOICE_POOL if filter_str.lower() in v.lower()]
