"""All magic numbers and configuration constants."""

SENTENCE_PAUSE_SECONDS = 0.3                 # gap between sentences during speak_all
SENTENCE_ID_PREFIX_LENGTH = 50               # chars of trimmed text used in a sentence id
PARTIAL_MATCH_THRESHOLD = 0.7                # word similarity at or above this is "partial"
TTS_RETRY_COUNT = 3                          # max attempts per synthesis request
TTS_RETRY_BASE_DELAY = 1.0                   # seconds, base delay for exponential backoff
TTS_RATE = "-10%"                            # speech rate: -10% = 10% slower than default
DEFAULT_VOICE = "en-US-AriaNeural"           # voice used when none is selected
RECOGNITION_MAX_RESTARTS = 5                 # unexpected-end restarts before giving up
RECOGNITION_RESTART_BASE_DELAY = 0.25        # seconds, doubled on every restart attempt
FATAL_RECOGNITION_ERRORS = ("audio-capture", "not-allowed")
IGNORED_RECOGNITION_ERRORS = ("no-speech",)
STORE_PATH = "practice_inputs.json"          # default location for saved candidate input
VERSION = "0.1.0"
