"""Shared defaults for the orchestration layer."""

# Retry policy: retries after the first attempt and the delay (seconds)
# slept before each retry, indexed by retry number.
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAYS: tuple[float, ...] = (1.0, 2.0, 4.0)

# Health monitor
HEALTH_CHECK_INTERVAL = 30.0
HEALTH_CHECK_TIMEOUT = 10.0

# Backend calls
PROVIDER_TIMEOUT = 60.0
DEFAULT_MAX_TOKENS = 1000
DEFAULT_TEMPERATURE = 0.7

# Probes use the smallest request each backend accepts
PROBE_PROMPT = "Hello"
PROBE_MAX_TOKENS = 5

# Cost estimation
DEFAULT_CHARS_PER_TOKEN = 4.0
DEFAULT_ESTIMATED_OUTPUT_TOKENS = 1000

# Audio and image defaults
TRANSCRIPTION_MODEL = "whisper-1"
SPEECH_MODEL = "tts-1"
DEFAULT_VOICE = "alloy"
DEFAULT_IMAGE_PROMPT = "Describe this image in detail"
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"
