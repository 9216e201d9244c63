"""
Application Constants

Centralizes the fixed numbers of the review algorithm and the ingestion
pipeline. Values that operators may tune live in settings.py instead.

Usage:
    from config.constants import INITIAL_INTERVAL_MINUTES, MIN_EASINESS
"""

# =============================================================================
# Review Scheduling
# =============================================================================

# A freshly created word is due this many minutes after creation
INITIAL_INTERVAL_MINUTES = 10

# Starting easiness factor for every review
INITIAL_EASINESS = 2.5

# Easiness is clamped to this band after every answer
MIN_EASINESS = 1.3
MAX_EASINESS = 2.8

# Minimum intervals (minutes) per rating bucket
FAMILIAR_FLOOR_MINUTES = 1440
SIMPLE_FLOOR_MINUTES = 720
UNFAMILIAR_FLOOR_MINUTES = 10


# =============================================================================
# Ingestion
# =============================================================================

# Confidence reported for the offline OCR placeholder
OFFLINE_OCR_CONFIDENCE = 0.42

# Fallback image extension when the upload carries none
DEFAULT_IMAGE_EXTENSION = ".jpg"

# Audio targets that can be requested for a word
AUDIO_TARGET_WORD = "word"
AUDIO_TARGET_DEFINITION = "enDefinition"
AUDIO_TARGET_EXAMPLE = "enExample"


# =============================================================================
# Speech
# =============================================================================

# Silent fallback clip format (RIFF/WAV, 16-bit mono PCM)
SILENT_CLIP_SAMPLE_RATE = 16000
SILENT_CLIP_DURATION_MS = 800
