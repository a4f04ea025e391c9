"""
StudyForge Constants

Centralized configuration values to avoid magic numbers scattered throughout the codebase.
Import from here instead of hardcoding values. config.yaml overrides the
generation counts and model defaults at runtime.
"""

# =============================================================================
# LLM PARAMETERS
# =============================================================================

# Temperature settings for different use cases
LLM_TEMPERATURE_DEFAULT = 0.7     # Default temperature for balanced output
LLM_TEMPERATURE_PRECISE = 0.3     # Lower temperature for JSON array output


# =============================================================================
# MODEL DEFAULTS
# =============================================================================

DEFAULT_PROVIDER = "openai"
DEFAULT_OPENAI_MODEL = "gpt-4.1-mini"
DEFAULT_GATEWAY_MODEL = "google/gemini-2.5-flash"


# =============================================================================
# GENERATION COUNTS
# =============================================================================

DEFAULT_QUIZ_QUESTIONS = 10
DEFAULT_FLASHCARDS = 15
DEFAULT_CODING_EXERCISES = 5


# =============================================================================
# CONTENT LIMITS
# =============================================================================

CONTENT_MAX_CHARS = 60000         # Lecture text beyond this is truncated before prompting
LOG_PREVIEW_CHARS = 200           # Model output preview written to the log


# =============================================================================
# USER-FACING ERRORS
# =============================================================================

ERROR_RATE_LIMIT = "Rate limit exceeded. Please try again in a moment."
ERROR_QUOTA = "AI service quota exceeded. Please contact support."
