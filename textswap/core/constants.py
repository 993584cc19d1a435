"""Service-wide constants for textswap-service.

This module centralizes the defaults that configuration, the upstream
transport and the HTTP layer share, so that a value changes in one place.

Usage:
    from textswap.core.constants import DEFAULT_DETECT_TEXT_MODELS, API_KEY_HEADER

Note: These are defaults. Most can be overridden via TEXTSWAP_* environment
variables (see textswap.core.config.Settings).
"""

# =============================================================================
# Service Defaults
# =============================================================================

DEFAULT_SERVICE_NAME = "textswap-service"
DEFAULT_PORT = 3001
DEFAULT_HOST = "0.0.0.0"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_ENVIRONMENT = "development"


# =============================================================================
# Upstream (OpenRouter-compatible chat completions)
# =============================================================================

DEFAULT_UPSTREAM_BASE_URL = "https://openrouter.ai/api/v1"
CHAT_COMPLETIONS_PATH = "/chat/completions"
MODELS_PATH = "/models"

DEFAULT_REQUEST_TIMEOUT_SECONDS = 45.0
DEFAULT_MODELS_TIMEOUT_SECONDS = 15.0
DEFAULT_BATCH_CONCURRENCY = 3

# Per-request credential header (checked before the body apiKey field)
API_KEY_HEADER = "x-openrouter-key"
REQUEST_ID_HEADER = "X-Request-ID"


# =============================================================================
# Model Policies (ordered, most preferred first)
# =============================================================================

DEFAULT_DETECT_TEXT_MODELS = [
    "anthropic/claude-3.5-sonnet",
    "openai/gpt-4o",
    "google/gemini-pro-1.5",
    "google/gemini-2.5-pro",
    "google/gemini-2.5-flash",
    "openai/gpt-4o-mini",
    "google/gemini-2.0-flash-001",
]

DEFAULT_EDIT_IMAGE_MODELS = [
    "black-forest-labs/flux-1.1-pro",
    "black-forest-labs/flux-dev",
    "google/gemini-2.5-flash-image-preview",
]

DEFAULT_REPLACE_TEXT_MODELS = [
    "black-forest-labs/flux-1.1-pro",
    "black-forest-labs/flux-dev",
    "google/gemini-2.5-flash-image-preview",
]

DEFAULT_ANALYZE_TEXT_MODELS = [
    "google/gemini-2.5-flash-image-preview",
    "google/gemini-1.5-flash",
    "google/gemini-pro-1.5",
    "openai/gpt-4o",
    "openai/gpt-4o-mini",
]

# Used when none of a policy's preferred ids are listed as available upstream
FUZZY_MODEL_PATTERN = r"gpt-4o|claude-3\.5|gemini.*flash"
FUZZY_MODEL_LIMIT = 3


# =============================================================================
# Generation Parameters per Operation
# =============================================================================

DETECT_TEXT_MAX_TOKENS = 1500
DETECT_TEXT_TEMPERATURE = 0.1
EDIT_IMAGE_MAX_TOKENS = 1000
EDIT_IMAGE_TEMPERATURE = 0.7
REPLACE_TEXT_MAX_TOKENS = 1000
REPLACE_TEXT_TEMPERATURE = 0.3
ANALYZE_TEXT_MAX_TOKENS = 1500
ANALYZE_TEXT_TEMPERATURE = 0.1

DEFAULT_DETECTION_CONFIDENCE = 0.8


# =============================================================================
# CORS
# =============================================================================

DEFAULT_CORS_ORIGINS = [
    "http://localhost:5000",
    "http://127.0.0.1:5000",
]
DEFAULT_CORS_ORIGIN_REGEX = r"https?://.*\.(replit\.dev|repl\.co)"
