"""
Centralized constants for the PcAnalys report service.
"""

# --- Unit Reconciliation ---
# Capacities strictly above this are bytes; positive values at or below it are MB.
BYTES_THRESHOLD = 1024 * 1024
BYTES_PER_MB = 1024 * 1024
# Frequencies below this are GHz (legacy agents), at or above it MHz.
GHZ_FREQUENCY_CEILING = 100

# --- Scoring ---
GIB = 1024 ** 3
CPU_SCORE_DIVISOR = 40000          # cores * MHz
GPU_REFERENCE_BYTES = 8 * GIB
RAM_REFERENCE_BYTES = 16 * GIB
SCORE_CEILING = 100

# --- Generation ---
DEFAULT_GROQ_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_GROQ_MODEL = "llama-3.1-8b-instant"
DEFAULT_TEMPERATURE = 0.3
DEFAULT_MAX_TOKENS = 1000
DEFAULT_RECOMMENDATION_LANGUAGE = "French"

# --- Streaming ---
CHANNEL_CAPACITY = 1               # chunks in flight between producer and response
GENERATION_FAILURE_NOTICE = "\n\nError generating recommendations. Please try again."
PERSISTENCE_FAILURE_NOTICE = "\n\nRecommendations could not be saved to your report."

# --- Stats ---
DEFAULT_STATS_WINDOW_DAYS = 30
