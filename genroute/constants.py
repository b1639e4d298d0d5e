# genroute/constants.py
"""
Default constants for genroute.
All tunable values are centralised here so they can be overridden via RouterConfig
without touching internal logic.
"""

# ---------------------------------------------------------------------------
# Queue spacing
# ---------------------------------------------------------------------------
SAFETY_MARGIN: float = 1.1
"""Multiplier applied to 60s / rpm so requests are spaced slightly wider than the budget."""

# ---------------------------------------------------------------------------
# Upstream calls
# ---------------------------------------------------------------------------
CALL_TIMEOUT_SECONDS: float = 60.0
"""Upper bound on a single upstream call. Expiry counts as the tier being unavailable."""

GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta/models/"

# ---------------------------------------------------------------------------
# Response cache
# ---------------------------------------------------------------------------
CACHE_TTL_SECONDS: int = 24 * 60 * 60
"""Entries older than this are treated as absent."""

# ---------------------------------------------------------------------------
# Cost estimation
# ---------------------------------------------------------------------------
CHARS_PER_TOKEN: int = 4
"""Rough size heuristic used for token estimates (1 token ~ 4 characters)."""

DEFAULT_INPUT_COST_PER_MILLION: float = 0.10
DEFAULT_OUTPUT_COST_PER_MILLION: float = 0.40

# ---------------------------------------------------------------------------
# Latency tracking
# ---------------------------------------------------------------------------
EMA_ALPHA: float = 0.2
"""Exponential moving average smoothing factor for latency tracking."""

# ---------------------------------------------------------------------------
# Observability
# ---------------------------------------------------------------------------
DEFAULT_FEATURE: str = "generic"
RECORD_STATUSES = frozenset({"success", "error", "cached"})

# ---------------------------------------------------------------------------
# Default tier table (Gemini models, most preferred first)
# ---------------------------------------------------------------------------
GEMINI_FLASH_LITE_2_5: str = "gemini-2.5-flash-lite"
GEMINI_FLASH_2_5: str = "gemini-2.5-flash"
GEMINI_FLASH_2_0: str = "gemini-2.0-flash-exp"
GEMINI_FLASH_LITE_2_0: str = "gemini-2.0-flash-lite-preview-02-05"
GEMINI_PRO_2_5: str = "gemini-2.5-pro"

DEFAULT_TIERS: list[dict] = [
    {
        "id": GEMINI_FLASH_LITE_2_5,
        "name": "Gemini 2.5 Flash Lite",
        "rpm_limit": 15,
        "priority": 0,
        "input_cost_per_million": 0.075,
        "output_cost_per_million": 0.30,
    },
    {
        "id": GEMINI_FLASH_2_5,
        "name": "Gemini 2.5 Flash",
        "rpm_limit": 10,
        "priority": 1,
        "input_cost_per_million": 0.15,
        "output_cost_per_million": 0.60,
    },
    {
        "id": GEMINI_FLASH_2_0,
        "name": "Gemini 2.0 Flash",
        "rpm_limit": 15,
        "priority": 2,
        "input_cost_per_million": 0.10,
        "output_cost_per_million": 0.40,
    },
    {
        "id": GEMINI_FLASH_LITE_2_0,
        "name": "Gemini 2.0 Flash Lite",
        "rpm_limit": 30,
        "priority": 3,
    },
    {
        "id": GEMINI_PRO_2_5,
        "name": "Gemini 2.5 Pro",
        "rpm_limit": 2,
        "priority": 4,
        "input_cost_per_million": 2.50,
        "output_cost_per_million": 10.00,
    },
]

# ---------------------------------------------------------------------------
# Persistence keys
# ---------------------------------------------------------------------------
STATE_PREFIX: str = "genroute"
EXHAUSTION_KEY: str = STATE_PREFIX + ":exhaustion"
CACHE_KEY_TMPL: str = STATE_PREFIX + ":cache:{key}"
