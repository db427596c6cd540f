"""
Centralized constants for chat, market data and the client controller (Encapsulate What Changes).

Change windows, limits and fixed user-facing strings here instead of scattering literals
across services, routes and the client.
"""

# Client cooldown between accepted sends (client-enforced, not a server guarantee)
RATE_LIMIT_WINDOW_MS = 20000
COUNTDOWN_TICK_SECONDS = 0.05  # smooth SS:CC display
# Countdown phases by remaining fraction of the window
COUNTDOWN_EARLY_FRACTION = 0.6
COUNTDOWN_MIDDLE_FRACTION = 0.3

THINKING_CYCLE_SECONDS = 1.5
# Delay between the content fade-in and the enrichment widgets
ENRICHMENT_REVEAL_DELAY_SECONDS = 0.2

# Completion request: last N history turns sent to the model
HISTORY_TURN_LIMIT = 10
# At most one tool round-trip per user message (tool call + one continuation request)
MAX_TOOL_ROUNDS = 1
MAX_MODEL_REQUESTS = MAX_TOOL_ROUNDS + 1
TOOL_SYMBOL_LIMIT = 5

# Chat titles
CHAT_TITLE_MAX_CHARS = 50  # longer first messages are cut here and get the ellipsis
CHAT_TITLE_ELLIPSIS = "..."
DEFAULT_CHAT_TITLE = "New Chat"

# Market data
RELEVANT_SYMBOL_LIMIT = 3  # symbols snapshotted per chat message (upstream rate limits)
KLINE_INTERVAL = "1h"
KLINE_LIMIT = 100
CHART_EXCHANGE = "BINANCE"
CHART_INTERVAL = "1H"
MARKET_CONTEXT_PREFIX = "Current market data: "

FALLBACK_GREETING = (
    "I'm here to help you with crypto trading analysis. "
    "What would you like to know about the markets today?"
)
MSG_SEND_FAILED = "I encountered an error processing your request. Please try again."
MSG_CONNECTION_FAILED = (
    "I'm having trouble connecting to my systems. Please check your connection and try again."
)
