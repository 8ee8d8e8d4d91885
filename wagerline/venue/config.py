"""
Venue API configuration constants.
"""

# Sandbox base URL (override via config/settings.yaml api.base_url)
BASE_URL = "https://ss-sandbox.betprophet.co/partner"

# Auth endpoints
LOGIN_ENDPOINT = "/auth/login"
REFRESH_ENDPOINT = "/auth/extend-session"

# Catalog endpoints
TOURNAMENTS_ENDPOINT = "/mm/get_tournaments"
EVENTS_ENDPOINT = "/mm/get_sport_events"
MARKETS_ENDPOINT = "/v2/mm/get_markets"
ODDS_LADDER_ENDPOINT = "/mm/get_odds_ladder"

# Wager endpoints
PLACE_WAGER_ENDPOINT = "/mm/place_wager"
CANCEL_WAGER_ENDPOINT = "/mm/cancel_wager"
WAGER_HISTORY_ENDPOINT = "/mm/get_wager_histories"

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}

# Response header carrying the remaining request quota
RATE_LIMIT_HEADER = "X-RateLimit-Remaining"

# Venue error codes meaning the access token is no longer valid
AUTH_EXPIRED_CODES = {"token_expired", "invalid_token", "unauthorized", "session_expired"}

# Human-readable hints for known venue error codes
ERROR_HINTS = {
    "line_not_found": "The line is stale or closed; reload the catalog and pick the selection again",
    "stale_line": "The line is stale or closed; reload the catalog and pick the selection again",
    "odds_not_on_ladder": "Odds must be one of the venue's allowed ladder prices",
    "insufficient_funds": "Account balance is too low for this stake",
    "insufficient_balance": "Account balance is too low for this stake",
    "batch_size_exceeded": "Too many wagers in one request; split the batch",
    "invalid_stake": "Stake must be between 0.01 and 100,000,000",
    "duplicate_external_id": "This external_id was already used; generate a new one",
    "token_expired": "Session expired; log in again",
    "invalid_token": "Session expired; log in again",
    "unauthorized": "Credentials were rejected; check the access and secret keys",
    "rate_limited": "Too many requests; slow down and retry shortly",
}
