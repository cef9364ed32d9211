"""Configuration module for the odds service."""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# API Configuration
ODDS_API_BASE_URL = os.getenv("ODDS_API_BASE_URL", "https://api.the-odds-api.com/v4")
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Timeouts (seconds)
VALIDATION_TIMEOUT_SECONDS = 5.0
REQUEST_TIMEOUT_SECONDS = 10.0

# Result cache
CACHE_TTL_SECONDS = 30
CACHE_MAX_ENTRIES = int(os.getenv("CACHE_MAX_ENTRIES", "256"))

# Per-sport polling interval bounds
MIN_REFRESH_INTERVAL = 1
MAX_REFRESH_INTERVAL = 3600
DEFAULT_REFRESH_INTERVAL = 30

# Default sports (The Odds API sport keys); the only keys ever persisted
DEFAULT_SPORTS = {
    "soccer_uefa_champs_league": {"enabled": True, "refreshInterval": 30},
    "soccer_epl": {"enabled": True, "refreshInterval": 30},
    "soccer_france_ligue_one": {"enabled": True, "refreshInterval": 30},
    "soccer_spain_la_liga": {"enabled": True, "refreshInterval": 30},
    "soccer_italy_serie_a": {"enabled": True, "refreshInterval": 30},
    "soccer_germany_bundesliga": {"enabled": True, "refreshInterval": 30},
}

# Default query parameters
DEFAULT_REGIONS = "eu"
DEFAULT_MARKETS = "h2h"
DATE_FORMAT = "iso"

# Document store
DATABASE_PATH = os.getenv("DATABASE_PATH", "odds_service.db")
CONFIG_COLLECTION = "odds_config"
CONFIG_DOCUMENT_ID = "current_config"
USERS_COLLECTION = "users"

# Only this role may persist configuration changes
ADMIN_ROLE = "adminuser"
