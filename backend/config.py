"""Configuration management for the Carl assistant orchestrator."""
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
ASSISTANT_API_KEY = os.getenv("ASSISTANT_API_KEY")
TYPESENSE_SEARCH_KEY = os.getenv("TYPESENSE_SEARCH_KEY", "")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:4321"
).split(",")

# Inference backends
# Intent parsing uses the small, fast model; composition uses the larger one.
INTENT_ENDPOINT = os.getenv("INTENT_ENDPOINT", "https://ai.baytides.org/v1/chat/completions")
INTENT_MODEL = os.getenv("INTENT_MODEL", "qwen2.5:3b-instruct")
COMPOSE_ENDPOINT = os.getenv("COMPOSE_ENDPOINT", "https://ai.baytides.org/v1/chat/completions")
COMPOSE_MODEL = os.getenv("COMPOSE_MODEL", "llama3.1:8b-instruct-q8_0")

INTENT_MAX_TOKENS = 150
INTENT_TEMPERATURE = 0.1
COMPOSE_MAX_TOKENS = 250
COMPOSE_TEMPERATURE = 0.4

# Privacy Configuration
CDN_REFLECTORS = {
    "cloudflare": "https://baynavigator.pages.dev",
    "fastly": "https://baynavigator.global.ssl.fastly.net",
    "azure": "https://baynavigator.azureedge.net",
}
CDN_PROVIDER = os.getenv("CDN_PROVIDER", "cloudflare")
INTENT_CDN_PATH = "/api/chat"
COMPOSE_CDN_PATH = "/api/complete"
AUTO_DETECT_CENSORSHIP = os.getenv("AUTO_DETECT_CENSORSHIP", "true").lower() == "true"
CENSORSHIP_CHECK_TTL = 300  # seconds
CENSORSHIP_PROBE_TIMEOUT = 3.0
TOR_PROXY_URL = os.getenv("TOR_PROXY_URL", "socks5://127.0.0.1:9050")
TOR_PROBE_TIMEOUT = 3.0

# Search Configuration
TYPESENSE_HOST = os.getenv("TYPESENSE_HOST", "https://search.baytides.org")
SEARCH_LIMIT = 5

# Intent category -> Typesense facet. The intent prompt lists its categories
# from this table, so a new category only needs an entry here.
CATEGORY_FACETS = {
    "food": "Food",
    "health": "Health",
    "housing": "Housing",
    "legal": "Legal",
    "employment": "Employment",
    "education": "Education",
    "transit": "Transportation",
    "utilities": "Utilities",
    "pets": "Pet Resources",
    "seniors": "Community Services",
    "veterans": "Community Services",
    "disability": "Health",
    "crisis": None,
    "general": None,
}

# Timeouts (seconds)
INTENT_TIMEOUT = 10.0
SEARCH_TIMEOUT = 5.0
WARMUP_TIMEOUT = 90.0
REQUEST_TIMEOUT = 45.0
TOR_REQUEST_TIMEOUT = 90.0  # Tor is slower

# Conversation Configuration
HISTORY_TURNS = 4

# Composed replies may only link to these in-site pages
SITE_HOST = "baynavigator.org"
ALLOWED_LINK_PATHS = (
    "/directory",
    "/eligibility",
    "/eligibility/food-assistance",
    "/eligibility/healthcare",
    "/eligibility/housing-assistance",
    "/eligibility/utility-programs",
    "/eligibility/cash-assistance",
    "/map",
)

# Numbers a reply may always quote verbatim
CRISIS_NUMBERS = ("911", "988", "211", "741741", "1-800-799-7233")

# Knowledge base
QUICK_ANSWERS_PATH = os.getenv(
    "QUICK_ANSWERS_PATH",
    str(Path(__file__).parent / "data" / "quick_answers.json")
)

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
