import os
from dotenv import load_dotenv

load_dotenv()

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Storage: "sqlite" (embedded) or "elasticsearch" (hosted)
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "sqlite")
SQLITE_PATH = os.getenv("SQLITE_PATH", "screener.db")
ES_HOST = os.getenv("ES_HOST", "http://localhost:9200")

KALSHI_API_BASE = os.getenv("KALSHI_API_BASE", "https://api.elections.kalshi.com/trade-api/v2")
KALSHI_TIMEOUT = float(os.getenv("KALSHI_TIMEOUT", "8"))
KALSHI_RATE_LIMIT_DELAY = float(os.getenv("KALSHI_RATE_LIMIT_DELAY", "2"))

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
ANTHROPIC_MODEL = os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514")
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "4096"))
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0"))
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "45"))

POLL_MAX_PAGES = int(os.getenv("POLL_MAX_PAGES", "10"))
POLL_PAGE_SIZE = int(os.getenv("POLL_PAGE_SIZE", "200"))
POLL_BATCH_SIZE = int(os.getenv("POLL_BATCH_SIZE", "200"))
POLL_PAGE_DELAY = float(os.getenv("POLL_PAGE_DELAY", "0.25"))
POLL_BUDGET_SECONDS = float(os.getenv("POLL_BUDGET_SECONDS", "110"))
# 0 disables the scheduled poll; scans then only run via POST /api/poll
POLL_INTERVAL_MINUTES = int(os.getenv("POLL_INTERVAL_MINUTES", "0"))
