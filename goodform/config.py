# goodform/config.py
import os

from dotenv import load_dotenv

# .env im Projekt-Root, Fallback auf die Standardsuche von python-dotenv
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
dotenv_path = os.path.join(PROJECT_ROOT, ".env")
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path)
else:
    load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL")
SQL_ECHO = _env_bool("SQL_ECHO")

ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "secret")
EXPECTED_ADMIN_TOKEN = f"static-admin-token-for-{ADMIN_USERNAME}"

FALLBACK_ORIGINS = [
    "http://127.0.0.1:5173",
    "http://localhost:5173",
]
_env_origins = os.getenv("BACKEND_ALLOWED_ORIGINS")
ALLOWED_ORIGINS = (
    [origin.strip() for origin in _env_origins.split(",") if origin.strip()]
    if _env_origins
    else []
) or FALLBACK_ORIGINS

# AI-Anbieter: "openai" oder "deepseek" (OpenAI-kompatible API)
AI_PROVIDER = os.getenv("AI_PROVIDER", "openai").lower()
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY")
DEEPSEEK_MODEL = os.getenv("DEEPSEEK_MODEL", "deepseek-chat")
DEEPSEEK_BASE_URL = os.getenv("DEEPSEEK_BASE_URL", "https://api.deepseek.com")

# Preise pro Million Tokens, in Cent
DEFAULT_PRICES = {
    "openai": (15, 60),
    "deepseek": (14, 28),
}
AI_INPUT_PRICE = os.getenv("AI_INPUT_PRICE")
AI_OUTPUT_PRICE = os.getenv("AI_OUTPUT_PRICE")

APP_HOST = os.getenv("APP_HOST", "127.0.0.1")
APP_PORT = int(os.getenv("APP_PORT", "8000"))
RELOAD_APP = _env_bool("RELOAD_APP", "true")
