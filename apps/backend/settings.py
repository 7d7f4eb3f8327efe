import os
from dotenv import load_dotenv

load_dotenv() # Load env vars from .env

DATABASE_URL = os.getenv("CRONOGRAMA_DATABASE_URL", "sqlite:///./cronograma.db")

# Shared secret for the admin guard. Unset means no admin access at all.
ADMIN_TOKEN = os.getenv("CRONOGRAMA_ADMIN_TOKEN", "")

# Seconds a saved draft must settle before it can be published
PUBLISH_COOLDOWN_SECONDS = float(os.getenv("CRONOGRAMA_PUBLISH_COOLDOWN", "2"))

LOG_LEVEL = os.getenv("CRONOGRAMA_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("CRONOGRAMA_LOG_FILE") or None

PORT = int(os.environ.get("PORT", 8765))
