# flipquote/config.py

import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# --- Enrichment service (Gemini) ---
GEMINI_API_KEY: Optional[str] = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_API_BASE_URL: str = os.getenv(
    "GEMINI_API_BASE_URL", "https://generativelanguage.googleapis.com/v1beta/models"
)
ENRICHMENT_TIMEOUT_SECONDS: float = float(os.getenv("ENRICHMENT_TIMEOUT_SECONDS", "30"))
ENRICHMENT_TEMPERATURE: float = float(os.getenv("ENRICHMENT_TEMPERATURE", "0.4"))
