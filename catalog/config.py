"""
Runtime configuration, read once from the environment (and .env).

    CATALOG_DATA_DIR         directory holding courses/colleges/users JSON
    CATALOG_REMOTE_URL       base URL of the spreadsheet-backed server; when
                             set it replaces the local JSON files
    CATALOG_REFRESH_SECONDS  background reload period (default: hourly)
    CATALOG_ADMIN_EMAIL      bootstrap admin used when no users exist
    CATALOG_LOG_DIR          rotating log file location
    OPENAI_MODEL             model used for course/college insights
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

ROOT_DIR = Path(__file__).parent.parent

DATA_DIR   = Path(os.getenv("CATALOG_DATA_DIR", str(ROOT_DIR / "data")))
LOG_DIR    = Path(os.getenv("CATALOG_LOG_DIR", str(ROOT_DIR / "logs")))
REMOTE_URL = os.getenv("CATALOG_REMOTE_URL", "").rstrip("/")

REFRESH_SECONDS = int(os.getenv("CATALOG_REFRESH_SECONDS", str(60 * 60)))

ADMIN_EMAIL = os.getenv("CATALOG_ADMIN_EMAIL", "contact@direct-admission.com")
ADMIN_NAME  = "System Admin"

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
