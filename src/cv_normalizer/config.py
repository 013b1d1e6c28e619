"""Shared configuration for the CV normalizer service.

Values come from the environment, with a project-root ``.env`` loaded first.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).parent.parent.parent.resolve()
load_dotenv(ROOT / ".env")

# ─── Completion Service ──────────────────────────────────────────────────────

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()

# Any OpenAI-compatible endpoint, e.g. Gemini's
# https://generativelanguage.googleapis.com/v1beta/openai/
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "").strip() or None

COMPLETION_MODEL = os.getenv("CV_COMPLETION_MODEL", "gpt-4.1-mini")

COMPLETION_TEMPERATURE = 0.1

# ─── Sink ────────────────────────────────────────────────────────────────────

# Google Apps Script web app that appends rows to the sheet and stores the file in Drive
SHEET_WEBHOOK_URL = os.getenv("SHEET_WEBHOOK_URL", "").strip()

# ─── Submission Policy ───────────────────────────────────────────────────────

# Rows shorter than this are rejected before anything is sent to the sink
MIN_ROW_FIELDS = max(1, int(os.getenv("CV_MIN_ROW_FIELDS", "3")))

# Total attempts (first call included) for rate-limited / network failures
RETRY_ATTEMPTS = max(1, int(os.getenv("CV_RETRY_ATTEMPTS", "3")))
RETRY_DELAY_SECONDS = float(os.getenv("CV_RETRY_DELAY_SECONDS", "2.0"))

# ─── Uploads ─────────────────────────────────────────────────────────────────

MAX_FILE_BYTES = int(os.getenv("CV_MAX_FILE_BYTES", str(10 * 1024 * 1024)))

ALLOWED_MIME_TYPES = {
    "application/pdf",
    "image/png",
    "image/jpeg",
    "image/jpg",
}
