"""Shared test configuration and fixtures."""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root for all tests
root = Path(__file__).parent.parent.resolve()
load_dotenv(root / ".env")

# Pin submission policy before cv_normalizer.config is imported
os.environ["CV_MIN_ROW_FIELDS"] = "3"
os.environ["CV_RETRY_DELAY_SECONDS"] = "0"
