"""CLI configuration: paths and environment overrides."""

import os
from pathlib import Path

# Project root (parent of scripts/)
ROOT = Path(__file__).resolve().parent.parent.parent

LOG_DIR = ROOT / "logs"
LOG_FILE = LOG_DIR / "transfer.log"

# Set TRANSFER_DATABASE_URL to point the CLI at another database.
DB_URL = os.environ.get("TRANSFER_DATABASE_URL")
