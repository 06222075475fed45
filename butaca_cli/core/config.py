# butaca_cli/core/config.py
from pathlib import Path
import os

# Backend URL
BASE_URL = os.environ.get("BUTACA_URL", "http://localhost:8000")

# Request timeout in seconds
TIMEOUT = float(os.environ.get("BUTACA_TIMEOUT", "5"))

# Local folder for CLI data (tokens, etc.)
APP_DIR = Path(os.environ.get("BUTACA_HOME", str(Path.home() / ".butaca")))

# Access/refresh token pair of the current session
SESSION_FILE = APP_DIR / "session.json"
