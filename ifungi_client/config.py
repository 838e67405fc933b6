"""Configuration for the IFungi monitor client"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
_repo_root = Path(__file__).parent.parent.resolve()
_env_file = _repo_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

# Firebase Configuration
_default_creds = str(_repo_root / "firebase-key.json")
FIREBASE_CREDENTIALS_PATH = os.getenv("FIREBASE_CREDENTIALS_PATH", _default_creds)
FIREBASE_DATABASE_URL = os.getenv("FIREBASE_DATABASE_URL", "https://ifungi.firebaseio.com")

# Default greenhouse when neither the caller nor the active session names one
DEVICE_ID = os.getenv("DEVICE_ID", "").strip() or None

# Store layout
GREENHOUSES_ROOT = "greenhouses"
HISTORY_ROOT = "historico"
USERS_ROOT = "Usuarios"

# Heartbeat (milliseconds)
HEARTBEAT_OFFLINE_THRESHOLD_MS = int(os.getenv("HEARTBEAT_OFFLINE_THRESHOLD_MS", "25000"))
HEARTBEAT_POLL_INTERVAL_MS = int(os.getenv("HEARTBEAT_POLL_INTERVAL_MS", "5000"))
HEARTBEAT_GRACE_WINDOW_MS = int(os.getenv("HEARTBEAT_GRACE_WINDOW_MS", "10000"))

# History / chart
HISTORY_WINDOW_SIZE = int(os.getenv("HISTORY_WINDOW_SIZE", "50"))
CHART_AXIS_STEPS = int(os.getenv("CHART_AXIS_STEPS", "5"))
CHART_VIEWPORT_WIDTH = int(os.getenv("CHART_VIEWPORT_WIDTH", "360"))
CHART_POINT_WIDTH = 60
CHART_MARGIN_RATIO = 0.1
CHART_MIN_VISUAL_HALF_SPAN = 1.0

# Raw water level percentage above which the reservoir counts as filled
WATER_LEVEL_THRESHOLD = 20

# Local persistence
SESSION_DB_PATH = os.getenv("SESSION_DB_PATH", str(_repo_root / "data" / "session.db"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "logs/ifungi-client.log")

# Debug logging overrides LOG_LEVEL
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
