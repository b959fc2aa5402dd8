"""Configuration settings for FocusLedger."""

import logging
import os
import sys
from pathlib import Path
from dotenv import load_dotenv


APP_NAME = "FocusLedger"


def is_bundled() -> bool:
    """
    Check if the application is running from a PyInstaller bundle.

    Returns:
        True if running from a bundled executable, False otherwise.
    """
    return getattr(sys, 'frozen', False) and hasattr(sys, '_MEIPASS')


def get_user_data_dir() -> Path:
    """
    Get the directory for user-writable data (the ledger file).

    For development: BASE_DIR/data, unless FOCUSLEDGER_DATA_DIR is set.
    For bundled apps: a per-user folder that survives app updates.

    Returns:
        Path to the user data directory.
    """
    override = os.getenv("FOCUSLEDGER_DATA_DIR")
    if override:
        return Path(override).expanduser()

    if not is_bundled():
        return Path(__file__).parent / "data"

    if sys.platform == 'darwin':
        # macOS: ~/Library/Application Support/FocusLedger
        return Path.home() / "Library" / "Application Support" / APP_NAME
    if sys.platform == 'win32':
        appdata = os.environ.get('APPDATA')
        if appdata:
            return Path(appdata) / APP_NAME
        return Path.home() / "AppData" / "Roaming" / APP_NAME
    # Linux: ~/.local/share/FocusLedger
    return Path.home() / ".local" / "share" / APP_NAME


def _get_int(env_var: str, default: int) -> int:
    """
    Read a positive integer from the environment.

    Falls back to the default (and logs a warning) when the value is
    missing, malformed or not positive.
    """
    raw = os.getenv(env_var, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        logging.getLogger(__name__).warning(
            f"{env_var}={raw!r} is not a positive integer, using {default}"
        )
        return default
    return value


# Load environment variables from .env file (only in development)
if not is_bundled():
    _env_path = Path(__file__).parent / ".env"
    load_dotenv(_env_path)

# User data directory (ledger persistence)
USER_DATA_DIR = get_user_data_dir()
LEDGER_FILE = USER_DATA_DIR / "pomodoroData.json"

# Timer modes
MODE_WORK = "work"
MODE_SHORT_BREAK = "short_break"
MODE_LONG_BREAK = "long_break"

MODE_TITLES = {
    MODE_WORK: "Work Session",
    MODE_SHORT_BREAK: "Short Break",
    MODE_LONG_BREAK: "Long Break",
}

# Timer durations (seconds)
DEFAULT_WORK_SECONDS = _get_int("WORK_SECONDS", 25 * 60)
SHORT_BREAK_SECONDS = _get_int("SHORT_BREAK_SECONDS", 5 * 60)
LONG_BREAK_SECONDS = _get_int("LONG_BREAK_SECONDS", 15 * 60)
SESSIONS_PER_LONG_BREAK = _get_int("SESSIONS_PER_LONG_BREAK", 4)

# Work duration presets offered by the UI, custom values are also accepted
PRESET_DURATIONS_MINUTES = [15, 25, 45, 60]

# Daily goal
DEFAULT_DAILY_GOAL_MINUTES = 120
GOAL_MIN_MINUTES = 30
GOAL_MAX_MINUTES = 720
GOAL_STEP_MINUTES = 30

# Category assigned to legacy segments that carried no tag
DEFAULT_CATEGORY = "Uncategorized"

# First day of the week for weekly and heatmap views (Monday=0 ... Sunday=6)
try:
    FIRST_WEEKDAY = int(os.getenv("FIRST_WEEKDAY", "5")) % 7
except ValueError:
    FIRST_WEEKDAY = 5  # Saturday

# Heatmap display scale: 12 hours paints the darkest cell
HEATMAP_CEILING_MINUTES = 12 * 60

# Event cues emitted by the engine (collaborators map these to sounds)
CUE_TIMER_START = "timer_start"
CUE_TIMER_PAUSE = "timer_pause"
CUE_SESSION_COMPLETE = "session_complete"
CUE_BREAK_COMPLETE = "break_complete"

# Sound file per cue, resolved by core.cues.CuePlayer. No sounds ship with
# the app: drop your own files into SOUNDS_DIR, cues stay silent otherwise.
CUE_SOUNDS = {
    CUE_TIMER_START: "timerStart.mp3",
    CUE_TIMER_PAUSE: "timerPause.mp3",
    CUE_SESSION_COMPLETE: "sessionComplete.mp3",
    CUE_BREAK_COMPLETE: "breakComplete.mp3",
}
SOUNDS_DIR = Path(
    os.getenv("FOCUSLEDGER_SOUNDS_DIR") or Path(__file__).parent / "assets" / "sounds"
).expanduser()

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")  # Can override in .env: DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
