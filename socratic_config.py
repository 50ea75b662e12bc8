# This file holds the global configuration for the canvas engine.
import logging
import os
from pathlib import Path

from socratic_styles import THEMES

# --- STORAGE CONFIGURATION ---
# The fixed key the session snapshot is persisted under.
STORAGE_KEY = "socratic-design-session"

# Default location of the session database, overridable per run.
DEFAULT_DB_PATH = Path.home() / ".socratic" / "sessions.db"


def get_db_path() -> Path:
    """
    Returns the path of the sqlite file backing session storage.

    The SOCRATIC_DB_PATH environment variable takes precedence over the
    default location in the user's home directory.

    Returns:
        pathlib.Path: The database file path.
    """
    override = os.getenv("SOCRATIC_DB_PATH")
    if override:
        return Path(override).expanduser()
    return DEFAULT_DB_PATH


# --- NOTE GEOMETRY ---
# Every note on the canvas shares the same footprint.
NOTE_WIDTH = 256
NOTE_HEIGHT = 200
NOTE_PADDING = 24

# --- PLACEMENT CONFIGURATION ---
# A preferred point farther than this from the cluster centroid is ignored
# in favour of the centroid.
CLUSTER_DISTANCE = 600
MAX_PLACEMENT_ATTEMPTS = 200

# --- CANVAS CONFIGURATION ---
GRID_SIZE = 20
ALIGNMENT_THRESHOLD = 5
MIN_ZOOM = 0.25
MAX_ZOOM = 2.0
FIT_MARGIN = 80

# --- THEME CONFIGURATION ---
CURRENT_THEME = "dark"


def get_current_palette():
    """Returns the color palette object for the currently active theme."""
    return THEMES[CURRENT_THEME]["palette"]


def apply_theme(app, theme_name: str):
    """
    Applies a theme stylesheet to the application and updates the global theme state.

    Args:
        app (QApplication): The main application instance.
        theme_name (str): The name of the theme to apply (e.g., "dark", "mono").
    """
    global CURRENT_THEME
    if theme_name in THEMES:
        CURRENT_THEME = theme_name
    else:
        logging.getLogger(__name__).warning(
            "Theme %r not found, defaulting to 'dark'", theme_name
        )
        CURRENT_THEME = "dark"

    app.setStyleSheet(THEMES[CURRENT_THEME]["stylesheet"])

    # Scenes paint from the palette, so repaint whatever is on screen.
    for widget in app.topLevelWidgets():
        widget.update()


# --- LOGGING CONFIGURATION ---
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level=None):
    """
    Configures root logging once for the application.

    Args:
        level (str | int, optional): Overrides SOCRATIC_LOG_LEVEL (default INFO).
    """
    if level is None:
        level = os.getenv("SOCRATIC_LOG_LEVEL", "INFO")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
