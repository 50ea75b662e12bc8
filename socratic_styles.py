# Visual constants and stylesheets for the canvas.
# Color palettes are kept here so drawing code never hard-codes theme colors.

from PySide6.QtGui import QColor


class StyleSheet:
    """A namespace class to hold QSS string constants for different themes."""

    DARK_THEME = """
        QMainWindow, QWidget {
            background-color: #0a0a0a;
            color: #f3f4f6;
        }
        QGraphicsView {
            border: none;
        }
        QToolTip {
            background-color: rgba(30, 30, 30, 0.95);
            color: #e0e0e0;
            border: 1px solid #555;
            border-radius: 4px;
            padding: 6px;
        }
    """

    MONOCHROMATIC_THEME = """
        QMainWindow, QWidget {
            background-color: #1a1a1a;
            color: #dddddd;
        }
        QGraphicsView {
            border: none;
        }
        QToolTip {
            background-color: #2a2a2a;
            color: #dddddd;
            border: 1px solid #666;
            padding: 6px;
        }
    """


# Sticky note background colors offered to the user, in picker order.
STICKY_COLORS = [
    "#fef3c7",  # yellow
    "#bfdbfe",  # blue
    "#bbf7d0",  # green
    "#dcfce7",  # mint
    "#dbeafe",  # sky
    "#fecaca",  # red
]


class ColorPalette:
    """
    A data class to hold QColor objects for a specific theme palette.
    Connection colors themselves come from the connection type, the palette
    only covers the chrome drawn around them.
    """
    def __init__(self, background, badge_fill, badge_text, delete_accent):
        """
        Initializes the ColorPalette.

        Args:
            background (str): Hex color for the canvas background.
            badge_fill (str): Hex color for connection label badges.
            badge_text (str): Hex color for badge text.
            delete_accent (str): Hex color for the delete affordance.
        """
        self.BACKGROUND = QColor(background)
        self.BADGE_FILL = QColor(badge_fill)
        self.BADGE_TEXT = QColor(badge_text)
        self.DELETE_ACCENT = QColor(delete_accent)


DARK_PALETTE = ColorPalette(
    background="#0a0a0a",
    badge_fill="#ffffff",
    badge_text="#374151",
    delete_accent="#f87171",
)

MONO_PALETTE = ColorPalette(
    background="#1a1a1a",
    badge_fill="#eeeeee",
    badge_text="#333333",
    delete_accent="#bbbbbb",
)

# The main dictionary mapping theme names to their stylesheet and palette objects.
THEMES = {
    "dark": {
        "stylesheet": StyleSheet.DARK_THEME,
        "palette": DARK_PALETTE
    },
    "mono": {
        "stylesheet": StyleSheet.MONOCHROMATIC_THEME,
        "palette": MONO_PALETTE
    }
}
