"""Solarized Bright theme constants for the Dash app."""

# Solarized Bright palette
BASE3 = "#FDF6E3"   # background
BASE2 = "#EEE8D5"   # sidebar bg
BASE1 = "#93A1A1"   # borders
BASE00 = "#657B83"  # body text
BASE01 = "#586E75"  # headers / emphasis
BASE02 = "#073642"  # dark accent
BASE03 = "#002B36"  # 3D scene background

BLUE = "#268BD2"
CYAN = "#2AA198"
GREEN = "#859900"
YELLOW = "#B58900"
ORANGE = "#CB4B16"
RED = "#DC322F"
MAGENTA = "#D33682"
VIOLET = "#6C71C4"

# Status colours; never part of the cluster palette
ERROR = RED
SUCCESS = GREEN
WARNING = YELLOW

FONT_STACK = '"JetBrains Mono", "Fira Code", "Cascadia Code", monospace'

SIDEBAR_WIDTH = "320px"
RIGHT_SIDEBAR_WIDTH = "360px"

# Axis line colours of the 3D scene (x, y, z)
SPATIAL_AXIS_COLORS = (RED, GREEN, BLUE)
