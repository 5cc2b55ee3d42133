"""
Constants and configuration values for Open Annotate.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the compositor.
"""

# Filter defaults ("no modification")
DEFAULT_ROTATION = 0
DEFAULT_INVERTED = False
DEFAULT_SEPIA = False
DEFAULT_GRAYSCALE = False
DEFAULT_BLUR = 0.0
DEFAULT_BRIGHTNESS = 100.0
DEFAULT_CONTRAST = 100.0

# Filter bounds (slider ranges)
VALID_ROTATIONS = (0, 90, 180, 270)
ROTATION_STEP = 90
MIN_BLUR = 0.0
MAX_BLUR = 20.0
MIN_BRIGHTNESS = 0.0
MAX_BRIGHTNESS = 200.0
MIN_CONTRAST = 0.0
MAX_CONTRAST = 200.0

# Filter chain effect names, in application order
EFFECT_INVERT = "invert"
EFFECT_SEPIA = "sepia"
EFFECT_GRAYSCALE = "grayscale"
EFFECT_BLUR = "blur"
EFFECT_BRIGHTNESS = "brightness"
EFFECT_CONTRAST = "contrast"
FILTER_CHAIN_ORDER = (
    EFFECT_INVERT,
    EFFECT_SEPIA,
    EFFECT_GRAYSCALE,
    EFFECT_BLUR,
    EFFECT_BRIGHTNESS,
    EFFECT_CONTRAST,
)

# Colour matrices (rows produce R, G, B from R, G, B)
SEPIA_MATRIX = (
    (0.393, 0.769, 0.189),
    (0.349, 0.686, 0.168),
    (0.272, 0.534, 0.131),
)
GRAYSCALE_MATRIX = (
    (0.2126, 0.7152, 0.0722),
    (0.2126, 0.7152, 0.0722),
    (0.2126, 0.7152, 0.0722),
)

# Drawing defaults
DEFAULT_TOOL = "brush"
DEFAULT_COLOR = "#ffffff"
DEFAULT_STROKE_SIZE = 3
DEFAULT_OPACITY = 100
MIN_STROKE_SIZE = 1
MAX_STROKE_SIZE = 50
MIN_OPACITY = 10
MAX_OPACITY = 100

COLOR_PALETTE = (
    "#ffffff",
    "#000000",
    "#ff0000",
    "#00ff00",
    "#0000ff",
    "#ffff00",
    "#ff00ff",
    "#00ffff",
    "#ffa500",
    "#800080",
)

# Arrow head: length is stroke size times this factor, wings at +/- 30 degrees
ARROW_HEAD_SCALE = 3
ARROW_HEAD_ANGLE_DEG = 30.0

# Text: font pixel size is stroke size times this factor
TEXT_SIZE_SCALE = 3
FONT_CANDIDATES = ("Arial.ttf", "arial.ttf", "DejaVuSans.ttf")

# Layout
DEFAULT_CONTAINER_PADDING = 0

# Output
OUTPUT_FORMAT = "PNG"
OUTPUT_MIME_TYPE = "image/png"
SURFACE_MODE = "RGBA"

# Edit state file constants
EDIT_STATE_EXTENSION = ".oaedit"
EDIT_STATE_SCHEMA_VERSION = 1
FIELD_SCHEMA_VERSION = "schema_version"
FIELD_SAVED_AT = "saved_at"
FIELD_ACTIVE_INDEX = "active_index"
FIELD_ENTRIES = "entries"
FIELD_LABEL = "label"
FIELD_FILTERS = "filters"
