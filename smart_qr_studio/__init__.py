"""Smart QR Studio: compose scannable codes with text, patches and backgrounds."""

__version__ = "2.3.0"

# Shared constants
PRODUCT_SLUG = "smart-qr"
REFERENCE_RESOLUTION = 1024  # Title/caption pixel sizes are defined at this canvas size
PREVIEW_RESOLUTION = 320
MIN_RESOLUTION = 512
MAX_RESOLUTION = 2048
RESOLUTION_STEP = 128
MIN_SYMBOL_SCALE = 0.05
MAX_SYMBOL_SCALE = 1.0

# Layout ratios, all relative to the symbol group width
INTERNAL_MARGIN_RATIO = 0.05
CORNER_RADIUS_RATIO = 0.05
MATRIX_CAPTION_GAP_RATIO = 0.05
MATRIX_CAPTION_FONT_RATIO = 0.08
LINE_HEIGHT = 1.2
