"""
Constants and configuration values for Minifig Composer.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the library.
"""

# Background removal thresholds (tuned empirically, keep output comparable)
CORNER_SAMPLE_SIZE = 10
DISTANCE_TRANSPARENT_THRESHOLD = 30
DISTANCE_OPAQUE_THRESHOLD = 50
DISTANCE_ALPHA_RAMP = 12.75
EDGE_MAGNITUDE_THRESHOLD = 30
NEAR_WHITE_THRESHOLD = 245
ALPHA_TRANSPARENT = 0
ALPHA_OPAQUE = 255

# Image loading
CATALOG_CDN_HOST = "cdn.rebrickable.com"
PROXY_IMAGE_ROUTE = "/api/proxy-image"
PROXY_URL_PARAM = "url"
DEFAULT_PROXY_CONTENT_TYPE = "image/jpeg"
PROXY_CACHE_CONTROL = "public, max-age=31536000, immutable"
IMAGE_LOAD_TIMEOUT = 30.0
PNG_DATA_URL_PREFIX = "data:image/png;base64,"

# Remote background removal (remove.bg)
REMOVE_BG_API_URL = "https://api.remove.bg/v1.0/removebg"
REMOVE_BG_API_KEY_ENV = "REMOVE_BG_API_KEY"
REMOVE_BG_TIMEOUT = 60.0

# Part transforms
MIN_PART_SCALE = 0.1
MAX_PART_SCALE = 3.0
DEFAULT_PART_SCALE = 1.0
DEFAULT_PART_ROTATION = 0.0

# Default placement probe
PLACEMENT_START = 200.0
PLACEMENT_STEP = 30.0
PLACEMENT_MIN_DISTANCE = 30.0
PLACEMENT_MAX_X = 400.0
PLACEMENT_MAX_Y = 300.0
PLACEMENT_FALLBACK_X = 150.0
PLACEMENT_FALLBACK_WIDTH = 200.0
PLACEMENT_FALLBACK_Y = 150.0
PLACEMENT_FALLBACK_HEIGHT = 100.0

# Drag bounds (part centers stay inside the composer canvas)
DRAG_MIN_X = 50.0
DRAG_MAX_X = 550.0
DRAG_MIN_Y = 50.0
DRAG_MAX_Y = 350.0

# Layer directions
LAYER_UP = "up"
LAYER_DOWN = "down"

# Export
EXPORT_CANVAS_WIDTH = 600
EXPORT_CANVAS_HEIGHT = 600
PART_BOX_SIZE = 100
EXPORT_SETTLE_DELAY = 1.0
EXPORT_FILENAME = "minifig-composition.png"
DEFAULT_OUTPUT_FORMAT = "PNG"

# Catalog API
REBRICKABLE_API_BASE = "https://rebrickable.com/api/v3"
REBRICKABLE_API_KEY_ENV = "REBRICKABLE_API_KEY"
DEFAULT_PAGE_SIZE = 20
RANDOM_PAGE_COUNT = 10
CATALOG_TIMEOUT = 30.0

# Collection storage
COLLECTIONS_DIR_NAME = "Collections"
COLLECTION_EXTENSION = ".mfcol"
SCHEMA_VERSION = 1
DEFAULT_COLLECTION_TITLE = "Untitled Collection"
EXAMPLE_COLLECTION_ID = "example"

# Collection field names
FIELD_SCHEMA_VERSION = "schema_version"
FIELD_ID = "id"
FIELD_USER_ID = "userId"
FIELD_TITLE = "title"
FIELD_SOURCE_MINIFIGS = "sourceMinifigs"
FIELD_PARTS = "parts"
FIELD_CREATED_AT = "createdAt"
FIELD_UPDATED_AT = "updatedAt"

# Stored part field names
FIELD_POSITION = "position"
FIELD_PART_NUM = "part_num"
FIELD_PART_NAME = "part_name"
FIELD_PART_IMG_URL = "part_img_url"
FIELD_COLOR_ID = "color_id"
FIELD_COLOR_NAME = "color_name"
FIELD_COLOR_RGB = "color_rgb"
FIELD_SOURCE_MINIFIG = "sourceMinifig"

# Safe id characters (collection ids double as file names)
SAFE_ID_CHARS = "-_"
