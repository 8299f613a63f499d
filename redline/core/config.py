"""
Конфигурация Redline.

Этот модуль содержит все константы конфигурации и настройки окружения.
"""

import os
from typing import Optional


# ============================================================================
# Supabase Configuration
# ============================================================================

SUPABASE_URL = os.environ.get("SUPABASE_URL", "http://localhost:54321")
SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY", "")
SUPABASE_DOCUMENTS_BUCKET = os.environ.get("SUPABASE_DOCUMENTS_BUCKET", "documents")
SUPABASE_ANNOTATIONS_TABLE = "annotations"
SUPABASE_DOCUMENTS_TABLE = "documents"


# ============================================================================
# HTTP Configuration
# ============================================================================

MAX_RETRIES = 5
TIMEOUT = 60
BACKOFF_FACTOR = 0.8

# Повторяются только идемпотентные запросы; POST аннотаций не повторяется
RETRY_STATUSES = (429, 500, 502, 503, 504)
RETRY_METHODS = frozenset(["DELETE", "GET", "HEAD", "OPTIONS", "PUT"])


# ============================================================================
# View Configuration
# ============================================================================

MIN_SCALE = 0.5
MAX_SCALE = 3.0
SCALE_STEP = 0.2
ROTATION_STEP = 90


# ============================================================================
# Text Extraction Configuration
# ============================================================================

# Допуски группировки glyph runs (в пикселях отображения)
GROUP_VERTICAL_TOLERANCE = 5.0
GROUP_HORIZONTAL_GAP = 10.0

DEFAULT_FONT_SIZE = 12.0
DEFAULT_FONT_FAMILY = "Helvetica"

# Ожидание, пока поверхность отрисовки разложит текстовый слой (секунды)
EXTRACTION_SETTLE_DELAY = float(os.environ.get("REDLINE_SETTLE_DELAY", "0.5"))

# Отбрасывать результаты извлечения, устаревшие после смены страницы
STRICT_EXTRACTION = os.environ.get("REDLINE_STRICT_EXTRACTION", "0") == "1"


# ============================================================================
# Ledger Configuration
# ============================================================================

# Расширение bbox при удалении извлечённого элемента
DELETE_PAD_LEFT = 4.0
DELETE_PAD_TOP = 3.0
DELETE_PAD_WIDTH = 8.0
DELETE_PAD_HEIGHT = 6.0
DELETE_MIN_HEIGHT = 20.0

# Поля замены текста
REPLACEMENT_MIN_WIDTH = 100.0
REPLACEMENT_MIN_HEIGHT = 20.0
REPLACEMENT_MIN_FONT_SIZE = 12
REPLACEMENT_FONT_RATIO = 0.8

# Новая вставка текста
INSERTION_WIDTH = 200.0
INSERTION_HEIGHT = 30.0
INSERTION_FONT_SIZE = 16.0


# ============================================================================
# Tool Configuration
# ============================================================================

DEFAULT_TOOL_COLOR = "#FF0000"
DEFAULT_TOOL_SIZE = 3.0
FALLBACK_COLOR = (0, 0, 0)
HIGHLIGHTER_ALPHA = 0.7
ERASER_WIDTH_FACTOR = 1.5

# Разрешение растровой поверхности (пикселей на единицу документа)
RASTER_SCALE = float(os.environ.get("REDLINE_RASTER_SCALE", "2.0"))


# ============================================================================
# Compositing Configuration
# ============================================================================

# Слои маски: расширение и (opacity, blend mode)
MASK_INFLATIONS = (3.0, 2.0, 1.0)
MASK_LAYER_STYLES = (
    (1.0, "Normal"),
    (0.98, "Multiply"),
    (1.0, "Normal"),
)
MASK_COLOR = (1.0, 1.0, 1.0)

# Смещение заменяющего текста от верхнего левого угла маски
TEXT_OFFSET = 2.0

# Усиление растрового слоя перед встраиванием
FREEHAND_RGB_GAIN = 1.2
FREEHAND_ALPHA_GAIN = 1.3

# Base-14 шрифт для всего вставляемого текста
OUTPUT_FONT = "helv"


# ============================================================================
# Metrics Configuration
# ============================================================================

METRICS_PATH: Optional[str] = None
