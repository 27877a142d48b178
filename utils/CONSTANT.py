'''
    Here all constants used by the viewer are stored.
'''

import os
from pathlib import Path

# Directory in the user's home used for settings and logs
UTILS_SAVE_DIR: Path = Path(os.path.expanduser('~/.scoreview'))

# MEI namespaces (the xml:id attribute lives in the XML namespace)
MEI_NS: str = 'http://www.music-encoding.org/ns/mei'
XML_NS: str = 'http://www.w3.org/XML/1998/namespace'
XML_ID: str = '{%s}id' % XML_NS
SVG_NS: str = 'http://www.w3.org/2000/svg'

# Rendering options handed to the engine when nothing else is configured.
DEFAULT_ENGINE_OPTIONS: dict[str, object] = {
    'breaks': 'auto',
    'scale': 20,
    'spacingStaff': 7,
    'pageHeight': 4500,
    'pageWidth': 4500,
    'footer': 'none',
    'header': 'none',
}

# Zoom (engine scale in percent)
DEFAULT_ZOOM: int = 20
ZOOM_MIN: int = 10
ZOOM_MAX: int = 100
ZOOM_STEP: int = 10

# Valid ranges for explicit engine page dimensions (engine units)
PAGE_WIDTH_RANGE: tuple[int, int] = (100, 100000)
PAGE_HEIGHT_RANGE: tuple[int, int] = (100, 60000)

# Debounced relayout delay
RELAYOUT_DELAY_MS: int = 100

# Query parameter used to narrow a fetched document to one movement
MOVEMENT_QUERY_PARAM: str = 'movementId'

# Playback highlighting
HIGHLIGHT_CLASS: str = 'playing'

# Annotation overlay
ANNOTATION_PALETTE: list[str] = [
    '#e6194b',
    '#3cb44b',
    '#4363d8',
    '#f58231',
    '#911eb4',
    '#46f0f0',
    '#f032e6',
    '#bcf60c',
    '#008080',
    '#9a6324',
]
ANNOTATION_FALLBACK_COLOR: str = '#808080'
MARKER_CLASS: str = 'annotation-marker'
MARKER_SIZE: float = 180.0
MARKER_STEP_X: float = 220.0
MARKER_OFFSET_Y: float = 300.0

# HTTP
REQUEST_TIMEOUT_S: float = 10.0
