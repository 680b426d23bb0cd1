from .errors import *
from .layout import *
from .syntax import *

__version__ = "0.1.0"
__all__ = [
    "parse",
    "serialize",
    "calculate_layout",
    "toggle_expandable",
    "resolve_style",
    "resolve_color",
    "Parser",
    "Serializer",
    "LayoutEngine",
    "LayoutConfig",
    "LayoutResult",
    "Document",
    "Style",
    "StyleSheet",
    "IdGenerator",
    "DiagramError",
    "ConfigurationError",
    "NodeNotFoundError",
]
