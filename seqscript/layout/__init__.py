from .activations import ActivationTracker
from .engine import LayoutConfig, LayoutEngine, calculate_layout
from .geometry import (
    ActivationBar,
    Box,
    FragmentGeometry,
    LayoutResult,
    MarkerGeometry,
    MessageGeometry,
    NoteGeometry,
    ParticipantGeometry,
)
from .packing import LevelPacker, ParallelSection, spans_overlap

__all__ = [
    "ActivationTracker",
    "LayoutConfig",
    "LayoutEngine",
    "calculate_layout",
    "ActivationBar",
    "Box",
    "FragmentGeometry",
    "LayoutResult",
    "MarkerGeometry",
    "MessageGeometry",
    "NoteGeometry",
    "ParticipantGeometry",
    "LevelPacker",
    "ParallelSection",
    "spans_overlap",
]
