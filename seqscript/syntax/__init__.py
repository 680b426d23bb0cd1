from .nodes import (
    ARROW_TYPES,
    FRAGMENT_TYPES,
    NOTE_TYPES,
    PARTICIPANT_TYPES,
    BlankLine,
    Comment,
    Directive,
    DirectiveType,
    Divider,
    Document,
    ElseClause,
    ErrorNode,
    Fragment,
    IdGenerator,
    LineStyle,
    Message,
    Node,
    NodeType,
    Note,
    Participant,
    ParticipantGroup,
    Style,
    toggle_expandable,
)
from .parser import Parser, parse
from .serializer import Serializer, serialize
from .styles import StyleSheet, resolve_color, resolve_style

__all__ = [
    "ARROW_TYPES",
    "FRAGMENT_TYPES",
    "NOTE_TYPES",
    "PARTICIPANT_TYPES",
    "BlankLine",
    "Comment",
    "Directive",
    "DirectiveType",
    "Divider",
    "Document",
    "ElseClause",
    "ErrorNode",
    "Fragment",
    "IdGenerator",
    "LineStyle",
    "Message",
    "Node",
    "NodeType",
    "Note",
    "Participant",
    "ParticipantGroup",
    "Style",
    "toggle_expandable",
    "Parser",
    "parse",
    "Serializer",
    "serialize",
    "StyleSheet",
    "resolve_color",
    "resolve_style",
]
