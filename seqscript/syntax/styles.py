"""Style micro-grammars and the style cascade.

Shape specs look like ``#fill #border;width;style`` and every part may be
left out. Style definitions add an optional ``,textMarkup`` suffix, message
styles live inside ``[...]`` in the arrow, and ``##name`` references a named
style defined elsewhere in the document.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple, Union

from .nodes import (
    BORDER_STYLES,
    Directive,
    DirectiveType,
    Divider,
    Document,
    LineStyle,
    Message,
    Node,
    Note,
    Participant,
    Style,
    as_document,
)

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


def _apply_border_params(params: str, values: Dict[str, object]) -> None:
    for part in params.split(";"):
        part = part.strip()
        if not part:
            continue
        if part.isdigit():
            values["border_width"] = int(part)
        elif part in BORDER_STYLES:
            values["border_style"] = part


def parse_shape_style(text: str) -> Style:
    values: Dict[str, object] = {}
    tokens = text.split()
    if tokens and tokens[0].startswith("#") and not tokens[0].startswith("##"):
        fill, _, params = tokens[0].partition(";")
        values["fill"] = fill
        if params:
            _apply_border_params(params, values)
        tokens = tokens[1:]
    if tokens:
        color, _, params = tokens[0].partition(";")
        if color.startswith("#"):
            values["border"] = color
        if params or tokens[0].startswith(";"):
            _apply_border_params(params, values)
    return Style(**values)


def parse_style_or_reference(text: str) -> Optional[Style]:
    text = text.strip()
    if not text:
        return None
    if text.startswith("##"):
        return Style(style_name=text[2:].strip())
    style = parse_shape_style(text)
    return None if style.is_empty() else style


def _is_style_token(token: str) -> bool:
    if token.startswith("##"):
        return False
    if token.startswith(";"):
        return bool(re.match(r"^;\d*(;\w*)?$", token))
    return token.startswith("#") and len(token) > 1


def split_style_prefix(text: str, max_tokens: int = 2) -> Tuple[str, str]:
    """Split leading style tokens off ``text``.

    The first bare ``#color`` is the fill and the second is the border; any
    further text is returned untouched as the remainder.
    """
    rest = text.strip()
    taken = []
    while len(taken) < max_tokens and rest:
        token, _, remainder = rest.partition(" ")
        if not _is_style_token(token):
            break
        taken.append(token)
        rest = remainder.lstrip()
    return " ".join(taken), rest


def _format_border(style: Style) -> str:
    part = style.border or ""
    if style.border_width is not None or style.border_style is not None:
        part += ";"
        if style.border_width is not None:
            part += str(style.border_width)
        if style.border_style is not None:
            part += ";" + style.border_style
    return part


def format_shape_style(style: Optional[Style], attach_width: bool = False) -> str:
    """Emit ``fill border[;width][;style]`` in that fixed order.

    With ``attach_width`` a width given without a border colour is glued to
    the fill (``#blue;2``), which is how style definitions are written.
    """
    if style is None:
        return ""
    parts = []
    if attach_width and style.fill is not None and style.border is None and style.has_border_params():
        return style.fill + _format_border(style)
    if style.fill is not None:
        parts.append(style.fill)
    if style.has_border_params():
        parts.append(_format_border(style))
    return " ".join(parts)


def format_style_or_reference(style: Optional[Style]) -> str:
    if style is None:
        return ""
    if style.style_name is not None:
        return "##" + style.style_name
    return format_shape_style(style)


def parse_definition_style(text: str) -> Style:
    text = text.strip()
    if "," in text:
        shape, _, markup = text.partition(",")
    elif text.startswith("#") or text.startswith(";"):
        shape, markup = text, ""
    else:
        shape, markup = "", text
    style = parse_shape_style(shape.strip())
    if markup.strip():
        style = Style(**{**style.specified(), "text_markup": markup.strip()})
    return style


def format_definition_style(style: Style) -> str:
    shape = format_shape_style(style, attach_width=True)
    if style.text_markup is None:
        return shape
    if not shape:
        return style.text_markup
    return f"{shape},{style.text_markup}"


def parse_message_style(spec: str) -> Optional[Style]:
    spec = spec.strip()
    if not spec:
        return None
    if spec.startswith("##"):
        return Style(style_name=spec[2:])
    color, _, params = spec.partition(";")
    values: Dict[str, object] = {}
    if color.startswith("#"):
        values["fill"] = color
    if params:
        _apply_border_params(params, values)
    style = Style(**values)
    return None if style.is_empty() else style


def format_message_style(style: Optional[Style]) -> str:
    if style is None:
        return ""
    if style.style_name is not None:
        return "##" + style.style_name
    spec = style.fill or ""
    if style.border_width is not None:
        spec += f";{style.border_width}"
    if style.border_style is not None:
        spec += f";{style.border_style}" if style.border_width is not None else f";;{style.border_style}"
    return spec


def parse_line_style(text: str) -> LineStyle:
    color, _, params = text.strip().partition(";")
    width = None
    line_style = None
    for part in params.split(";"):
        part = part.strip()
        if part.isdigit():
            width = int(part)
        elif part in BORDER_STYLES:
            line_style = part
    return LineStyle(color=color or None, width=width, line_style=line_style)


def format_line_style(style: LineStyle) -> str:
    text = style.color or ""
    if style.width is not None or style.line_style is not None:
        text += ";"
        if style.width is not None:
            text += str(style.width)
        if style.line_style is not None:
            text += ";" + style.line_style
    return text


def resolve_color(color: Optional[str]) -> Optional[str]:
    """Turn ``#ff0000`` / ``#LightBlue`` into a renderer colour value."""
    if not color:
        return None
    if not color.startswith("#"):
        return color
    if _HEX_COLOR.match(color):
        return color
    return color[1:].lower()


HARD_DEFAULTS: Dict[str, Style] = {
    "participant": Style(fill="#white", border="#black", border_width=1, border_style="solid"),
    "message": Style(fill="#black", border_width=1),
    "note": Style(fill="#lightyellow", border="#black", border_width=1, border_style="solid"),
    "divider": Style(fill="#lightgray", border="#black", border_width=1, border_style="solid"),
    "fragment": Style(border="#black", border_width=1, border_style="solid", operator_color="#white"),
}


def _type_style_targets(node: Node) -> Sequence[str]:
    if isinstance(node, Participant):
        return ("participant",)
    if isinstance(node, Message):
        return ("message",)
    if isinstance(node, Divider):
        return ("divider",)
    if isinstance(node, Note):
        if node.note_type == "abox":
            side = "aboxleft" if node.position == "left of" else "aboxright"
            return (side, "abox")
        if node.note_type in ("box", "rbox"):
            return (node.note_type,)
        return ("note",)
    return ()


def _default_key(node: Node) -> str:
    if isinstance(node, Note):
        return "note"
    return node.type.value


@dataclass
class StyleSheet:
    """Named and per-type style definitions collected from one document."""

    named: Dict[str, Style] = field(default_factory=dict)
    by_type: Dict[str, Style] = field(default_factory=dict)

    @classmethod
    def from_document(cls, ast: Union[Document, Sequence[Node]]) -> "StyleSheet":
        sheet = cls()
        for directive in as_document(ast).filter(Directive):
            if directive.style is None:
                continue
            if directive.directive_type == DirectiveType.STYLE and directive.name:
                sheet.named[directive.name] = directive.style
            elif directive.directive_type == DirectiveType.TYPESTYLE and directive.target:
                sheet.by_type[directive.target] = directive.style
        return sheet

    def resolve(self, node: Node) -> Style:
        """Cascade inline style over named style over type style over defaults.

        An unknown ``##name`` contributes nothing, so the node degrades to the
        lower layers instead of failing.
        """
        resolved = HARD_DEFAULTS.get(_default_key(node), Style())
        for target in reversed(_type_style_targets(node)):
            type_style = self.by_type.get(target)
            if type_style is not None:
                resolved = type_style.merged_over(resolved)
        inline = getattr(node, "style", None)
        if inline is None:
            return resolved
        if inline.style_name is not None:
            named = self.named.get(inline.style_name)
            if named is None:
                logger.debug("Named style '%s' is not defined; using defaults", inline.style_name)
            else:
                resolved = named.merged_over(resolved)
        return inline.merged_over(resolved)


def resolve_style(node: Node, ast: Union[Document, Sequence[Node]]) -> Style:
    return StyleSheet.from_document(ast).resolve(node)
