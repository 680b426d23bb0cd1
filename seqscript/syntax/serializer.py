import re
from typing import Callable, Dict, List, Optional, Sequence, Union

from .nodes import (
    EXPANDABLE,
    BlankLine,
    Comment,
    Directive,
    DirectiveType,
    Divider,
    Document,
    ErrorNode,
    Fragment,
    Message,
    Node,
    Note,
    Participant,
    ParticipantGroup,
    Style,
    as_document,
)
from .styles import (
    format_definition_style,
    format_line_style,
    format_message_style,
    format_shape_style,
    format_style_or_reference,
)

INDENT = "  "

_PLAIN_ALIAS = re.compile(r"^[^\s#\"]+$")


def _format_number(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


def _with_style(head: str, style_text: str) -> str:
    return f"{head} {style_text}" if style_text else head


def _block_header(keyword: str, style: Optional[Style], text: str) -> str:
    head = keyword
    if style is not None and style.operator_color:
        head += style.operator_color
    head = _with_style(head, format_shape_style(style))
    return f"{head} {text}" if text else head


def format_participant(node: Participant) -> str:
    head = node.participant_type
    if node.icon_code is not None:
        head += f" {node.icon_code}"
    if node.image_data is not None:
        head += f" {node.image_data}"
    if node.display_name == node.alias and _PLAIN_ALIAS.match(node.alias):
        name = node.alias
    else:
        name = f'"{_escape(node.display_name)}" as {node.alias}'
    return _with_style(f"{head} {name}", format_shape_style(node.style))


def format_message(node: Message) -> str:
    arrow = node.arrow_type
    spec = format_message_style(node.style)
    if spec:
        dash = arrow.index("-")
        arrow = f"{arrow[:dash + 1]}[{spec}]{arrow[dash:]}"
    delay = f"({node.delay})" if node.delay else ""
    create = "*" if node.is_create else ""
    return f"{node.from_}{arrow}{delay}{create}{node.to}:{node.label}"


def format_note(node: Note) -> str:
    head = f"{node.note_type} {node.position} {','.join(node.participants)}"
    return _with_style(head, format_style_or_reference(node.style)) + f":{node.text}"


def format_divider(node: Divider) -> str:
    return _with_style(f"=={node.text}==", format_style_or_reference(node.style))


def _format_title(node: Directive) -> str:
    return f"title {node.value}"


def _format_entryspacing(node: Directive) -> str:
    return f"entryspacing {_format_number(node.value)}"


def _format_autonumber(node: Directive) -> str:
    return "autonumber off" if node.value is None else f"autonumber {node.value}"


def _format_space(node: Directive) -> str:
    return "space" if node.value in (None, 1) else f"space {node.value}"


def _format_participantspacing(node: Directive) -> str:
    return f"participantspacing {_format_number(node.value)}"


def _format_lifelinestyle(node: Directive) -> str:
    parts = ["lifelinestyle"]
    if node.participant:
        parts.append(node.participant)
    if node.line_style is not None and not node.line_style.is_empty():
        parts.append(format_line_style(node.line_style))
    return " ".join(parts)


def _format_toggle(keyword: str) -> Callable[[Directive], str]:
    def format_toggle(node: Directive) -> str:
        return keyword if node.value else f"{keyword} off"

    return format_toggle


def _format_fontfamily(node: Directive) -> str:
    value = str(node.value)
    if any(char.isspace() for char in value):
        value = f'"{value}"'
    return f"fontfamily {value}"


def _format_participant_directive(keyword: str) -> Callable[[Directive], str]:
    def format_participant_directive(node: Directive) -> str:
        return f"{keyword} {node.participant}"

    return format_participant_directive


def _format_activate(node: Directive) -> str:
    return _with_style(f"activate {node.participant}", node.color or "")


def _format_autoactivation(node: Directive) -> str:
    return f"autoactivation {'on' if node.value else 'off'}"


def _format_activecolor(node: Directive) -> str:
    head = f"activecolor {node.participant}" if node.participant else "activecolor"
    return _with_style(head, node.color or "")


def _format_frame(node: Directive) -> str:
    return _block_header("frame", node.style, node.value or "")


def _format_style(node: Directive) -> str:
    return f"style {node.name} {format_definition_style(node.style or Style())}"


def _format_typestyle(node: Directive) -> str:
    return f"{node.target}style {format_definition_style(node.style or Style())}"


_DIRECTIVE_FORMATTERS: Dict[DirectiveType, Callable[[Directive], str]] = {
    DirectiveType.TITLE: _format_title,
    DirectiveType.ENTRYSPACING: _format_entryspacing,
    DirectiveType.AUTONUMBER: _format_autonumber,
    DirectiveType.SPACE: _format_space,
    DirectiveType.PARTICIPANTSPACING: _format_participantspacing,
    DirectiveType.LIFELINESTYLE: _format_lifelinestyle,
    DirectiveType.LINEAR: _format_toggle("linear"),
    DirectiveType.PARALLEL: _format_toggle("parallel"),
    DirectiveType.BOTTOMPARTICIPANTS: lambda node: "bottomparticipants",
    DirectiveType.FONTFAMILY: _format_fontfamily,
    DirectiveType.DESTROY: _format_participant_directive("destroy"),
    DirectiveType.DESTROYAFTER: _format_participant_directive("destroyafter"),
    DirectiveType.DESTROYSILENT: _format_participant_directive("destroysilent"),
    DirectiveType.ACTIVATE: _format_activate,
    DirectiveType.DEACTIVATE: _format_participant_directive("deactivate"),
    DirectiveType.DEACTIVATEAFTER: _format_participant_directive("deactivateafter"),
    DirectiveType.AUTOACTIVATION: _format_autoactivation,
    DirectiveType.ACTIVECOLOR: _format_activecolor,
    DirectiveType.FRAME: _format_frame,
    DirectiveType.STYLE: _format_style,
    DirectiveType.TYPESTYLE: _format_typestyle,
}


def format_directive(node: Directive) -> str:
    return _DIRECTIVE_FORMATTERS[node.directive_type](node)


class Serializer:
    """Writes a document back out in its one canonical text form."""

    def __init__(self, ast: Union[Document, Sequence[Node]]):
        self.doc = as_document(ast)
        self._owned = self.doc.fragment_owned_ids()
        self._group_members, self._nested_groups = self.doc.group_owned()

    def serialize(self) -> str:
        lines: List[str] = []
        for node in self.doc:
            if node.id in self._owned or node.id in self._nested_groups or node.id in self._group_members:
                continue
            self._emit(node, 0, lines)
        return "\n".join(lines)

    def _emit(self, node: Node, depth: int, lines: List[str]) -> None:
        indent = INDENT * depth
        if isinstance(node, BlankLine):
            lines.append("")
        elif isinstance(node, Fragment):
            self._emit_fragment(node, depth, lines)
        elif isinstance(node, ParticipantGroup):
            self._emit_group(node, depth, lines)
        else:
            lines.append(indent + self._line(node))

    def _line(self, node: Node) -> str:
        if isinstance(node, Participant):
            return format_participant(node)
        if isinstance(node, Message):
            return format_message(node)
        if isinstance(node, Note):
            return format_note(node)
        if isinstance(node, Divider):
            return format_divider(node)
        if isinstance(node, Comment):
            return node.text
        if isinstance(node, Directive):
            return format_directive(node)
        if isinstance(node, ErrorNode):
            return f"// ERROR: {node.text or node.message}"
        raise TypeError(f"Cannot serialize node of type {type(node).__name__}")

    def _emit_children(self, entry_ids: Sequence[str], depth: int, lines: List[str]) -> None:
        for entry_id in entry_ids:
            child = self.doc.by_id.get(entry_id)
            if child is not None:
                self._emit(child, depth, lines)

    def _emit_fragment(self, node: Fragment, depth: int, lines: List[str]) -> None:
        indent = INDENT * depth
        keyword = node.fragment_type
        if keyword == EXPANDABLE:
            keyword += "-" if node.collapsed else "+"
        lines.append(indent + _block_header(keyword, node.style, node.condition))
        self._emit_children(node.entries, depth + 1, lines)
        for clause in node.else_clauses:
            lines.append(indent + _block_header("else", clause.style, clause.condition))
            self._emit_children(clause.entries, depth + 1, lines)
        lines.append(indent + "end")

    def _emit_group(self, node: ParticipantGroup, depth: int, lines: List[str]) -> None:
        indent = INDENT * depth
        header = "participantgroup"
        if node.color:
            header += f" {node.color}"
        if node.label:
            header += f" {node.label}"
        lines.append(indent + header)
        self._emit_children(node.participant_ids, depth + 1, lines)
        self._emit_children(node.nested_groups, depth + 1, lines)
        lines.append(indent + "end")


def serialize(ast: Union[Document, Sequence[Node]]) -> str:
    return Serializer(ast).serialize()
