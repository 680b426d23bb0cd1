import logging
import re
from typing import Callable, Dict, List, Optional, Tuple

from .nodes import (
    ARROW_TYPES,
    EXPANDABLE,
    FRAGMENT_TYPES,
    ICON_PARTICIPANT_TYPES,
    IMAGE_PARTICIPANT_TYPE,
    NOTE_POSITIONS,
    NOTE_TYPES,
    PARTICIPANT_TYPES,
    TYPE_STYLE_TARGETS,
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
    Message,
    Node,
    Note,
    Participant,
    ParticipantGroup,
    Style,
)
from .styles import (
    parse_definition_style,
    parse_line_style,
    parse_message_style,
    parse_shape_style,
    parse_style_or_reference,
    split_style_prefix,
)

logger = logging.getLogger(__name__)

_ARROWS = "|".join(re.escape(arrow) for arrow in ARROW_TYPES)
_ARROW_SUFFIXES = "|".join(
    re.escape(suffix)
    for suffix in sorted({arrow[arrow.index("-"):] for arrow in ARROW_TYPES}, key=lambda suffix: (-len(suffix), suffix))
)
_FROM = r"(?P<from>\[|[^\s\-<\[:]+)"
_TO = r"(?:\((?P<delay>[1-9]\d*)\))?(?P<create>\*)?(?P<to>\]|[^\s:\-(>*\]][^\s:]*)(?::(?P<label>.*))?$"

_MESSAGE = re.compile(r"^" + _FROM + r"(?P<arrow>" + _ARROWS + r")" + _TO)
_STYLED_MESSAGE = re.compile(
    r"^" + _FROM + r"(?P<prefix><?-)\[(?P<spec>[^\]]*)\](?P<suffix>" + _ARROW_SUFFIXES + r")" + _TO
)

_KEYWORD_END = r"(?=#|\s|$)"
_FRAGMENT = re.compile(
    r"^(?P<kind>"
    + "|".join(FRAGMENT_TYPES)
    + r"|"
    + EXPANDABLE
    + r"[+-]?)"
    + _KEYWORD_END
    + r"(?P<operator>#[^\s#]+)?\s*(?P<rest>.*)$"
)
_ELSE = re.compile(r"^else" + _KEYWORD_END + r"\s*(?P<rest>.*)$")
_END = re.compile(r"^end$")
_PARTICIPANT_GROUP = re.compile(r"^participantgroup" + _KEYWORD_END + r"\s*(?P<rest>.*)$")

_PARTICIPANT = re.compile(r"^(?P<kind>" + "|".join(PARTICIPANT_TYPES) + r")\s+(?P<rest>.+)$")
_ICON_PARTICIPANT = re.compile(
    r"^(?P<kind>" + "|".join(ICON_PARTICIPANT_TYPES) + r")\s+(?P<icon>\S+)\s+(?P<rest>.+)$"
)
_IMAGE_PARTICIPANT = re.compile(r"^" + IMAGE_PARTICIPANT_TYPE + r"\s+(?P<data>\S+)\s+(?P<rest>.+)$")
_QUOTED_NAME = re.compile(r'^"(?P<display>(?:[^"\\]|\\.)*)"\s+as\s+(?P<alias>[^\s#]+)\s*(?P<style>.*)$')
_SIMPLE_NAME = re.compile(r"^(?P<alias>[^\s#\"]+)\s*(?P<style>.*)$")

_NOTE = re.compile(
    r"^(?P<kind>"
    + "|".join(NOTE_TYPES)
    + r")\s+(?P<position>"
    + "|".join(position.replace(" ", r"\s+") for position in NOTE_POSITIONS)
    + r")\s+(?P<participants>[^\s,#:]+(?:\s*,\s*[^\s,#:]+)*)\s*(?P<style>[^:]*?)\s*(?::(?P<text>.*))?$"
)
_DIVIDER = re.compile(r"^==(?P<text>.*)==\s*(?P<style>.*)$")
_COMMENT = re.compile(r"^(//|#)")

_TITLE = re.compile(r"^title\s+(?P<value>.+)$")
_ENTRYSPACING = re.compile(r"^entryspacing\s+(?P<value>\d+(?:\.\d+)?)$")
_AUTONUMBER = re.compile(r"^autonumber(?:\s+(?P<value>off|\d+))?$")
_SPACE = re.compile(r"^space(?:\s+(?P<value>-?\d+))?$")
_PARTICIPANTSPACING = re.compile(r"^participantspacing\s+(?P<value>equal|\d+(?:\.\d+)?)$")
_LIFELINESTYLE = re.compile(r"^lifelinestyle(?:\s+(?P<participant>[^\s#;]+))?(?:\s+(?P<style>[#;]\S*))?$")
_LINEAR = re.compile(r"^linear(?:\s+(?P<off>off))?$")
_PARALLEL = re.compile(r"^parallel(?:\s+(?P<off>off))?$")
_BOTTOMPARTICIPANTS = re.compile(r"^bottomparticipants$")
_FONTFAMILY = re.compile(r'^fontfamily\s+(?:"(?P<quoted>[^"]*)"|(?P<value>.+))$')
_DESTROY = re.compile(r"^(?P<kind>destroy|destroyafter|destroysilent)\s+(?P<participant>\S+)$")
_ACTIVATE = re.compile(r"^activate\s+(?P<participant>[^\s#]+)(?:\s+(?P<color>#\S+))?$")
_DEACTIVATE = re.compile(r"^(?P<kind>deactivate|deactivateafter)\s+(?P<participant>\S+)$")
_AUTOACTIVATION = re.compile(r"^autoactivation\s+(?P<value>on|off)$")
_ACTIVECOLOR = re.compile(r"^activecolor(?:\s+(?P<participant>[^\s#]+))?\s+(?P<color>#\S+)$")
_FRAME = re.compile(r"^frame" + _KEYWORD_END + r"(?P<operator>#[^\s#]+)?\s*(?P<rest>.*)$")
_STYLE_DEFINITION = re.compile(r"^style\s+(?P<name>[^\s#]+)\s+(?P<spec>.+)$")
_TYPE_STYLE_DEFINITION = re.compile(
    r"^(?P<target>" + "|".join(sorted(TYPE_STYLE_TARGETS, key=len, reverse=True)) + r")style\s+(?P<spec>.+)$"
)

_DESTROY_KINDS: Dict[str, DirectiveType] = {
    "destroy": DirectiveType.DESTROY,
    "destroyafter": DirectiveType.DESTROYAFTER,
    "destroysilent": DirectiveType.DESTROYSILENT,
}


def _unescape(text: str) -> str:
    return re.sub(r'\\(["n\\])', lambda match: "\n" if match.group(1) == "n" else match.group(1), text)


def _number(text: str):
    return float(text) if "." in text else int(text)


Handler = Callable[[re.Match, int], List[str]]


class Parser:
    """Line-oriented recursive-descent parser for diagram source text.

    Lines are classified by an ordered rule table where the first matching
    rule wins. Fragments and participant groups recurse until their ``end``
    line. Nothing here raises for bad input; unknown lines and unterminated
    blocks become ``ErrorNode`` entries in the returned document.
    """

    def __init__(self, id_generator: Optional[IdGenerator] = None):
        self.ids = id_generator or IdGenerator()
        self._lines: List[str] = []
        self._index = 0
        self._nodes: List[Optional[Node]] = []
        self._by_id: Dict[str, Node] = {}
        self._rules: List[Tuple[re.Pattern, Handler]] = [
            (re.compile(r"^$"), self._blank),
            (_COMMENT, self._comment),
            (_END, self._stray_end),
            (_ELSE, self._stray_else),
            (_TITLE, self._title),
            (_ENTRYSPACING, self._entryspacing),
            (_AUTONUMBER, self._autonumber),
            (_SPACE, self._space),
            (_PARTICIPANTSPACING, self._participantspacing),
            (_LIFELINESTYLE, self._lifelinestyle),
            (_LINEAR, self._linear),
            (_PARALLEL, self._parallel),
            (_BOTTOMPARTICIPANTS, self._bottomparticipants),
            (_FONTFAMILY, self._fontfamily),
            (_DESTROY, self._destroy),
            (_ACTIVATE, self._activate),
            (_DEACTIVATE, self._deactivate),
            (_AUTOACTIVATION, self._autoactivation),
            (_ACTIVECOLOR, self._activecolor),
            (_FRAME, self._frame),
            (_STYLE_DEFINITION, self._style_definition),
            (_TYPE_STYLE_DEFINITION, self._type_style_definition),
            (_DIVIDER, self._divider),
            (_NOTE, self._note),
            (_FRAGMENT, self._fragment),
            (_PARTICIPANT_GROUP, self._participant_group),
            (_ICON_PARTICIPANT, self._icon_participant),
            (_IMAGE_PARTICIPANT, self._image_participant),
            (_PARTICIPANT, self._participant),
            (_STYLED_MESSAGE, self._styled_message),
            (_MESSAGE, self._message),
        ]

    def parse(self, text: str) -> Document:
        self._lines = [line.rstrip("\r").strip() for line in text.split("\n")]
        self._index = 0
        self._nodes = []
        self._by_id = {}
        while self._index < len(self._lines):
            self._statement()
        document = Document(self._nodes)
        logger.debug(
            "Parsed %d line(s) into %d node(s) with %d error(s)",
            len(self._lines),
            len(document),
            len(document.errors()),
        )
        return document

    # Arena bookkeeping

    def _add(self, node: Node) -> str:
        self._nodes.append(node)
        self._by_id[node.id] = node
        return node.id

    def _reserve(self) -> int:
        self._nodes.append(None)
        return len(self._nodes) - 1

    def _fill(self, slot: int, node: Node) -> None:
        self._nodes[slot] = node
        self._by_id[node.id] = node

    def _single(self, node_class, line_number: int, **fields) -> List[str]:
        node_id = self.ids.next_id(node_class.type)
        return [self._add(node_class(id=node_id, source_line_start=line_number, source_line_end=line_number, **fields))]

    def _directive(self, line_number: int, directive_type: DirectiveType, **fields) -> List[str]:
        return self._single(Directive, line_number, directive_type=directive_type, **fields)

    def _error(self, text: str, message: str, start: int, end: Optional[int] = None) -> str:
        logger.debug("Line %d: %s", start, message)
        node = ErrorNode(
            id=self.ids.next_id(ErrorNode.type),
            source_line_start=start,
            source_line_end=end if end is not None else start,
            text=text,
            message=message,
        )
        return self._add(node)

    # Dispatch

    def _statement(self) -> List[str]:
        """Parse the line under the cursor, plus the block it opens if any."""
        line = self._lines[self._index]
        line_number = self._index + 1
        self._index += 1
        for pattern, handler in self._rules:
            match = pattern.match(line)
            if match is None:
                continue
            produced = handler(match, line_number)
            if produced is not None:
                return produced
        return [self._error(line, f"Unrecognized syntax: {line}", line_number)]

    # Trivia

    def _blank(self, match: re.Match, line_number: int) -> List[str]:
        return self._single(BlankLine, line_number)

    def _comment(self, match: re.Match, line_number: int) -> List[str]:
        return self._single(Comment, line_number, text=match.string)

    def _stray_end(self, match: re.Match, line_number: int) -> List[str]:
        return [self._error(match.string, "Unexpected 'end'", line_number)]

    def _stray_else(self, match: re.Match, line_number: int) -> List[str]:
        return [self._error(match.string, "'else' outside of fragment", line_number)]

    # Directives

    def _title(self, match: re.Match, line_number: int) -> List[str]:
        return self._directive(line_number, DirectiveType.TITLE, value=match.group("value").strip())

    def _entryspacing(self, match: re.Match, line_number: int) -> List[str]:
        return self._directive(line_number, DirectiveType.ENTRYSPACING, value=float(match.group("value")))

    def _autonumber(self, match: re.Match, line_number: int) -> List[str]:
        raw = match.group("value")
        if raw == "off":
            value = None
        else:
            value = int(raw) if raw else 1
        return self._directive(line_number, DirectiveType.AUTONUMBER, value=value)

    def _space(self, match: re.Match, line_number: int) -> List[str]:
        raw = match.group("value")
        return self._directive(line_number, DirectiveType.SPACE, value=int(raw) if raw else 1)

    def _participantspacing(self, match: re.Match, line_number: int) -> List[str]:
        raw = match.group("value")
        value = raw if raw == "equal" else _number(raw)
        return self._directive(line_number, DirectiveType.PARTICIPANTSPACING, value=value)

    def _lifelinestyle(self, match: re.Match, line_number: int) -> List[str]:
        return self._directive(
            line_number,
            DirectiveType.LIFELINESTYLE,
            participant=match.group("participant"),
            line_style=parse_line_style(match.group("style") or ""),
        )

    def _linear(self, match: re.Match, line_number: int) -> List[str]:
        return self._directive(line_number, DirectiveType.LINEAR, value=match.group("off") is None)

    def _parallel(self, match: re.Match, line_number: int) -> List[str]:
        return self._directive(line_number, DirectiveType.PARALLEL, value=match.group("off") is None)

    def _bottomparticipants(self, match: re.Match, line_number: int) -> List[str]:
        return self._directive(line_number, DirectiveType.BOTTOMPARTICIPANTS, value=True)

    def _fontfamily(self, match: re.Match, line_number: int) -> List[str]:
        quoted = match.group("quoted")
        value = quoted if quoted is not None else match.group("value").strip()
        return self._directive(line_number, DirectiveType.FONTFAMILY, value=value)

    def _destroy(self, match: re.Match, line_number: int) -> List[str]:
        return self._directive(
            line_number, _DESTROY_KINDS[match.group("kind")], participant=match.group("participant")
        )

    def _activate(self, match: re.Match, line_number: int) -> List[str]:
        return self._directive(
            line_number,
            DirectiveType.ACTIVATE,
            participant=match.group("participant"),
            color=match.group("color"),
        )

    def _deactivate(self, match: re.Match, line_number: int) -> List[str]:
        kind = DirectiveType.DEACTIVATE if match.group("kind") == "deactivate" else DirectiveType.DEACTIVATEAFTER
        return self._directive(line_number, kind, participant=match.group("participant"))

    def _autoactivation(self, match: re.Match, line_number: int) -> List[str]:
        return self._directive(line_number, DirectiveType.AUTOACTIVATION, value=match.group("value") == "on")

    def _activecolor(self, match: re.Match, line_number: int) -> List[str]:
        return self._directive(
            line_number,
            DirectiveType.ACTIVECOLOR,
            participant=match.group("participant"),
            color=match.group("color"),
        )

    def _frame(self, match: re.Match, line_number: int) -> List[str]:
        style_text, title = split_style_prefix(match.group("rest"))
        style = self._block_style(style_text, match.group("operator"))
        return self._directive(line_number, DirectiveType.FRAME, value=title, style=style)

    def _style_definition(self, match: re.Match, line_number: int) -> List[str]:
        return self._directive(
            line_number,
            DirectiveType.STYLE,
            name=match.group("name"),
            style=parse_definition_style(match.group("spec")),
        )

    def _type_style_definition(self, match: re.Match, line_number: int) -> List[str]:
        return self._directive(
            line_number,
            DirectiveType.TYPESTYLE,
            target=match.group("target"),
            style=parse_definition_style(match.group("spec")),
        )

    # Drawn elements

    def _divider(self, match: re.Match, line_number: int) -> List[str]:
        return self._single(
            Divider,
            line_number,
            text=match.group("text").strip(),
            style=parse_style_or_reference(match.group("style")),
        )

    def _note(self, match: re.Match, line_number: int) -> List[str]:
        participants = tuple(alias.strip() for alias in match.group("participants").split(","))
        return self._single(
            Note,
            line_number,
            note_type=match.group("kind"),
            position=" ".join(match.group("position").split()),
            participants=participants,
            text=(match.group("text") or "").strip(),
            style=parse_style_or_reference(match.group("style")),
        )

    def _participant_fields(self, rest: str) -> Optional[Dict[str, object]]:
        match = _QUOTED_NAME.match(rest)
        if match:
            display_name = _unescape(match.group("display"))
        else:
            match = _SIMPLE_NAME.match(rest)
            if match is None:
                return None
            display_name = match.group("alias")
        style_text = match.group("style").strip()
        if style_text and not style_text.startswith(("#", ";")):
            return None
        return {
            "alias": match.group("alias"),
            "display_name": display_name,
            "style": parse_shape_style(style_text),
        }

    def _participant(self, match: re.Match, line_number: int) -> Optional[List[str]]:
        fields = self._participant_fields(match.group("rest"))
        if fields is None:
            return None
        return self._single(Participant, line_number, participant_type=match.group("kind"), **fields)

    def _icon_participant(self, match: re.Match, line_number: int) -> Optional[List[str]]:
        fields = self._participant_fields(match.group("rest"))
        if fields is None:
            return None
        return self._single(
            Participant,
            line_number,
            participant_type=match.group("kind"),
            icon_code=match.group("icon"),
            **fields,
        )

    def _image_participant(self, match: re.Match, line_number: int) -> Optional[List[str]]:
        fields = self._participant_fields(match.group("rest"))
        if fields is None:
            return None
        return self._single(
            Participant,
            line_number,
            participant_type=IMAGE_PARTICIPANT_TYPE,
            image_data=match.group("data"),
            **fields,
        )

    def _message_fields(self, match: re.Match, arrow: str, style: Optional[Style]) -> Dict[str, object]:
        label = (match.group("label") or "").strip()
        delay = match.group("delay")
        return {
            "from_": match.group("from"),
            "to": match.group("to"),
            "arrow_type": arrow,
            "label": label,
            "delay": int(delay) if delay else None,
            "is_create": match.group("create") is not None or "<<create>>" in label,
            "style": style,
        }

    def _styled_message(self, match: re.Match, line_number: int) -> Optional[List[str]]:
        arrow = match.group("prefix")[:-1] + match.group("suffix")
        if arrow not in ARROW_TYPES:
            return None
        fields = self._message_fields(match, arrow, parse_message_style(match.group("spec")))
        return self._single(Message, line_number, **fields)

    def _message(self, match: re.Match, line_number: int) -> List[str]:
        fields = self._message_fields(match, match.group("arrow"), None)
        return self._single(Message, line_number, **fields)

    # Blocks

    @staticmethod
    def _block_style(style_text: str, operator: Optional[str]) -> Optional[Style]:
        style = parse_shape_style(style_text)
        if operator:
            style = Style(**{**style.specified(), "operator_color": operator})
        return None if style.is_empty() else style

    def _fragment(self, match: re.Match, line_number: int) -> List[str]:
        slot = self._reserve()
        fragment_id = self.ids.next_id(Fragment.type)
        kind = match.group("kind")
        collapsed = False
        if kind.startswith(EXPANDABLE):
            collapsed = kind.endswith("-")
            kind = EXPANDABLE
        style_text, condition = split_style_prefix(match.group("rest"))
        style = self._block_style(style_text, match.group("operator"))

        entries: List[str] = []
        clauses: List[Tuple[str, Optional[Style], List[str]]] = []
        current = entries
        closed = False
        while self._index < len(self._lines):
            line = self._lines[self._index]
            if _END.match(line):
                self._index += 1
                closed = True
                break
            else_match = _ELSE.match(line)
            if else_match:
                self._index += 1
                else_style_text, else_condition = split_style_prefix(else_match.group("rest"))
                clause_style = parse_shape_style(else_style_text)
                current = []
                clauses.append((else_condition, None if clause_style.is_empty() else clause_style, current))
                continue
            current.extend(self._statement())

        fragment = Fragment(
            id=fragment_id,
            source_line_start=line_number,
            source_line_end=self._index,
            fragment_type=kind,
            condition=condition,
            style=style,
            entries=tuple(entries),
            else_clauses=tuple(
                ElseClause(condition=text, style=clause_style, entries=tuple(ids))
                for text, clause_style, ids in clauses
            ),
            collapsed=collapsed,
        )
        self._fill(slot, fragment)
        produced = [fragment_id]
        if not closed:
            produced.append(
                self._error(
                    match.string,
                    f"Unclosed fragment '{kind}' (missing 'end')",
                    line_number,
                    self._index,
                )
            )
        return produced

    def _participant_group(self, match: re.Match, line_number: int) -> List[str]:
        slot = self._reserve()
        group_id = self.ids.next_id(ParticipantGroup.type)
        rest = match.group("rest")
        color = None
        if rest.startswith("#") and not rest.startswith("##"):
            color, _, rest = rest.partition(" ")
        label = rest.strip()

        participants: List[str] = []
        participant_ids: List[str] = []
        nested: List[str] = []
        free: List[str] = []
        closed = False
        while self._index < len(self._lines):
            line = self._lines[self._index]
            if _END.match(line):
                self._index += 1
                closed = True
                break
            for node_id in self._statement():
                node = self._by_id[node_id]
                if isinstance(node, Participant):
                    participants.append(node.alias)
                    participant_ids.append(node_id)
                elif isinstance(node, ParticipantGroup):
                    nested.append(node_id)
                else:
                    free.append(node_id)

        self._fill(
            slot,
            ParticipantGroup(
                id=group_id,
                source_line_start=line_number,
                source_line_end=self._index,
                color=color,
                label=label,
                participants=tuple(participants),
                participant_ids=tuple(participant_ids),
                nested_groups=tuple(nested),
            ),
        )
        produced = [group_id] + free
        if not closed:
            produced.append(
                self._error(match.string, "Unclosed participantgroup (missing 'end')", line_number, self._index)
            )
        return produced


def parse(text: str, id_generator: Optional[IdGenerator] = None) -> Document:
    return Parser(id_generator).parse(text)
