import uuid
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from itertools import count
from typing import Any, ClassVar, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from ..errors import NodeNotFoundError


class NodeType(str, Enum):

    PARTICIPANT = "participant"
    MESSAGE = "message"
    FRAGMENT = "fragment"
    PARTICIPANT_GROUP = "participantgroup"
    NOTE = "note"
    DIVIDER = "divider"
    COMMENT = "comment"
    BLANKLINE = "blankline"
    DIRECTIVE = "directive"
    ERROR = "error"


class DirectiveType(str, Enum):

    TITLE = "title"
    ENTRYSPACING = "entryspacing"
    AUTONUMBER = "autonumber"
    SPACE = "space"
    PARTICIPANTSPACING = "participantspacing"
    LIFELINESTYLE = "lifelinestyle"
    LINEAR = "linear"
    PARALLEL = "parallel"
    BOTTOMPARTICIPANTS = "bottomparticipants"
    FONTFAMILY = "fontfamily"
    FRAME = "frame"
    DESTROY = "destroy"
    DESTROYAFTER = "destroyafter"
    DESTROYSILENT = "destroysilent"
    ACTIVATE = "activate"
    DEACTIVATE = "deactivate"
    DEACTIVATEAFTER = "deactivateafter"
    AUTOACTIVATION = "autoactivation"
    ACTIVECOLOR = "activecolor"
    STYLE = "style"
    TYPESTYLE = "typestyle"


PARTICIPANT_TYPES: Tuple[str, ...] = (
    "participant",
    "rparticipant",
    "actor",
    "database",
    "boundary",
    "control",
    "entity",
)

ICON_PARTICIPANT_TYPES: Tuple[str, ...] = (
    "fontawesome6solid",
    "fontawesome6regular",
    "fontawesome6brands",
    "mdi",
)

IMAGE_PARTICIPANT_TYPE = "image"

# Longest spellings first so alternation never stops at a shorter prefix.
ARROW_TYPES: Tuple[str, ...] = (
    "<-->>",
    "<->>",
    "-->>",
    "<->",
    "<--",
    "-->",
    "->>",
    "--x",
    "<-",
    "->",
    "-x",
)

FRAGMENT_TYPES: Tuple[str, ...] = (
    "alt",
    "loop",
    "opt",
    "par",
    "break",
    "critical",
    "ref",
    "seq",
    "strict",
    "neg",
    "ignore",
    "consider",
    "assert",
    "region",
    "group",
)

EXPANDABLE = "expandable"

NOTE_TYPES: Tuple[str, ...] = ("note", "box", "abox", "rbox", "ref", "state")

NOTE_POSITIONS: Tuple[str, ...] = ("over", "left of", "right of")

TYPE_STYLE_TARGETS: Tuple[str, ...] = (
    "participant",
    "note",
    "message",
    "divider",
    "box",
    "abox",
    "rbox",
    "aboxright",
    "aboxleft",
)

BORDER_STYLES: Tuple[str, ...] = ("solid", "dashed", "dotted")


def arrow_is_reversed(arrow: str) -> bool:
    return arrow.startswith("<") and arrow != "<->"


def arrow_is_bidirectional(arrow: str) -> bool:
    return arrow == "<->"


def arrow_is_dashed(arrow: str) -> bool:
    return "--" in arrow


def arrow_is_async(arrow: str) -> bool:
    return arrow.endswith(">>")


def arrow_is_lost(arrow: str) -> bool:
    return arrow.endswith("x")


@dataclass(frozen=True)
class Style:
    """Partially specified paint attributes.

    ``None`` means the attribute was never written in the source, which keeps
    it distinguishable from explicit values such as ``border_width=0``.
    """

    fill: Optional[str] = None
    border: Optional[str] = None
    border_width: Optional[int] = None
    border_style: Optional[str] = None
    operator_color: Optional[str] = None
    text_markup: Optional[str] = None
    style_name: Optional[str] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def has_border_params(self) -> bool:
        return self.border is not None or self.border_width is not None or self.border_style is not None

    def specified(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def merged_over(self, base: Optional["Style"]) -> "Style":
        if base is None:
            return self
        values = base.specified()
        values.update(self.specified())
        return Style(**values)


@dataclass(frozen=True)
class LineStyle:

    color: Optional[str] = None
    width: Optional[int] = None
    line_style: Optional[str] = None

    def is_empty(self) -> bool:
        return self.color is None and self.width is None and self.line_style is None


@dataclass(frozen=True)
class Node:

    type: ClassVar[NodeType]

    id: str
    source_line_start: int
    source_line_end: int


@dataclass(frozen=True)
class Participant(Node):

    type: ClassVar[NodeType] = NodeType.PARTICIPANT

    participant_type: str = "participant"
    alias: str = ""
    display_name: str = ""
    style: Style = field(default_factory=Style)
    icon_code: Optional[str] = None
    image_data: Optional[str] = None


@dataclass(frozen=True)
class Message(Node):

    type: ClassVar[NodeType] = NodeType.MESSAGE

    from_: str = ""
    to: str = ""
    arrow_type: str = "->"
    label: str = ""
    delay: Optional[int] = None
    is_create: bool = False
    style: Optional[Style] = None

    @property
    def is_self(self) -> bool:
        return self.from_ == self.to

    @property
    def is_boundary(self) -> bool:
        return self.from_ == "[" or self.to == "]"

    @property
    def is_dashed(self) -> bool:
        return arrow_is_dashed(self.arrow_type)

    @property
    def is_async(self) -> bool:
        return arrow_is_async(self.arrow_type)

    @property
    def is_lost(self) -> bool:
        return arrow_is_lost(self.arrow_type)

    @property
    def is_reversed(self) -> bool:
        return arrow_is_reversed(self.arrow_type)

    @property
    def is_bidirectional(self) -> bool:
        return arrow_is_bidirectional(self.arrow_type)


@dataclass(frozen=True)
class ElseClause:

    condition: str = ""
    style: Optional[Style] = None
    entries: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Fragment(Node):

    type: ClassVar[NodeType] = NodeType.FRAGMENT

    fragment_type: str = "alt"
    condition: str = ""
    style: Optional[Style] = None
    entries: Tuple[str, ...] = ()
    else_clauses: Tuple[ElseClause, ...] = ()
    collapsed: bool = False

    def all_entry_ids(self) -> Iterator[str]:
        yield from self.entries
        for clause in self.else_clauses:
            yield from clause.entries


@dataclass(frozen=True)
class ParticipantGroup(Node):

    type: ClassVar[NodeType] = NodeType.PARTICIPANT_GROUP

    color: Optional[str] = None
    label: str = ""
    participants: Tuple[str, ...] = ()
    participant_ids: Tuple[str, ...] = ()
    nested_groups: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Note(Node):

    type: ClassVar[NodeType] = NodeType.NOTE

    note_type: str = "note"
    position: str = "over"
    participants: Tuple[str, ...] = ()
    text: str = ""
    style: Optional[Style] = None


@dataclass(frozen=True)
class Divider(Node):

    type: ClassVar[NodeType] = NodeType.DIVIDER

    text: str = ""
    style: Optional[Style] = None


@dataclass(frozen=True)
class Comment(Node):

    type: ClassVar[NodeType] = NodeType.COMMENT

    text: str = ""


@dataclass(frozen=True)
class BlankLine(Node):

    type: ClassVar[NodeType] = NodeType.BLANKLINE


@dataclass(frozen=True)
class Directive(Node):
    """A document-level setting line.

    The payload fields used depend on ``directive_type``: ``value`` for
    title/entryspacing/autonumber/space/participantspacing/linear/parallel/
    bottomparticipants/fontfamily/autoactivation/frame, ``participant`` for
    lifecycle and activation kinds, ``color`` for activate/activecolor,
    ``style`` for frame and style definitions, ``name`` for named styles,
    ``target`` for type styles and ``line_style`` for lifelinestyle.
    """

    type: ClassVar[NodeType] = NodeType.DIRECTIVE

    directive_type: DirectiveType = DirectiveType.TITLE
    value: Any = None
    participant: Optional[str] = None
    color: Optional[str] = None
    style: Optional[Style] = None
    name: Optional[str] = None
    target: Optional[str] = None
    line_style: Optional[LineStyle] = None


@dataclass(frozen=True)
class ErrorNode(Node):

    type: ClassVar[NodeType] = NodeType.ERROR

    text: str = ""
    message: str = ""


_TYPE_PREFIXES: Dict[NodeType, str] = {
    NodeType.PARTICIPANT: "p",
    NodeType.MESSAGE: "m",
    NodeType.FRAGMENT: "f",
    NodeType.PARTICIPANT_GROUP: "pg",
    NodeType.NOTE: "n",
    NodeType.DIVIDER: "div",
    NodeType.COMMENT: "c",
    NodeType.BLANKLINE: "bl",
    NodeType.DIRECTIVE: "d",
    NodeType.ERROR: "e",
}

class IdGenerator:
    """Hands out node IDs such as ``m_3f9a1c_000012``.

    The namespace defaults to a random token per generator, so IDs from two
    generators do not collide and no state is shared between parses. Pass a
    fixed ``namespace`` for reproducible IDs.
    """

    def __init__(self, namespace: Optional[str] = None) -> None:
        self.namespace = namespace if namespace is not None else uuid.uuid4().hex[:6]
        self._counter = count(1)

    def next_id(self, node_type: NodeType) -> str:
        prefix = _TYPE_PREFIXES.get(node_type, "n")
        return f"{prefix}_{self.namespace}_{next(self._counter):06d}"


N = TypeVar("N", bound=Node)


class Document:
    """The flat node arena plus an ID index."""

    def __init__(self, nodes: Iterable[Node] = ()) -> None:
        self.nodes: Tuple[Node, ...] = tuple(nodes)
        self.by_id: Dict[str, Node] = {node.id: node for node in self.nodes}

    def __iter__(self) -> Iterator[Node]:
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> Node:
        return self.nodes[index]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.by_id

    def __repr__(self) -> str:
        return f"Document(nodes={len(self.nodes)}, errors={len(self.errors())})"

    def get(self, node_id: str) -> Node:
        try:
            return self.by_id[node_id]
        except KeyError:
            raise NodeNotFoundError(f"No node with id '{node_id}' in document.") from None

    def find(self, node_class: Type[N]) -> Optional[N]:
        for node in self.nodes:
            if isinstance(node, node_class):
                return node
        return None

    def filter(self, node_class: Type[N]) -> List[N]:
        return [node for node in self.nodes if isinstance(node, node_class)]

    def directives(self, directive_type: Optional[DirectiveType] = None) -> List[Directive]:
        return [
            node
            for node in self.nodes
            if isinstance(node, Directive) and (directive_type is None or node.directive_type == directive_type)
        ]

    def errors(self) -> List[ErrorNode]:
        return self.filter(ErrorNode)

    def fragment_owned_ids(self) -> set:
        owned = set()
        for node in self.nodes:
            if isinstance(node, Fragment):
                owned.update(node.all_entry_ids())
        return owned

    def group_owned(self) -> Tuple[set, set]:
        """Return (grouped participant ids, nested group ids)."""
        members = set()
        nested = set()
        for node in self.nodes:
            if isinstance(node, ParticipantGroup):
                members.update(node.participant_ids)
                nested.update(node.nested_groups)
        return members, nested

    def top_level(self) -> List[Node]:
        owned = self.fragment_owned_ids()
        members, nested_groups = self.group_owned()
        return [
            node
            for node in self.nodes
            if node.id not in owned and node.id not in nested_groups and node.id not in members
        ]

    def replace_node(self, node: Node) -> "Document":
        if node.id not in self.by_id:
            raise NodeNotFoundError(f"No node with id '{node.id}' in document.")
        return Document(node if existing.id == node.id else existing for existing in self.nodes)


def as_document(ast: Union[Document, Sequence[Node]]) -> Document:
    if isinstance(ast, Document):
        return ast
    return Document(ast)


def toggle_expandable(ast: Union[Document, Sequence[Node]], fragment_id: str) -> Document:
    doc = as_document(ast)
    fragment = doc.get(fragment_id)
    if not isinstance(fragment, Fragment) or fragment.fragment_type != EXPANDABLE:
        raise ValueError(f"Node '{fragment_id}' is not an expandable fragment.")
    return doc.replace_node(replace(fragment, collapsed=not fragment.collapsed))
