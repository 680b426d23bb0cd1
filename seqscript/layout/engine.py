import logging
from dataclasses import dataclass, fields
from typing import Dict, List, Optional, Sequence, Tuple, Union

from ..errors import ConfigurationError
from ..syntax.nodes import (
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
    as_document,
)
from .activations import ActivationTracker
from .geometry import (
    Box,
    FragmentGeometry,
    Geometry,
    LayoutResult,
    MarkerGeometry,
    MessageGeometry,
    NoteGeometry,
    ParticipantGeometry,
)
from .measure import line_count, split_lines, strip_markup, display_width, widest_line
from .packing import LevelPacker, ParallelSection

logger = logging.getLogger(__name__)

BOUNDARY_SOURCE = "["
BOUNDARY_TARGET = "]"


@dataclass
class LayoutConfig:

    line_height: float = 16
    char_width: float = 7
    participant_char_width: float = 7.5
    participant_min_width: float = 80
    participant_padding: float = 20
    participant_width: float = 100
    participant_height: float = 60
    participant_spacing: float = 150
    participant_gap: float = 20
    start_x: float = 50
    start_y: float = 50
    title_height: float = 30
    message_start_y: float = 150
    message_spacing: float = 50
    space_unit: float = 20
    delay_unit: float = 10
    self_message_width: float = 40
    self_message_label_gap: float = 5
    message_label_padding: float = 20
    error_height: float = 40
    error_gap: float = 10
    error_overhang: float = 10
    fragment_padding: float = 5
    fragment_margin: float = 20
    fragment_header_height: float = 45
    fragment_bounds_margin: float = 20
    collapsed_fragment_height: float = 10
    else_label_height: float = 35
    note_height: float = 28
    note_width: float = 50
    note_padding_h: float = 8
    note_padding_v: float = 6
    note_margin: float = 35
    note_connector_gap: float = 8
    divider_height: float = 24
    divider_overhang: float = 20
    boundary_offset: float = 30
    group_padding: float = 10
    group_label_height: float = 25
    activation_width: float = 10
    frame_padding: float = 20
    bottom_participants_gap: float = 10
    margin: float = 50

    def __post_init__(self):
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{item.name} must be a number.")
            if value < 0:
                raise ConfigurationError(f"{item.name} must not be negative.")
        if self.participant_min_width <= 0:
            raise ConfigurationError("participant_min_width must be positive.")


@dataclass
class _Settings:

    title: bool = False
    message_spacing: float = 0.0
    participant_spacing: Union[float, str] = 0.0
    bottom_participants: bool = False
    active_color: Optional[str] = None
    participant_colors: Optional[Dict[str, str]] = None
    frame: Optional[Directive] = None


class _LayoutPass:
    """One forward walk over a document, threading the y cursor and mode state."""

    def __init__(self, config: LayoutConfig, doc: Document):
        self.config = config
        self.doc = doc
        self.settings = self._read_settings()
        self.layout: Dict[str, Geometry] = {}
        self.participant_layout: Dict[str, ParticipantGeometry] = {}
        self.order: List[str] = []
        self.y = 0.0
        self.last_message_y = 0.0
        self.counter: Optional[int] = None
        self.linear = False
        self.packer = LevelPacker()
        self.parallel: Optional[ParallelSection] = None
        self.activations = ActivationTracker(
            active_color=self.settings.active_color,
            participant_colors=self.settings.participant_colors,
        )

    def _read_settings(self) -> _Settings:
        config = self.config
        settings = _Settings(
            message_spacing=config.message_spacing,
            participant_spacing=config.participant_spacing,
            participant_colors={},
        )
        for node in self.doc.filter(Directive):
            kind = node.directive_type
            if kind == DirectiveType.TITLE:
                settings.title = True
            elif kind == DirectiveType.ENTRYSPACING:
                settings.message_spacing = config.message_spacing * node.value
            elif kind == DirectiveType.PARTICIPANTSPACING:
                settings.participant_spacing = node.value
            elif kind == DirectiveType.BOTTOMPARTICIPANTS:
                settings.bottom_participants = True
            elif kind == DirectiveType.ACTIVECOLOR:
                if node.participant:
                    settings.participant_colors[node.participant] = node.color
                else:
                    settings.active_color = node.color
            elif kind == DirectiveType.FRAME and settings.frame is None:
                settings.frame = node
        return settings

    # Participants

    def _participant_names(self) -> List[Tuple[str, str, bool]]:
        names: Dict[str, Tuple[str, bool]] = {}
        for node in self.doc.filter(Participant):
            names.setdefault(node.alias, (node.display_name or node.alias, False))
        for node in self.doc.filter(Message):
            for alias in (node.from_, node.to):
                if alias not in (BOUNDARY_SOURCE, BOUNDARY_TARGET):
                    names.setdefault(alias, (alias, True))
        return [(alias, name, implicit) for alias, (name, implicit) in names.items()]

    def _participant_width(self, name: str) -> float:
        config = self.config
        text_width = widest_line(name) * config.participant_char_width + config.participant_padding
        return max(config.participant_min_width, text_width)

    def _note_size(self, text: str) -> Tuple[float, float]:
        config = self.config
        lines = split_lines(text)
        longest = max([display_width(strip_markup(line)) for line in lines] + [1])
        width = max(config.note_width, longest * config.char_width + config.note_padding_h * 2)
        height = max(config.note_height, len(lines) * config.line_height + config.note_padding_v * 2)
        return width, height

    def _extra_spacing(self) -> Dict[int, float]:
        config = self.config
        index = {alias: position for position, alias in enumerate(self.order)}
        extra: Dict[int, float] = {}

        def need(slot: int, amount: float) -> None:
            extra[slot] = max(extra.get(slot, 0.0), amount)

        for note in self.doc.filter(Note):
            if not note.participants or note.participants[0] not in index:
                continue
            target = index[note.participants[0]]
            width, _ = self._note_size(note.text)
            if note.position == "left of" and target > 0:
                need(target, width + config.note_connector_gap * 2)
            elif note.position == "right of" and target < len(self.order) - 1:
                need(target + 1, width + config.note_connector_gap * 2)

        for message in self.doc.filter(Message):
            if message.from_ not in index or message.to not in index:
                continue
            source, target = index[message.from_], index[message.to]
            label_width = widest_line(message.label) * config.char_width
            if source == target:
                if source < len(self.order) - 1:
                    need(
                        source + 1,
                        config.self_message_width + config.self_message_label_gap + label_width + 10,
                    )
            elif abs(source - target) == 1:
                need(max(source, target), label_width + config.message_label_padding)
        return extra

    def _place_participants(self) -> None:
        config = self.config
        entries = self._participant_names()
        self.order = [alias for alias, _, _ in entries]
        widths = [self._participant_width(name) for _, name, _ in entries]
        extra = self._extra_spacing()

        equal_spacing = None
        if self.settings.participant_spacing == "equal":
            equal_spacing = max(
                [config.participant_spacing]
                + [width + config.participant_gap for width in widths[:-1]]
                + list(extra.values())
            )

        row_y = config.start_y + (config.title_height if self.settings.title else 0)
        x = config.start_x
        for position, (alias, _, implicit) in enumerate(entries):
            if position > 0:
                if equal_spacing is not None:
                    x += equal_spacing
                else:
                    requested = max(float(self.settings.participant_spacing), extra.get(position, 0.0))
                    x += max(requested, widths[position - 1] + config.participant_gap)
            width = widths[position]
            self.participant_layout[alias] = ParticipantGeometry(
                x=x,
                y=row_y,
                width=width,
                height=config.participant_height,
                center_x=x + width / 2,
                implicit=implicit,
            )
        for node in self.doc.filter(Participant):
            self.layout[node.id] = self.participant_layout[node.alias]
        for group in self.doc.filter(ParticipantGroup):
            box = self._group_box(group)
            if box is not None:
                self.layout[group.id] = box

    def _group_aliases(self, group: ParticipantGroup) -> List[str]:
        aliases = list(group.participants)
        for nested_id in group.nested_groups:
            nested = self.doc.by_id.get(nested_id)
            if isinstance(nested, ParticipantGroup):
                aliases.extend(self._group_aliases(nested))
        return aliases

    def _group_box(self, group: ParticipantGroup) -> Optional[Box]:
        config = self.config
        placed = [self.participant_layout[alias] for alias in self._group_aliases(group) if alias in self.participant_layout]
        if not placed:
            return None
        left = min(geometry.x for geometry in placed) - config.group_padding
        right = max(geometry.right for geometry in placed) + config.group_padding
        top = placed[0].y - config.group_label_height
        return Box(x=left, y=top, width=right - left, height=config.participant_height + config.group_label_height + config.group_padding)

    def _row_extent(self, overhang: float) -> Tuple[float, float]:
        config = self.config
        if not self.participant_layout:
            return config.start_x - overhang, config.start_x + config.participant_width + overhang
        placed = self.participant_layout.values()
        return min(p.x for p in placed) - overhang, max(p.right for p in placed) + overhang

    # Cursor helpers

    def _flush(self) -> None:
        self.y = self.packer.close(self.y)

    def _endpoint_x(self, alias: str) -> float:
        left, right = self._row_extent(self.config.boundary_offset)
        if alias == BOUNDARY_SOURCE:
            return left
        if alias == BOUNDARY_TARGET:
            return right
        geometry = self.participant_layout.get(alias)
        if geometry is not None:
            return geometry.center_x
        return (left + right) / 2

    # Node dispatch

    def run(self) -> LayoutResult:
        config = self.config
        self._place_participants()
        title_offset = config.title_height if self.settings.title else 0
        self.y = config.message_start_y + title_offset
        self.last_message_y = self.y

        for node in self.doc.top_level():
            self.layout_node(node)

        self._flush()
        if self.parallel is not None:
            self.y = self.parallel.close(self.y)
            self.parallel = None
        self.activations.close_all(self.y)
        self._position_activations()

        frame = self._frame_box()
        bottom = config.participant_height + config.bottom_participants_gap if self.settings.bottom_participants else 0
        total_height = self.y + config.margin + bottom
        if frame is not None:
            total_height = max(total_height, frame.bottom + config.margin)
        logger.debug(
            "Laid out %d node(s) across %d participant(s); total height %s",
            len(self.layout),
            len(self.participant_layout),
            total_height,
        )
        return LayoutResult(
            layout=self.layout,
            total_height=total_height,
            participant_layout=self.participant_layout,
            activations=list(self.activations.bars),
            frame=frame,
        )

    def layout_node(self, node: Node) -> None:
        if isinstance(node, (Participant, ParticipantGroup, Comment, BlankLine)):
            return
        if isinstance(node, Directive):
            self._directive(node)
        elif isinstance(node, Message):
            self._message(node)
        elif isinstance(node, ErrorNode):
            self._error(node)
        elif isinstance(node, Note):
            self._note(node)
        elif isinstance(node, Divider):
            self._divider(node)
        elif isinstance(node, Fragment):
            self._fragment(node)

    def _directive(self, node: Directive) -> None:
        kind = node.directive_type
        spacing = self.settings.message_spacing
        if kind == DirectiveType.SPACE:
            self._flush()
            self.y += node.value * self.config.space_unit
        elif kind == DirectiveType.LINEAR:
            if not node.value:
                self._flush()
            self.linear = bool(node.value)
        elif kind == DirectiveType.PARALLEL:
            self._flush()
            if node.value:
                if self.parallel is None:
                    self.parallel = ParallelSection(self.y)
            elif self.parallel is not None:
                self.y = self.parallel.close(self.y)
                self.parallel = None
        elif kind == DirectiveType.AUTONUMBER:
            self.counter = node.value
        elif kind in (DirectiveType.DESTROY, DirectiveType.DESTROYAFTER, DirectiveType.DESTROYSILENT):
            self._flush()
            self.layout[node.id] = MarkerGeometry(y=self.y, kind=kind.value, participant=node.participant)
            if kind == DirectiveType.DESTROYAFTER:
                self.y += spacing
        elif kind == DirectiveType.ACTIVATE:
            self.layout[node.id] = MarkerGeometry(y=self.last_message_y, kind=kind.value, participant=node.participant)
            self.activations.activate(node.participant, self.last_message_y, node.color)
        elif kind == DirectiveType.DEACTIVATE:
            self.layout[node.id] = MarkerGeometry(y=self.last_message_y, kind=kind.value, participant=node.participant)
            self.activations.deactivate(node.participant, self.last_message_y)
        elif kind == DirectiveType.DEACTIVATEAFTER:
            self._flush()
            self.layout[node.id] = MarkerGeometry(y=self.last_message_y, kind=kind.value, participant=node.participant)
            self.activations.deactivate(node.participant, self.last_message_y + spacing)
            self.y += spacing
        elif kind == DirectiveType.AUTOACTIVATION:
            self.activations.autoactivation = bool(node.value)

    def _message(self, node: Message) -> None:
        config = self.config
        from_x = self._endpoint_x(node.from_)
        to_x = self._endpoint_x(node.to)
        delay = node.delay or 0
        delay_height = delay * config.delay_unit
        label_height = (line_count(node.label) - 1) * config.line_height
        height = self.settings.message_spacing + delay_height + label_height

        level = None
        if self.parallel is not None:
            top = self.parallel.place(height)
        elif self.linear:
            if node.is_self:
                span = (from_x, from_x + config.self_message_width)
            else:
                span = (min(from_x, to_x), max(from_x, to_x))
            top = self.packer.place(span, self.y, height)
            level = self.packer.level
        else:
            top = self.y
            self.y += height
        y = top + label_height

        number = None
        if self.counter is not None:
            number = self.counter
            self.counter += 1

        self.layout[node.id] = MessageGeometry(
            y=y,
            from_x=from_x,
            to_x=to_x,
            height=height,
            end_y=y + delay_height,
            delay=delay,
            number=number,
            is_boundary=node.is_boundary,
            level=level,
        )
        self.last_message_y = y
        self.activations.message(node.from_, node.to, y)

    def _error(self, node: ErrorNode) -> None:
        config = self.config
        self._flush()
        left, right = self._row_extent(config.error_overhang)
        self.layout[node.id] = Box(x=left, y=self.y, width=right - left, height=config.error_height)
        self.y += config.error_height + config.error_gap

    def _divider(self, node: Divider) -> None:
        config = self.config
        self._flush()
        left, right = self._row_extent(config.divider_overhang)
        self.layout[node.id] = Box(x=left, y=self.y, width=right - left, height=config.divider_height)
        self.y += config.divider_height + config.note_margin

    def _note(self, node: Note) -> None:
        self._flush()
        geometry = self._note_geometry(node)
        self.layout[node.id] = geometry
        self.y += geometry.height + self.config.note_margin

    def _note_geometry(self, node: Note) -> NoteGeometry:
        config = self.config
        width, height = self._note_size(node.text)
        placed = [self.participant_layout[alias] for alias in node.participants if alias in self.participant_layout]
        if not placed:
            return NoteGeometry(x=config.start_x, y=self.y, width=width, height=height)
        if node.position == "left of":
            lifeline = placed[0].center_x
            return NoteGeometry(
                x=lifeline - width - config.note_connector_gap,
                y=self.y,
                width=width,
                height=height,
                connector_x=lifeline,
                connector_side="left",
            )
        if node.position == "right of":
            lifeline = placed[0].center_x
            return NoteGeometry(
                x=lifeline + config.note_connector_gap,
                y=self.y,
                width=width,
                height=height,
                connector_x=lifeline,
                connector_side="right",
            )
        if len(placed) == 1:
            return NoteGeometry(x=placed[0].center_x - width / 2, y=self.y, width=width, height=height)
        lowest = min(geometry.center_x for geometry in placed)
        highest = max(geometry.center_x for geometry in placed)
        return NoteGeometry(
            x=lowest - width / 4,
            y=self.y,
            width=max(width, highest - lowest + width / 2),
            height=height,
        )

    def _children(self, entry_ids: Sequence[str]) -> None:
        for entry_id in entry_ids:
            child = self.doc.by_id.get(entry_id)
            if child is not None:
                self.layout_node(child)

    def _fragment(self, node: Fragment) -> None:
        config = self.config
        self._flush()
        # Fragment bodies stay sequential inside a parallel section.
        resume_parallel = self.parallel is not None
        if resume_parallel:
            self.y = self.parallel.close(self.y)
            self.parallel = None
        start = self.y
        self.y += config.fragment_header_height
        collapsed = node.fragment_type == EXPANDABLE and node.collapsed
        dividers: List[float] = []
        if collapsed:
            self.y += config.collapsed_fragment_height
        else:
            self._children(node.entries)
            for clause in node.else_clauses:
                self._flush()
                dividers.append(self.y)
                self.y += config.else_label_height
                self._children(clause.entries)
            self._flush()
        self.y += config.fragment_padding
        left, right = self._fragment_bounds(node)
        self.layout[node.id] = FragmentGeometry(
            x=left,
            y=start,
            width=right - left,
            height=self.y - start,
            collapsed=collapsed,
            else_divider_ys=dividers,
        )
        self.y += config.fragment_margin
        if resume_parallel:
            self.parallel = ParallelSection(self.y)

    def _fragment_bounds(self, node: Fragment) -> Tuple[float, float]:
        margin = self.config.fragment_bounds_margin
        xs: List[float] = []
        for entry_id in node.all_entry_ids():
            entry = self.doc.by_id.get(entry_id)
            if isinstance(entry, Message):
                for alias in (entry.from_, entry.to):
                    geometry = self.participant_layout.get(alias)
                    if geometry is not None:
                        xs.extend((geometry.x, geometry.right))
            elif isinstance(entry, Fragment):
                xs.extend(self._fragment_bounds(entry))
        if not xs:
            return self._row_extent(margin)
        return min(xs) - margin, max(xs) + margin

    # Post-pass

    def _position_activations(self) -> None:
        width = self.config.activation_width
        for bar in self.activations.bars:
            geometry = self.participant_layout.get(bar.participant)
            if geometry is not None:
                bar.x = geometry.center_x - width / 2 + bar.depth * width / 2

    def _frame_box(self) -> Optional[Box]:
        if self.settings.frame is None:
            return None
        pad = self.config.frame_padding
        left, right = self._row_extent(pad)
        top = self.config.start_y - pad
        return Box(x=left, y=top, width=right - left, height=self.y + pad - top)


class LayoutEngine:

    def __init__(self, config: Optional[LayoutConfig] = None):
        if config is not None and not isinstance(config, LayoutConfig):
            raise ConfigurationError("config must be a LayoutConfig instance.")
        self.config = config or LayoutConfig()

    def calculate(self, ast: Union[Document, Sequence[Node]]) -> LayoutResult:
        return _LayoutPass(self.config, as_document(ast)).run()


def calculate_layout(ast: Union[Document, Sequence[Node]], config: Optional[LayoutConfig] = None) -> LayoutResult:
    return LayoutEngine(config).calculate(ast)
