from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union


@dataclass
class Box:

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass
class ParticipantGeometry(Box):

    center_x: float = 0.0
    implicit: bool = False


@dataclass
class MessageGeometry:

    y: float
    from_x: float
    to_x: float
    height: float
    end_y: float
    delay: int = 0
    number: Optional[int] = None
    is_boundary: bool = False
    level: Optional[int] = None

    @property
    def span(self):
        return min(self.from_x, self.to_x), max(self.from_x, self.to_x)


@dataclass
class NoteGeometry(Box):

    connector_x: Optional[float] = None
    connector_side: Optional[str] = None


@dataclass
class FragmentGeometry(Box):

    collapsed: bool = False
    else_divider_ys: List[float] = field(default_factory=list)


@dataclass
class MarkerGeometry:
    """A y position recorded for lifecycle and activation directives."""

    y: float
    kind: str
    participant: Optional[str] = None


Geometry = Union[Box, ParticipantGeometry, MessageGeometry, NoteGeometry, FragmentGeometry, MarkerGeometry]


@dataclass
class ActivationBar:

    participant: str
    start_y: float
    end_y: float
    depth: int = 0
    color: Optional[str] = None
    x: Optional[float] = None

    def contains(self, other: "ActivationBar") -> bool:
        return self.start_y <= other.start_y and other.end_y <= self.end_y


@dataclass
class LayoutResult:

    layout: Dict[str, Geometry]
    total_height: float
    participant_layout: Dict[str, ParticipantGeometry]
    activations: List[ActivationBar] = field(default_factory=list)
    frame: Optional[Box] = None

    def __getitem__(self, node_id: str) -> Geometry:
        return self.layout[node_id]

    def activations_for(self, alias: str) -> List[ActivationBar]:
        return [bar for bar in self.activations if bar.participant == alias]
