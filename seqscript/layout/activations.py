import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from .geometry import ActivationBar

logger = logging.getLogger(__name__)

DEFAULT_ACTIVATION_COLOR = "#ffffff"


@dataclass
class _OpenActivation:

    start_y: float
    color: Optional[str]
    caller: Optional[str] = None


class ActivationTracker:
    """Per-participant activation stacks.

    Bars are finalised in the order they are closed. ``caller`` is only set
    for activations opened by autoactivation and names the participant whose
    reply message closes the bar again.
    """

    def __init__(
        self,
        active_color: Optional[str] = None,
        participant_colors: Optional[Dict[str, str]] = None,
        default_color: str = DEFAULT_ACTIVATION_COLOR,
    ) -> None:
        self.active_color = active_color
        self.participant_colors: Dict[str, str] = dict(participant_colors or {})
        self.default_color = default_color
        self.autoactivation = False
        self.bars: List[ActivationBar] = []
        self._stacks: Dict[str, List[_OpenActivation]] = defaultdict(list)

    def _color_for(self, alias: str, color: Optional[str]) -> str:
        return color or self.participant_colors.get(alias) or self.active_color or self.default_color

    def depth(self, alias: str) -> int:
        return len(self._stacks[alias])

    def is_active(self, alias: str) -> bool:
        return bool(self._stacks[alias])

    def activate(self, alias: str, y: float, color: Optional[str] = None, caller: Optional[str] = None) -> None:
        self._stacks[alias].append(_OpenActivation(start_y=y, color=self._color_for(alias, color), caller=caller))

    def deactivate(self, alias: str, y: float) -> Optional[ActivationBar]:
        stack = self._stacks[alias]
        if not stack:
            logger.debug("Ignoring deactivate for '%s' with no open activation", alias)
            return None
        entry = stack.pop()
        bar = ActivationBar(
            participant=alias,
            start_y=entry.start_y,
            end_y=max(y, entry.start_y),
            depth=len(stack),
            color=entry.color,
        )
        self.bars.append(bar)
        return bar

    def message(self, sender: str, receiver: str, y: float) -> None:
        if not self.autoactivation or sender == receiver:
            return
        stack = self._stacks[sender]
        if stack and stack[-1].caller == receiver:
            self.deactivate(sender, y)
            return
        if not self._stacks[receiver]:
            self.activate(receiver, y, caller=sender)

    def close_all(self, y: float) -> None:
        for alias in list(self._stacks):
            while self._stacks[alias]:
                self.deactivate(alias, y)
