"""Access gate: which editing surfaces a share grant may use."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Union


class AccessLevel(str, Enum):
    OWNER = "owner"
    EDIT = "edit"
    VIEW = "view"


MUTATING_LEVELS = frozenset({AccessLevel.OWNER, AccessLevel.EDIT})


def can_mutate(level: Optional[Union[AccessLevel, str]]) -> bool:
    if level is None:
        return False
    try:
        return AccessLevel(level) in MUTATING_LEVELS
    except ValueError:
        return False


@dataclass(frozen=True)
class GraphHandlers:
    """Callbacks a diagram view binds to.

    A handler left as None is simply not wired: the view offers no such
    gesture instead of offering one that gets rejected.
    """
    on_node_drag: Callable[[str, float, float], Any]
    on_connect: Optional[Callable[..., Any]] = None
    on_relation_type_selected: Optional[Callable[..., Any]] = None
    on_connect_confirm: Optional[Callable[[], Any]] = None
    on_connect_cancel: Optional[Callable[[], Any]] = None
    on_edge_activate: Optional[Callable[[str], Any]] = None
    on_recolor: Optional[Callable[[str, Optional[str]], Any]] = None

    @property
    def read_only(self) -> bool:
        return self.on_connect is None


class AccessGate:
    """Predicate over the current grant, consulted by every mutating entry point."""

    def __init__(self, level: Optional[Union[AccessLevel, str]] = AccessLevel.OWNER):
        self.level = AccessLevel(level) if level is not None else None

    def can_mutate(self) -> bool:
        return can_mutate(self.level)

    def wire(self, on_node_drag, on_connect, on_relation_type_selected,
             on_connect_confirm, on_connect_cancel, on_edge_activate,
             on_recolor) -> GraphHandlers:
        """Build the handler set for the diagram, dropping mutators under view access."""
        if not self.can_mutate():
            return GraphHandlers(on_node_drag=on_node_drag)
        return GraphHandlers(
            on_node_drag=on_node_drag,
            on_connect=on_connect,
            on_relation_type_selected=on_relation_type_selected,
            on_connect_confirm=on_connect_confirm,
            on_connect_cancel=on_connect_cancel,
            on_edge_activate=on_edge_activate,
            on_recolor=on_recolor,
        )
