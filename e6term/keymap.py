"""Key-token to action tables used by the session state machine."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .commands import Command

Action = Callable[[], "list[Command]"]


@dataclass(frozen=True)
class KeyBinding:
    """One or more key tokens bound to a single action."""

    keys: tuple[str, ...]
    action: Action


class KeyMap:
    """Exact-match dispatch table; later bindings overwrite earlier ones."""

    def __init__(self, *bindings: KeyBinding) -> None:
        self._actions: dict[str, Action] = {}
        for binding in bindings:
            self.bind(binding)

    def bind(self, binding: KeyBinding) -> KeyMap:
        for key in binding.keys:
            self._actions[key] = binding.action
        return self

    def __contains__(self, key: str) -> bool:
        return key in self._actions

    def dispatch(self, key: str) -> list[Command] | None:
        """Run the action bound to ``key``; ``None`` when nothing is bound."""
        action = self._actions.get(key)
        if action is None:
            return None
        return action()


__all__ = ["KeyBinding", "KeyMap"]
