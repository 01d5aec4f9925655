"""Time-tagged sail commands applied by the simulation driver."""

from __future__ import annotations

from dataclasses import dataclass, field

from .ship import PropulsionConfig


@dataclass(slots=True, frozen=True)
class SailCommand:
    t: float
    ship_id: str
    propulsion: PropulsionConfig
    label: str | None = None


@dataclass(slots=True)
class CommandSchedule:
    commands: list[SailCommand] = field(default_factory=list)
    next_index: int = 0

    def __post_init__(self) -> None:
        self.commands = sorted(self.commands, key=lambda c: c.t)

    def reset(self) -> None:
        self.next_index = 0

    def window(
        self, prev_t: float, new_t: float, include_start: bool = False
    ) -> tuple[list[SailCommand], int]:
        """Return commands due in (prev_t, new_t] and the index after them.

        Does not consume anything; see ``fire_for_window``.
        """
        due: list[SailCommand] = []
        idx = self.next_index
        while idx < len(self.commands):
            cmd = self.commands[idx]
            if cmd.t < prev_t or (cmd.t == prev_t and not include_start):
                idx += 1
                continue
            if cmd.t <= new_t:
                due.append(cmd)
                idx += 1
                continue
            break
        return due, idx

    def fire_for_window(
        self, prev_t: float, new_t: float, include_start: bool = False
    ) -> list[SailCommand]:
        due, self.next_index = self.window(prev_t, new_t, include_start)
        return due
