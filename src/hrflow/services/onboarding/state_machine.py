"""Table-driven status machine."""

from enum import Enum
from typing import Mapping, Iterable

from hrflow.core.exceptions import InvalidTransition


def _value(status: str | Enum) -> str:
    return status.value if isinstance(status, Enum) else str(status)


class StatusMachine:
    """Validates status changes against a fixed transition table.

    The table maps each status to the statuses it may move to. A status with
    an empty set is terminal. Statuses that only appear as targets are
    terminal too.
    """

    def __init__(self, table: Mapping[str | Enum, Iterable[str | Enum]]):
        self._table: dict[str, tuple[str, ...]] = {
            _value(source): tuple(_value(t) for t in targets)
            for source, targets in table.items()
        }

    @property
    def statuses(self) -> set[str]:
        known = set(self._table)
        for targets in self._table.values():
            known.update(targets)
        return known

    def allowed(self, current: str | Enum) -> list[str]:
        return list(self._table.get(_value(current), ()))

    def can_transition(self, current: str | Enum, requested: str | Enum) -> bool:
        return _value(requested) in self._table.get(_value(current), ())

    def is_terminal(self, status: str | Enum) -> bool:
        return not self._table.get(_value(status))

    def validate(self, current: str | Enum, requested: str | Enum) -> None:
        """Raise ``InvalidTransition`` unless ``current -> requested`` is allowed."""
        if not self.can_transition(current, requested):
            raise InvalidTransition(
                _value(current), _value(requested), self.allowed(current)
            )
