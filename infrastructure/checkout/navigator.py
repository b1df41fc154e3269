"""Navigator that records where the flow is, for API clients and tests."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from application.dtos.checkout import TerminalPayload
from domain.checkout.session import CheckoutStep, TerminalKind


@dataclass(frozen=True)
class Location:
    target: Union[CheckoutStep, TerminalKind]
    payload: Optional[TerminalPayload] = None

    @property
    def is_terminal(self) -> bool:
        return isinstance(self.target, TerminalKind)


class RecordingNavigator:
    def __init__(self) -> None:
        self.history: list[Location] = []

    @property
    def current(self) -> Optional[Location]:
        return self.history[-1] if self.history else None

    def goto_step(self, step: CheckoutStep) -> None:
        self.history.append(Location(step))

    def goto_terminal(self, kind: TerminalKind, payload: TerminalPayload) -> None:
        self.history.append(Location(kind, payload))

    def terminals(self) -> list[TerminalKind]:
        return [loc.target for loc in self.history if loc.is_terminal]
