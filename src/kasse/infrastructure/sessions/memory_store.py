from __future__ import annotations

from kasse.application.use_cases.checkout import CheckoutStateMachine
from kasse.domain.common.ids import CheckoutId, TableId, TerminalId


class InMemoryCheckoutStore:
    """Open checkouts of this terminal process; nothing survives a restart."""

    def __init__(self) -> None:
        self._machines: dict[CheckoutId, CheckoutStateMachine] = {}

    def add(self, machine: CheckoutStateMachine) -> None:
        self._machines[machine.session.checkout_id] = machine

    def get(self, checkout_id: CheckoutId) -> CheckoutStateMachine | None:
        return self._machines.get(checkout_id)

    def remove(self, checkout_id: CheckoutId) -> None:
        self._machines.pop(checkout_id, None)

    def find_open_for_table(
        self,
        terminal_id: TerminalId,
        table_id: TableId,
    ) -> CheckoutStateMachine | None:
        for machine in self._machines.values():
            session = machine.session
            if (
                session.terminal_id == terminal_id
                and session.table_id == table_id
                and not session.is_terminal
            ):
                return machine
        return None

    def count(self) -> int:
        return len(self._machines)
