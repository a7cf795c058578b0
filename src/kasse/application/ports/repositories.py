from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from kasse.domain.common.ids import CheckoutId, TableId, TerminalId

if TYPE_CHECKING:
    from kasse.application.use_cases.checkout import CheckoutStateMachine


class CheckoutStore(Protocol):
    def add(self, machine: CheckoutStateMachine) -> None: ...

    def get(self, checkout_id: CheckoutId) -> CheckoutStateMachine | None: ...

    def remove(self, checkout_id: CheckoutId) -> None: ...

    def find_open_for_table(
        self,
        terminal_id: TerminalId,
        table_id: TableId,
    ) -> CheckoutStateMachine | None: ...

    def count(self) -> int: ...
