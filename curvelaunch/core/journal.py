"""
Compensating-action log for multi-request pool operations.

Every collaborator request an operation makes (mint, transfer, metadata
registration) is run through a `TransferJournal`. A request that completes
records its inverse; if a later request or the record commit fails, the
journal replays the inverses newest-first so the ledger ends exactly where it
started.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, TypeVar

from ..errors import CollaboratorError


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class JournalEntry:
    description: str
    undo: Callable[[], None]


class TransferJournal:
    """Ordered record of completed requests and how to reverse each one."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        self._entries: List[JournalEntry] = []
        self._rolled_back = False

    def run(self, description: str, action: Callable[[], T], undo: Callable[[], None]) -> T:
        """
        Perform `action`; only if it returns is `undo` recorded.

        A failing action leaves nothing to compensate for itself; its exception
        propagates unchanged.
        """
        if self._rolled_back:
            raise RuntimeError(f"journal for {self.operation} already rolled back")
        result = action()
        self._entries.append(JournalEntry(description=description, undo=undo))
        logger.debug(f"[{self.operation}] done: {description}")
        return result

    def rollback(self) -> List[str]:
        """
        Undo every completed request in reverse order.

        All inverses are attempted even if one fails; failures are reported
        together afterwards.

        Returns:
            Descriptions of the undone requests, newest first

        Raises:
            CollaboratorError: If one or more inverses failed
        """
        self._rolled_back = True
        undone: List[str] = []
        failures: List[str] = []
        if self._entries:
            logger.warning(f"[{self.operation}] rolling back {len(self._entries)} request(s)")
        while self._entries:
            entry = self._entries.pop()
            try:
                entry.undo()
            except Exception as e:
                logger.error(f"[{self.operation}] undo failed for {entry.description}: {e}")
                failures.append(f"{entry.description}: {e}")
                continue
            logger.debug(f"[{self.operation}] undone: {entry.description}")
            undone.append(entry.description)
        if failures:
            raise CollaboratorError(
                f"rollback of {self.operation} incomplete: {'; '.join(failures)}"
            )
        return undone

    @property
    def descriptions(self) -> List[str]:
        return [e.description for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"TransferJournal({self.operation!r}, {len(self)} entries)"
