from typing import Any, Iterator, List, Optional, Protocol, Sequence, Set, Tuple, runtime_checkable

from .capabilities import TableCapability
from .rows import Row
from .session import CommandContext, EngineSession


@runtime_checkable
class IndexProtocol(Protocol):
    """Contract for an index the engine can read from and write through."""

    def scan(self, session: Optional[EngineSession] = None) -> Iterator[Row]:
        """Iterate over every row reachable through this index."""
        ...

    def add(self, session: Optional[EngineSession], row: Row) -> None:
        ...

    def remove(self, session: Optional[EngineSession], row: Row) -> None:
        ...


@runtime_checkable
class TableProtocol(Protocol):
    """Capability-set contract every table variant implements."""

    name: str

    def capabilities(self) -> Set[TableCapability]:
        """Returns the operations this table supports right now."""
        ...

    def get_scan_index(self, session: Optional[EngineSession] = None) -> IndexProtocol:
        ...

    def add_row(self, session: Optional[EngineSession], row: Row) -> None:
        ...

    def remove_row(self, session: Optional[EngineSession], row: Row) -> None:
        ...

    def update_rows(
        self,
        command: CommandContext,
        session: EngineSession,
        rows: Sequence[Tuple[Row, Row]],
    ) -> None:
        ...

    def get_row_count(self, session: Optional[EngineSession] = None) -> int:
        ...

    def get_row_count_approximation(self, session: Optional[EngineSession] = None) -> int:
        ...

    def get_indexes(self) -> List[Any]:
        ...

    def remove_children_and_resources(self, session: Optional[EngineSession] = None) -> None:
        ...
