from typing import Any, Iterable, List, Optional


class _DefaultMarker:
    """Row value meaning "use the column default"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "DEFAULT"

    def __reduce__(self):
        return (_DefaultMarker, ())


DEFAULT = _DefaultMarker()


class Row:
    """A row of the local engine: positional values in table column order."""

    __slots__ = ("values", "key")

    def __init__(self, values: Iterable[Any], key: Optional[int] = None):
        self.values: List[Any] = list(values)
        self.key = key

    def get_value(self, index: int) -> Any:
        return self.values[index]

    def set_value(self, index: int, value: Any) -> None:
        self.values[index] = value

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self):
        return iter(self.values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Row):
            return NotImplemented
        return self.values == other.values

    def __repr__(self) -> str:
        return f"Row({self.values!r})"
