"""Query string parameters, decoded once per request."""

from collections.abc import Iterator, Mapping
from urllib.parse import parse_qsl


class QueryParams(Mapping[str, str]):
    """Read-only view of the query string.

    Keeps every ``(name, value)`` pair in arrival order, blank values
    included. Item access gives the first value sent under a name;
    ``get_list`` gives all of them.
    """

    __slots__ = ("_pairs", "_raw")

    def __init__(self, query_string: bytes = b"") -> None:
        object.__setattr__(self, "_raw", query_string)
        pairs = parse_qsl(query_string.decode("latin-1"), keep_blank_values=True)
        object.__setattr__(self, "_pairs", tuple(pairs))

    def __getitem__(self, key: str) -> str:
        for name, value in self._pairs:
            if name == key:
                return value
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return iter(dict.fromkeys(name for name, _ in self._pairs))

    def __len__(self) -> int:
        return len(dict.fromkeys(name for name, _ in self._pairs))

    def get_list(self, key: str) -> list[str]:
        """Every value sent under *key*, in order."""
        return [value for name, value in self._pairs if name == key]

    @property
    def raw(self) -> bytes:
        return self._raw
