"""Buffered reading and random access to structural units of text result files.

Files whose units must be correlated after the fact are read in two
phases. The index phase scans the file once and records the byte
offset of every unit under its key in an immutable :class:`FileIndex`.
The materialize phase seeks to the offsets of the keys of interest
and parses only these units.
"""

import logging
import os
import typing as tp
from collections.abc import Mapping
from types import MappingProxyType

logger = logging.getLogger(__name__)

# Size of the read buffer (bytes)
BUFFER_SIZE = 100 * 1024


class LineReader:
    """
    Line reader over a binary file handle, tracking byte offsets.

    Parameters
    ----------
    path : str
        Path to the file.
    buffer_size : int
        Size of the read buffer (bytes).
    encoding : str
        Text encoding of the file.
    """

    def __init__(self, path: str, buffer_size: int = BUFFER_SIZE, encoding: str = "utf-8") -> None:
        self.path = path
        self.encoding = encoding
        self.length = os.path.getsize(path)
        self.line_number: tp.Optional[int] = 0
        self.line_offset = 0
        self._file = open(path, "rb", buffering=buffer_size)

    @property
    def closed(self) -> bool:
        return self._file.closed

    @property
    def file(self):
        """Underlying binary file handle."""
        return self._file

    @property
    def position(self) -> str:
        """Position of the last line read, for error messages."""
        if self.line_number is not None:
            return f"line {self.line_number}"
        return f"byte {self.line_offset}"

    def readline(self) -> tp.Optional[str]:
        """Next line without its line terminator, None at the end of the file."""
        self.line_offset = self._file.tell()
        raw = self._file.readline()
        if not raw:
            return None
        if self.line_number is not None:
            self.line_number += 1
        return raw.decode(self.encoding).rstrip("\r\n")

    def tell(self) -> int:
        return self._file.tell()

    def seek(self, offset: int) -> None:
        """Move to `offset`. Line numbers are unknown afterwards."""
        self._file.seek(offset)
        self.line_offset = offset
        self.line_number = None

    def __iter__(self) -> tp.Iterator[tp.Tuple[int, str]]:
        """Iterate over `(offset, line)` pairs from the current position."""
        while True:
            line = self.readline()
            if line is None:
                return
            yield self.line_offset, line

    def close(self) -> None:
        self._file.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class FileIndex(Mapping):
    """
    Immutable map of unit keys to the byte offsets of the units.

    Keys iterate in the order they were found in the file.
    A one-to-one index has exactly one offset per key.
    """

    def __init__(self, offsets: tp.Mapping[tp.Hashable, tp.Sequence[int]], one_to_many: bool = False) -> None:
        self.one_to_many = one_to_many
        self._offsets = MappingProxyType({key: tuple(values) for key, values in offsets.items()})

    def __getitem__(self, key) -> tp.Tuple[int, ...]:
        return self._offsets[key]

    def __iter__(self):
        return iter(self._offsets)

    def __len__(self) -> int:
        return len(self._offsets)

    def offset(self, key) -> int:
        """Offset of the unit of `key` in a one-to-one index."""
        return self._offsets[key][0]

    def n_offsets(self) -> int:
        return sum(len(values) for values in self._offsets.values())


class FileIndexBuilder:
    """Collects offsets during the index phase.

    Parameters
    ----------
    one_to_many : bool
        Allow several offsets per key. Otherwise a repeated key is an error.
    """

    def __init__(self, one_to_many: bool = False) -> None:
        self.one_to_many = one_to_many
        self._offsets: tp.Dict[tp.Hashable, tp.List[int]] = {}

    def add(self, key, offset: int) -> None:
        if not self.one_to_many and key in self._offsets:
            raise ValueError(f"Duplicate unit {key!r} at byte {offset}")
        self._offsets.setdefault(key, []).append(offset)

    def declare(self, key) -> None:
        """Register a key of a one-to-many index which may have no offsets."""
        self._offsets.setdefault(key, [])

    def __contains__(self, key) -> bool:
        return key in self._offsets

    def build(self) -> FileIndex:
        index = FileIndex(self._offsets, self.one_to_many)
        logger.debug("Indexed %d units at %d offsets", len(index), index.n_offsets())
        return index


T = tp.TypeVar("T")


def materialize(
    reader: LineReader,
    index: FileIndex,
    parse_unit: tp.Callable[[LineReader, tp.Hashable], T],
    keys: tp.Optional[tp.Iterable[tp.Hashable]] = None,
) -> tp.Iterator[T]:
    """
    Parse the indexed units of `keys`, seeking directly to each of them.

    Parameters
    ----------
    reader : LineReader
        Reader over the indexed file.
    index : FileIndex
        Index built over the same file.
    parse_unit : callable
        Called as `parse_unit(reader, key)` with the reader positioned
        at one offset of `key`. Reads and returns one unit.
    keys : iterable, optional
        Keys to materialize, all keys in index order by default.

    Yields
    ------
    unit
        Result of `parse_unit`, once per offset.
    """
    for key in index if keys is None else keys:
        for offset in index[key]:
            reader.seek(offset)
            yield parse_unit(reader, key)
