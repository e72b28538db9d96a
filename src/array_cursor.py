"""
Cursors: non-owning positions into a DynamicArray buffer.

A cursor holds the buffer it was created from and an offset into it. It is
invalidated as soon as the owning array reallocates (reserve, resize or
shrink_to_fit past capacity, push_back on a full array, swap, move) or shrinks
below the cursor's position. Using an invalidated cursor is undefined: it
keeps reading the abandoned buffer or unspecified slots. Nothing checks for
this.
"""

from typing import Any, Generic, Optional, TypeVar

import numpy as np

T = TypeVar('T')


class _CursorBase(Generic[T]):
    __slots__ = ("_buffer", "_pos")

    def __init__(self, buffer: Optional[np.ndarray], pos: int) -> None:
        self._buffer = buffer
        self._pos = pos

    def _index(self) -> int:
        raise NotImplementedError

    def get(self) -> T:
        return self._buffer[self._index()]

    def set(self, value: T) -> None:
        self._buffer[self._index()] = value

    def __getattr__(self, name: str) -> Any:
        # member access through the referenced element
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self.get(), name)

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._buffer is other._buffer and self._pos == other._pos

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(pos={self._pos})"


class Cursor(_CursorBase[T]):
    __slots__ = ()

    def _index(self) -> int:
        return self._pos

    @property
    def position(self) -> int:
        return self._pos

    def increment(self) -> 'Cursor[T]':
        self._pos += 1
        return self

    def decrement(self) -> 'Cursor[T]':
        self._pos -= 1
        return self

    def __add__(self, n: int) -> 'Cursor[T]':
        return Cursor(self._buffer, self._pos + n)

    __radd__ = __add__

    def __sub__(self, other):
        if isinstance(other, Cursor):
            return self._pos - other._pos
        return Cursor(self._buffer, self._pos - other)


class ReverseCursor(_CursorBase[T]):
    """Refers to the element just before its base position."""

    __slots__ = ()

    def _index(self) -> int:
        return self._pos - 1

    def base(self) -> Cursor[T]:
        return Cursor(self._buffer, self._pos)

    def increment(self) -> 'ReverseCursor[T]':
        self._pos -= 1
        return self

    def decrement(self) -> 'ReverseCursor[T]':
        self._pos += 1
        return self

    def __add__(self, n: int) -> 'ReverseCursor[T]':
        return ReverseCursor(self._buffer, self._pos - n)

    __radd__ = __add__

    def __sub__(self, other):
        if isinstance(other, ReverseCursor):
            return other._pos - self._pos
        return ReverseCursor(self._buffer, self._pos + other)
