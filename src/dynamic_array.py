"""
DynamicArray -- a contiguous, owning, growable array.

The array owns one buffer of exactly `capacity` slots (or no buffer at all
when the capacity is 0). Slots [0, size) hold live elements, the rest is
unspecified storage that is never read through the public interface.

Appending to a full array doubles the capacity (0 -> 1 -> 2 -> 4 -> 8 ...).
Every operation that allocates gives the strong guarantee: when the
allocation fails, AllocationFailure propagates and the array is left exactly
as it was.

Two access tiers:
    arr[i], front(), back(), pop_back()   unchecked; callers must make sure
                                          the array is non-empty / the index
                                          is in [0, size)
    at(i), set_at(i, v)                   bounds-checked, raise
                                          VectorOutOfRange
"""

import logging
import operator
from typing import Any, Generic, Iterable, Iterator, Optional, TypeVar

import numpy as np
import structlog

import array_storage
from array_cursor import Cursor, ReverseCursor
from array_errors import VectorOutOfRange
from array_storage import ElementTraits, ElementType

logger = structlog.wrap_logger(logging.getLogger(__name__), wrapper_class=structlog.stdlib.BoundLogger)

T = TypeVar('T')

CAPACITY_MULTIPLIER = 2

_MISSING = object()


def _check_count(n) -> int:
    # Any integer type (numpy included) is accepted; bool is not a count.
    if isinstance(n, bool):
        raise ValueError("size must be a non-negative integer")
    try:
        n = operator.index(n)
    except TypeError:
        raise ValueError("size must be a non-negative integer") from None
    if n < 0:
        raise ValueError("size must be a non-negative integer")
    return n


class DynamicArray(Generic[T]):
    def __init__(self, size: int = 0, value: Any = _MISSING, element_type: ElementType = None) -> None:
        """
        Args:
            size: Initial number of elements (also the initial capacity)
            value: Fill value; without it the slots hold default values
            element_type: None, a Python type, or a numpy scalar type/dtype
                for typed storage
        """
        size = _check_count(size)
        self._traits = ElementTraits(element_type)
        self._buffer: Optional[np.ndarray] = None
        self._size = 0
        self._capacity = 0
        if size == 0:
            return
        buffer = array_storage.allocate(size, self._traits)
        if value is _MISSING:
            self._traits.fill(buffer, 0, size, use_default=True)
        else:
            self._traits.fill(buffer, 0, size, self._traits.coerce(value))
        self._buffer = buffer
        self._size = size
        self._capacity = size

    @classmethod
    def from_range(cls, source: Iterable[T], element_type: ElementType = None) -> 'DynamicArray[T]':
        """Build an array holding copies of `source`'s elements, in order."""
        items = list(source)
        arr: DynamicArray[T] = cls(element_type=element_type)
        n = len(items)
        if n == 0:
            return arr
        buffer = array_storage.allocate(n, arr._traits)
        for i, item in enumerate(items):
            buffer[i] = arr._traits.copy_value(item)
        arr._buffer = buffer
        arr._size = n
        arr._capacity = n
        return arr

    @classmethod
    def of(cls, *values: T, element_type: ElementType = None) -> 'DynamicArray[T]':
        return cls.from_range(values, element_type=element_type)

    @classmethod
    def take(cls, other: 'DynamicArray[T]') -> 'DynamicArray[T]':
        """Move-construct: steal `other`'s buffer, leaving `other` empty."""
        arr: DynamicArray[T] = cls(element_type=other._traits.element_type)
        return arr.move_from(other)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _cloned_buffer(self, memo=None) -> Optional[np.ndarray]:
        if self._capacity == 0:
            return None
        buffer = array_storage.allocate(self._capacity, self._traits)
        self._traits.clone(self._buffer, buffer, self._size, memo)
        return buffer

    def copy(self) -> 'DynamicArray[T]':
        clone: DynamicArray[T] = DynamicArray(element_type=self._traits.element_type)
        clone._buffer = self._cloned_buffer()
        clone._size = self._size
        clone._capacity = self._capacity
        return clone

    __copy__ = copy

    def __deepcopy__(self, memo) -> 'DynamicArray[T]':
        clone: DynamicArray[T] = DynamicArray(element_type=self._traits.element_type)
        memo[id(self)] = clone
        clone._buffer = self._cloned_buffer(memo)
        clone._size = self._size
        clone._capacity = self._capacity
        return clone

    def copy_from(self, other: 'DynamicArray[T]') -> 'DynamicArray[T]':
        """Copy-assign: replace the contents with a deep copy of `other`."""
        if other is self:
            return self
        buffer = other._cloned_buffer()
        self._traits = other._traits
        self._buffer = buffer
        self._size = other._size
        self._capacity = other._capacity
        return self

    def move_from(self, other: 'DynamicArray[T]') -> 'DynamicArray[T]':
        """Move-assign: take over `other`'s buffer in O(1); `other` ends up empty."""
        if other is self:
            return self
        self._traits = other._traits
        self._buffer = other._buffer
        self._size = other._size
        self._capacity = other._capacity
        other._buffer = None
        other._size = 0
        other._capacity = 0
        return self

    def release(self) -> None:
        """Destroy all elements and give the buffer back."""
        self.clear()
        self.shrink_to_fit()

    # ------------------------------------------------------------------
    # Element access
    # ------------------------------------------------------------------

    def at(self, index: int) -> T:
        if index < 0 or index >= self._size:
            raise VectorOutOfRange(index, self._size)
        return self._buffer[index]

    def set_at(self, index: int, value: T) -> None:
        if index < 0 or index >= self._size:
            raise VectorOutOfRange(index, self._size)
        self._buffer[index] = value

    def __getitem__(self, index: int) -> T:
        # Unchecked: index must be in [0, size).
        return self._buffer[index]

    def __setitem__(self, index: int, value: T) -> None:
        self._buffer[index] = value

    def front(self) -> T:
        # Precondition: not empty.
        return self._buffer[0]

    def back(self) -> T:
        # Precondition: not empty.
        return self._buffer[self._size - 1]

    def data(self) -> Optional[np.ndarray]:
        """View of the live elements, or None when nothing is allocated.

        Writes through the view change the array. The view is only valid
        until the next mutating call.
        """
        if self._buffer is None:
            return None
        return self._buffer[:self._size]

    # ------------------------------------------------------------------
    # Capacity
    # ------------------------------------------------------------------

    def size(self) -> int:
        return self._size

    def capacity(self) -> int:
        return self._capacity

    def empty(self) -> bool:
        return self._size == 0

    def _reallocate(self, new_capacity: int, prepare=None) -> None:
        # Nothing is touched until the new buffer is allocated and `prepare`
        # (which initializes slots past the live elements) has run, so a
        # failure in either leaves the array as it was. Relocation cannot fail.
        new_buffer = array_storage.allocate(new_capacity, self._traits)
        if prepare is not None:
            prepare(new_buffer)
        if self._buffer is not None:
            self._traits.relocate(self._buffer, new_buffer, self._size)
        logger.debug(
            "reallocate",
            old_capacity=self._capacity,
            new_capacity=new_capacity,
            size=self._size,
            relocation=self._traits.relocation,
        )
        self._buffer = new_buffer
        self._capacity = new_capacity

    def reserve(self, new_cap: int) -> None:
        if new_cap == 0 or self._capacity >= new_cap:
            return
        self._reallocate(new_cap)

    def resize(self, n: int, value: Any = _MISSING) -> None:
        """Set the size to `n`.

        New slots get `value` when given, otherwise fresh default values.
        Growing past the capacity reallocates to exactly `n` slots. If building
        a new value raises, the array is left as it was.
        """
        n = _check_count(n)
        if n <= self._size:
            if self._buffer is not None:
                self._traits.fill(self._buffer, n, self._size, use_default=True)
            self._size = n
            return
        if value is not _MISSING:
            value = self._traits.coerce(value)
        start = self._size

        def init_slots(buffer):
            if value is _MISSING:
                self._traits.fill(buffer, start, n, use_default=True)
            else:
                self._traits.fill(buffer, start, n, value)

        if n > self._capacity:
            self._reallocate(n, init_slots)
        else:
            init_slots(self._buffer)
        self._size = n

    def shrink_to_fit(self) -> None:
        if self._capacity == self._size:
            return
        if self._size == 0:
            logger.debug("shrink_to_fit", old_capacity=self._capacity, new_capacity=0)
            self._buffer = None
            self._capacity = 0
            return
        old_capacity = self._capacity
        self._reallocate(self._size)
        logger.debug("shrink_to_fit", old_capacity=old_capacity, new_capacity=self._size)

    # ------------------------------------------------------------------
    # Modifiers
    # ------------------------------------------------------------------

    def push_back(self, value: T) -> None:
        """Append `value`; the array keeps the reference it is given."""
        value = self._traits.coerce(value)
        if self._size == self._capacity:
            self._reallocate(max(1, self._capacity * CAPACITY_MULTIPLIER))
        self._buffer[self._size] = value
        self._size += 1

    def pop_back(self) -> None:
        # Unchecked: calling this on an empty array is undefined.
        self._buffer[self._size - 1] = self._traits.default()
        self._size -= 1

    def clear(self) -> None:
        while self._size != 0:
            self.pop_back()

    def swap(self, other: 'DynamicArray[T]') -> None:
        self._traits, other._traits = other._traits, self._traits
        self._buffer, other._buffer = other._buffer, self._buffer
        self._size, other._size = other._size, self._size
        self._capacity, other._capacity = other._capacity, self._capacity

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    def begin(self) -> Cursor[T]:
        return Cursor(self._buffer, 0)

    def end(self) -> Cursor[T]:
        return Cursor(self._buffer, self._size)

    def rbegin(self) -> ReverseCursor[T]:
        return ReverseCursor(self._buffer, self._size)

    def rend(self) -> ReverseCursor[T]:
        return ReverseCursor(self._buffer, 0)

    cbegin = begin
    cend = end
    crbegin = rbegin
    crend = rend

    def __iter__(self) -> Iterator[T]:
        for i in range(self._size):
            yield self._buffer[i]

    def __reversed__(self) -> Iterator[T]:
        for i in range(self._size - 1, -1, -1):
            yield self._buffer[i]

    def __len__(self) -> int:
        return self._size

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DynamicArray):
            return NotImplemented
        if self._size != other._size:
            return False
        for i in range(self._size):
            if self._buffer[i] != other._buffer[i]:
                return False
        return True

    def __ne__(self, other: object) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def _lexicographic(self, other, element_op, size_op) -> bool:
        for i in range(min(self._size, other._size)):
            a, b = self._buffer[i], other._buffer[i]
            if a != b:
                return bool(element_op(a, b))
        return size_op(self._size, other._size)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, DynamicArray):
            return NotImplemented
        return self._lexicographic(other, operator.lt, operator.lt)

    def __le__(self, other: object) -> bool:
        if not isinstance(other, DynamicArray):
            return NotImplemented
        return self._lexicographic(other, operator.lt, operator.le)

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, DynamicArray):
            return NotImplemented
        return self._lexicographic(other, operator.gt, operator.gt)

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, DynamicArray):
            return NotImplemented
        return self._lexicographic(other, operator.gt, operator.ge)

    def __repr__(self) -> str:
        items = [] if self._buffer is None else self._buffer[:self._size].tolist()
        return f"DynamicArray({items!r})"
