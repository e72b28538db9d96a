"""
Buffer allocation and element traits for DynamicArray.

Every buffer is a one-dimensional numpy array of exactly `capacity` slots.
Numeric element types (numpy bool/int/uint/float/complex scalars) get a typed
buffer and are relocated with one bulk copy, since their values are plain
bits. Everything else lives in an object buffer of references, and
relocation moves the references across, clearing the old slots.

The relocation strategy is chosen once per element type, when the traits are
built, never per element.
"""

import copy
import logging
from typing import Any, Callable, Optional, Union

import numpy as np
import structlog

from array_errors import AllocationFailure

logger = structlog.wrap_logger(logging.getLogger(__name__), wrapper_class=structlog.stdlib.BoundLogger)

TRIVIAL_KINDS = "biufc"

ElementType = Union[None, type, Callable[[], Any], np.dtype]


def _resolve_dtype(element_type: ElementType) -> Optional[np.dtype]:
    if isinstance(element_type, np.dtype):
        if element_type.kind not in TRIVIAL_KINDS:
            raise ValueError(f"unsupported element dtype: {element_type}")
        return element_type
    if isinstance(element_type, type) and issubclass(element_type, np.generic):
        dtype = np.dtype(element_type)
        if dtype.kind in TRIVIAL_KINDS:
            return dtype
    return None


class ElementTraits:
    """What the storage engine needs to know about an element type."""

    def __init__(self, element_type: ElementType = None) -> None:
        self.element_type = element_type
        dtype = _resolve_dtype(element_type)
        self.trivial = dtype is not None
        self.dtype = dtype if dtype is not None else np.dtype(object)

    @property
    def relocation(self) -> str:
        return "copy" if self.trivial else "move"

    def default(self) -> Any:
        if self.trivial:
            return self.dtype.type(0)
        if self.element_type is None:
            return None
        return self.element_type()

    def coerce(self, value: Any) -> Any:
        """Convert `value` to the stored representation before any slot is touched."""
        if self.trivial:
            return self.dtype.type(value)
        return value

    def copy_value(self, value: Any) -> Any:
        if self.trivial:
            return value
        return copy.copy(value)

    def fill(self, buffer: np.ndarray, start: int, stop: int, value: Any = None, *, use_default: bool = False) -> None:
        """Initialize slots [start, stop) with `value` or fresh defaults.

        All values are built before the first slot is written, so a raising
        constructor or copy leaves the buffer unchanged.
        """
        if start >= stop:
            return
        if self.trivial:
            buffer[start:stop] = self.default() if use_default else value
            return
        if use_default:
            values = [self.default() for _ in range(start, stop)]
        else:
            values = [self.copy_value(value) for _ in range(start, stop)]
        for i, item in zip(range(start, stop), values):
            buffer[i] = item

    def relocate(self, source: np.ndarray, target: np.ndarray, count: int) -> None:
        """Transfer the first `count` slots of `source` into `target`.

        Object buffers give up their references: the source slots are reset
        to None once moved.
        """
        if count == 0:
            return
        target[:count] = source[:count]
        if not self.trivial:
            source[:count] = None

    def clone(self, source: np.ndarray, target: np.ndarray, count: int, memo: Optional[dict] = None) -> None:
        """Copy-construct the first `count` slots of `source` into `target`."""
        if self.trivial:
            target[:count] = source[:count]
            return
        for i in range(count):
            if memo is None:
                target[i] = copy.copy(source[i])
            else:
                target[i] = copy.deepcopy(source[i], memo)


def allocate(capacity: int, traits: ElementTraits) -> np.ndarray:
    """Allocate an uninitialized buffer of exactly `capacity` slots.

    Raises AllocationFailure when the memory cannot be obtained; nothing is
    retried.
    """
    try:
        return np.empty(capacity, dtype=traits.dtype)
    except (MemoryError, ValueError, OverflowError) as exc:
        logger.warning(
            "allocation_failed",
            capacity=capacity,
            dtype=str(traits.dtype),
            error=str(exc),
        )
        raise AllocationFailure(capacity, str(exc)) from exc
