class VectorOutOfRange(IndexError):
    def __init__(self, index=None, size=None):
        if index is None:
            super().__init__("VectorOutOfRange")
        else:
            super().__init__(f"VectorOutOfRange: index {index} not in [0, {size})")
        self.index = index
        self.size = size


class AllocationFailure(MemoryError):
    """Raised when a buffer of the requested capacity cannot be allocated.

    The array that requested the allocation is left exactly as it was
    before the call.
    """

    def __init__(self, capacity, reason=None):
        message = f"AllocationFailure: cannot allocate {capacity} slots"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.capacity = capacity
