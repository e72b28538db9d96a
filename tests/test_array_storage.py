import sys
import os
import unittest
from unittest import mock

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import array_storage
from array_storage import ElementTraits, allocate
from array_errors import AllocationFailure
from dynamic_array import DynamicArray
from array_logging import setup_logging


def setUpModule():
    setup_logging("WARNING")


def snapshot(arr):
    data = arr.data()
    return arr.size(), arr.capacity(), None if data is None else data.copy()


def limited_factory(limit):
    """Element constructor that raises once it has built `limit` values."""
    built = []

    def make():
        if len(built) >= limit:
            raise RuntimeError("element constructor failed")
        value = {"n": len(built)}
        built.append(value)
        return value

    return make


class TestElementTraits(unittest.TestCase):
    def test_untyped(self):
        traits = ElementTraits()
        self.assertFalse(traits.trivial)
        self.assertEqual(traits.dtype, np.dtype(object))
        self.assertIsNone(traits.default())
        self.assertEqual(traits.relocation, "move")

    def test_python_type(self):
        traits = ElementTraits(list)
        self.assertFalse(traits.trivial)
        self.assertEqual(traits.default(), [])
        self.assertIsNot(traits.default(), traits.default())

    def test_numpy_type(self):
        traits = ElementTraits(np.uint8)
        self.assertTrue(traits.trivial)
        self.assertEqual(traits.dtype, np.uint8)
        self.assertEqual(traits.default(), 0)
        self.assertEqual(traits.relocation, "copy")

    def test_non_numeric_numpy_type_uses_object_storage(self):
        traits = ElementTraits(np.str_)
        self.assertFalse(traits.trivial)
        self.assertEqual(traits.default(), "")

    def test_relocate_moves_references(self):
        traits = ElementTraits()
        source = allocate(3, traits)
        source[0], source[1], source[2] = "a", "b", "c"
        target = allocate(5, traits)
        traits.relocate(source, target, 3)
        self.assertEqual(list(target[:3]), ["a", "b", "c"])
        self.assertEqual(list(source), [None, None, None])

    def test_relocate_copies_trivial_values(self):
        traits = ElementTraits(np.int64)
        source = np.arange(3, dtype=np.int64)
        target = allocate(4, traits)
        traits.relocate(source, target, 3)
        np.testing.assert_array_equal(target[:3], [0, 1, 2])
        np.testing.assert_array_equal(source, [0, 1, 2])

    def test_fill_with_value_copies(self):
        traits = ElementTraits()
        buffer = allocate(3, traits)
        value = {"k": 1}
        traits.fill(buffer, 0, 3, value)
        self.assertEqual(buffer[2], {"k": 1})
        self.assertIsNot(buffer[0], buffer[1])

    def test_allocate_exact_capacity(self):
        self.assertEqual(len(allocate(7, ElementTraits())), 7)
        self.assertEqual(allocate(4, ElementTraits(np.float32)).dtype, np.float32)


class TestAllocationFailure(unittest.TestCase):
    def test_allocate_reports_memory_error(self):
        with mock.patch.object(array_storage.np, "empty", side_effect=MemoryError("out of memory")):
            with self.assertRaises(AllocationFailure) as ctx:
                allocate(10, ElementTraits())
        self.assertEqual(ctx.exception.capacity, 10)
        self.assertIsInstance(ctx.exception.__cause__, MemoryError)

    def test_impossible_capacity(self):
        arr = DynamicArray.of(1, 2, 3)
        before = snapshot(arr)
        with self.assertRaises(AllocationFailure):
            arr.reserve(2 ** 62)
        size, capacity, data = snapshot(arr)
        self.assertEqual((size, capacity), before[:2])
        self.assertEqual(list(data), list(before[2]))

    def test_allocation_failure_is_a_memory_error(self):
        with self.assertRaises(MemoryError):
            DynamicArray(element_type=np.int64).reserve(2 ** 62)

    def test_reserve_failure_leaves_array_untouched(self):
        arr = DynamicArray.of(10, 20, 30, element_type=np.int32)
        arr.push_back(40)
        view = arr.data()
        before = snapshot(arr)
        with mock.patch("array_storage.allocate", side_effect=AllocationFailure(100)):
            with self.assertRaises(AllocationFailure):
                arr.reserve(100)
        after = snapshot(arr)
        self.assertEqual(after[:2], before[:2])
        self.assertEqual(after[2].tobytes(), before[2].tobytes())
        self.assertIs(arr.data().base, view.base)

    def test_reserve_failure_keeps_object_elements(self):
        arr = DynamicArray.of("x", "y")
        with mock.patch.object(array_storage.np, "empty", side_effect=MemoryError()):
            with self.assertRaises(AllocationFailure):
                arr.reserve(50)
        self.assertEqual(list(arr), ["x", "y"])
        self.assertEqual(arr.capacity(), 2)

    def test_push_back_growth_failure(self):
        arr = DynamicArray.of(1, 2, 3, 4)
        with mock.patch("array_storage.allocate", side_effect=AllocationFailure(8)):
            with self.assertRaises(AllocationFailure):
                arr.push_back(5)
        self.assertEqual(arr.size(), 4)
        self.assertEqual(arr.capacity(), 4)
        self.assertEqual(list(arr), [1, 2, 3, 4])

    def test_push_back_without_growth_does_not_allocate(self):
        arr = DynamicArray()
        arr.reserve(4)
        with mock.patch("array_storage.allocate", side_effect=AllocationFailure(8)):
            arr.push_back(1)
        self.assertEqual(list(arr), [1])

    def test_resize_failure(self):
        arr = DynamicArray.of(1, 2)
        with mock.patch("array_storage.allocate", side_effect=AllocationFailure(10)):
            with self.assertRaises(AllocationFailure):
                arr.resize(10, 0)
        self.assertEqual(arr.size(), 2)
        self.assertEqual(arr.capacity(), 2)
        self.assertEqual(list(arr), [1, 2])

    def test_shrink_to_fit_failure(self):
        arr = DynamicArray.of(1, 2)
        arr.reserve(16)
        with mock.patch("array_storage.allocate", side_effect=AllocationFailure(2)):
            with self.assertRaises(AllocationFailure):
                arr.shrink_to_fit()
        self.assertEqual(arr.capacity(), 16)
        self.assertEqual(list(arr), [1, 2])

    def test_copy_from_failure_leaves_receiver(self):
        source = DynamicArray.of(1, 2, 3)
        target = DynamicArray.of(7)
        with mock.patch("array_storage.allocate", side_effect=AllocationFailure(3)):
            with self.assertRaises(AllocationFailure):
                target.copy_from(source)
        self.assertEqual(list(target), [7])
        self.assertEqual(target.capacity(), 1)

    def test_resize_growth_constructor_failure(self):
        arr = DynamicArray(2, element_type=limited_factory(2))
        before = list(arr)
        with self.assertRaises(RuntimeError):
            arr.resize(5)
        self.assertEqual(arr.size(), 2)
        self.assertEqual(arr.capacity(), 2)
        for old, new in zip(before, arr):
            self.assertIs(old, new)

    def test_resize_within_capacity_constructor_failure(self):
        arr = DynamicArray(2, element_type=limited_factory(3))
        arr.reserve(10)
        with self.assertRaises(RuntimeError):
            arr.resize(5)
        self.assertEqual(arr.size(), 2)
        self.assertEqual(arr.capacity(), 10)
        arr.push_back("x")
        self.assertEqual(arr.back(), "x")

    def test_resize_shrink_constructor_failure(self):
        arr = DynamicArray(3, element_type=limited_factory(4))
        before = list(arr)
        with self.assertRaises(RuntimeError):
            arr.resize(1)
        self.assertEqual(arr.size(), 3)
        for old, new in zip(before, arr):
            self.assertIs(old, new)

    def test_fill_value_copy_failure(self):
        class Uncopyable:
            def __copy__(self):
                raise RuntimeError("copy failed")

        arr = DynamicArray.of(1, 2)
        with self.assertRaises(RuntimeError):
            arr.resize(4, Uncopyable())
        self.assertEqual(arr.size(), 2)
        self.assertEqual(arr.capacity(), 2)
        self.assertEqual(list(arr), [1, 2])

    def test_construction_failure_propagates(self):
        with mock.patch("array_storage.allocate", side_effect=AllocationFailure(5)):
            with self.assertRaises(AllocationFailure):
                DynamicArray(5)
            with self.assertRaises(AllocationFailure):
                DynamicArray.from_range([1, 2])


if __name__ == "__main__":
    unittest.main()
