import unittest

from src.elemgrad.domain._errors import BroadcastIncompatibleError
from src.elemgrad.domain.utils._broadcast import (
    as_shape,
    assert_and_get_broadcast_shape,
    get_broadcast_dims,
    get_reduction_axes,
    reduction_axes,
)


class TestAssertAndGetBroadcastShape(unittest.TestCase):
    def test_equal_shapes(self) -> None:
        self.assertEqual(assert_and_get_broadcast_shape((2, 3), (2, 3)), (2, 3))

    def test_scalar_with_vector(self) -> None:
        self.assertEqual(assert_and_get_broadcast_shape((), (4,)), (4,))
        self.assertEqual(assert_and_get_broadcast_shape((4,), ()), (4,))

    def test_size_one_axes_stretch(self) -> None:
        self.assertEqual(assert_and_get_broadcast_shape((4, 1, 3), (2, 1)), (4, 2, 3))
        self.assertEqual(assert_and_get_broadcast_shape((1, 3), (4, 1)), (4, 3))

    def test_rank_padding(self) -> None:
        self.assertEqual(assert_and_get_broadcast_shape((3,), (2, 5, 3)), (2, 5, 3))

    def test_zero_sized_axis(self) -> None:
        self.assertEqual(assert_and_get_broadcast_shape((0,), (1,)), (0,))
        self.assertEqual(assert_and_get_broadcast_shape((2, 0), (2, 1)), (2, 0))

    def test_commutative(self) -> None:
        pairs = [((2, 1, 3), (4, 1)), ((), (5, 2)), ((1,), (7,)), ((3, 1), (1, 4))]
        for a, b in pairs:
            with self.subTest(a=a, b=b):
                self.assertEqual(
                    assert_and_get_broadcast_shape(a, b),
                    assert_and_get_broadcast_shape(b, a),
                )

    def test_incompatible_reports_axis_and_shapes(self) -> None:
        with self.assertRaises(BroadcastIncompatibleError) as cm:
            assert_and_get_broadcast_shape((2, 3), (4, 3))
        err = cm.exception
        self.assertEqual(err.axis, 0)
        self.assertEqual(err.shape_a, (2, 3))
        self.assertEqual(err.shape_b, (4, 3))
        self.assertIn("[2,3] and [4,3]", str(err))
        self.assertIn("could not be broadcast", str(err))

    def test_incompatible_first_conflict_from_trailing_end(self) -> None:
        with self.assertRaises(BroadcastIncompatibleError) as cm:
            assert_and_get_broadcast_shape((5, 2, 3), (4, 3, 3))
        self.assertEqual(cm.exception.axis, 1)

    def test_incompatible_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            assert_and_get_broadcast_shape((2,), (3,))

    def test_negative_dim_rejected(self) -> None:
        with self.assertRaises(ValueError):
            as_shape((2, -1))


class TestReductionAxes(unittest.TestCase):
    def test_no_broadcast(self) -> None:
        self.assertEqual(reduction_axes((2, 3), (2, 3)), set())

    def test_stretched_axis(self) -> None:
        self.assertEqual(reduction_axes((1, 3), (4, 3)), {0})
        self.assertEqual(reduction_axes((4, 1), (4, 3)), {1})

    def test_rank_padding_axes(self) -> None:
        self.assertEqual(reduction_axes((3,), (2, 4, 3)), {0, 1})
        self.assertEqual(reduction_axes((), (2, 3)), {0, 1})

    def test_padding_and_stretch(self) -> None:
        self.assertEqual(reduction_axes((1, 3), (5, 4, 3)), {0, 1})

    def test_size_one_output_axis_is_not_reduced(self) -> None:
        self.assertEqual(reduction_axes((1, 3), (1, 3)), set())

    def test_input_rank_larger_than_output_rejected(self) -> None:
        with self.assertRaises(ValueError):
            reduction_axes((2, 3), (3,))

    def test_get_reduction_axes_sorted(self) -> None:
        self.assertEqual(get_reduction_axes((1, 1, 3), (5, 4, 3)), [0, 1])
        self.assertEqual(get_reduction_axes((2,), (2,)), [])

    def test_sum_and_reshape_recovers_input_shape(self) -> None:
        import numpy as np

        cases = [((1, 3), (4, 3)), ((3,), (2, 4, 3)), ((), (2, 2)), ((4, 1), (4, 5))]
        for in_shape, out_shape in cases:
            with self.subTest(in_shape=in_shape, out_shape=out_shape):
                g = np.ones(out_shape)
                axes = tuple(get_reduction_axes(in_shape, out_shape))
                reduced = g.sum(axis=axes) if axes else g
                self.assertEqual(reduced.reshape(in_shape).shape, in_shape)


class TestGetBroadcastDims(unittest.TestCase):
    def test_reports_input_axes_only(self) -> None:
        self.assertEqual(get_broadcast_dims((1, 3), (5, 4, 3)), [0])

    def test_multiple_dims(self) -> None:
        self.assertEqual(get_broadcast_dims((1, 1), (2, 3)), [0, 1])

    def test_no_dims(self) -> None:
        self.assertEqual(get_broadcast_dims((3,), (2, 3)), [])
        self.assertEqual(get_broadcast_dims((), (2, 3)), [])


if __name__ == "__main__":
    unittest.main()
