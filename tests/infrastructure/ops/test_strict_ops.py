import os
import unittest
import warnings

import numpy as np

from src.elemgrad.domain._errors import ShapeMismatchError
from src.elemgrad.infrastructure._deprecation import (
    disable_deprecation_warnings,
    enable_deprecation_warnings,
)
from src.elemgrad.infrastructure._environment import env
from src.elemgrad.infrastructure.engine import Engine
from src.elemgrad.infrastructure.ops import (
    add,
    add_strict,
    div,
    div_strict,
    maximum,
    maximum_strict,
    minimum,
    minimum_strict,
    mod,
    mod_strict,
    mul,
    mul_strict,
    pow,
    pow_strict,
    squared_difference,
    squared_difference_strict,
    sub,
    sub_strict,
    tensor,
)

PAIRS = [
    (add_strict, add),
    (sub_strict, sub),
    (mul_strict, mul),
    (div_strict, div),
    (mod_strict, mod),
    (minimum_strict, minimum),
    (maximum_strict, maximum),
    (squared_difference_strict, squared_difference),
    (pow_strict, pow),
]


class TestStrictOps(unittest.TestCase):
    def setUp(self) -> None:
        enable_deprecation_warnings()
        self.addCleanup(env().reset)
        self.engine = Engine()
        self.engine.__enter__()
        self.addCleanup(self.engine.__exit__, None, None, None)

    def test_mul_strict_matches_mul(self) -> None:
        with self.assertWarns(DeprecationWarning):
            y = mul_strict([1, 2], [3, 4])
        self.assertEqual(y.tolist(), mul([1, 2], [3, 4]).tolist())

    def test_mul_strict_rejects_mismatched_shapes(self) -> None:
        with self.assertWarns(DeprecationWarning):
            with self.assertRaises(ShapeMismatchError) as cm:
                mul_strict([1, 2], [1, 2, 3])
        self.assertEqual(str(cm.exception), "Error in mul_strict: Shapes [2] and [3] must match")

    def test_strict_does_not_broadcast(self) -> None:
        with self.assertWarns(DeprecationWarning):
            with self.assertRaises(ShapeMismatchError):
                add_strict([[1.0, 2.0]], [1.0, 2.0])

    def test_every_strict_variant_matches_delegate(self) -> None:
        a = np.array([[1.5, 2.0], [3.0, 4.5]], dtype=np.float32)
        b = np.array([[0.5, 2.0], [1.5, 2.5]], dtype=np.float32)
        for strict, delegate in PAIRS:
            with self.subTest(op=strict.__name__):
                with self.assertWarns(DeprecationWarning):
                    got = strict(a, b)
                np.testing.assert_allclose(got.to_numpy(), delegate(a, b).to_numpy())

    def test_every_strict_variant_rejects_mismatch(self) -> None:
        for strict, _ in PAIRS:
            with self.subTest(op=strict.__name__):
                with warnings.catch_warnings():
                    warnings.simplefilter("ignore", DeprecationWarning)
                    with self.assertRaises(ShapeMismatchError) as cm:
                        strict([1.0], [1.0, 2.0])
                self.assertEqual(cm.exception.op_name, strict.__name__)

    def test_warns_once_per_call(self) -> None:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            mul_strict([1.0], [2.0])
        deprecations = [w for w in caught if issubclass(w.category, DeprecationWarning)]
        self.assertEqual(len(deprecations), 1)
        self.assertIn("strict variants of ops have been deprecated", str(deprecations[0].message))

    def test_warning_points_at_caller(self) -> None:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            mul_strict([1.0], [2.0])
        self.assertEqual(os.path.basename(caught[0].filename), "test_strict_ops.py")

    def test_disabled_warnings(self) -> None:
        disable_deprecation_warnings()
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            y = mul_strict([1.0], [2.0])
        self.assertEqual(caught, [])
        self.assertEqual(y.tolist(), [2.0])

    def test_gradients_inherited_from_delegate(self) -> None:
        disable_deprecation_warnings()
        a = tensor([1.0, 2.0], requires_grad=True)
        b = tensor([3.0, 4.0], requires_grad=True)
        ga, gb = self.engine.gradients(mul_strict(a, b), [a, b])
        self.assertEqual(ga.tolist(), [3.0, 4.0])
        self.assertEqual(gb.tolist(), [1.0, 2.0])

    def test_chain_methods(self) -> None:
        disable_deprecation_warnings()
        a = tensor([6.0, 7.0])
        self.assertEqual(a.mul_strict([2.0, 2.0]).tolist(), [12.0, 14.0])
        self.assertEqual(a.mod_strict([4.0, 4.0]).tolist(), [2.0, 3.0])
        self.assertEqual(a.sub_strict([1.0, 1.0]).tolist(), [5.0, 6.0])
        with self.assertRaises(ShapeMismatchError):
            a.pow_strict([1.0])

    def test_strict_name(self) -> None:
        self.assertEqual(mul_strict.__name__, "mul_strict")


if __name__ == "__main__":
    unittest.main()
