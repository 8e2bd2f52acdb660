import threading
import unittest

import numpy as np

from src.elemgrad.domain._dtype import DType
from src.elemgrad.domain._errors import DeviceMismatchError
from src.elemgrad.infrastructure._environment import env
from src.elemgrad.infrastructure.backend import NumpyBackend
from src.elemgrad.infrastructure.engine import Engine, current_engine, resolve_engine
from src.elemgrad.infrastructure.ops import mul, tensor
from src.elemgrad.infrastructure.ops._operation import op


class RecordingBackend(NumpyBackend):
    """NumpyBackend that counts kernel invocations by name."""

    def __init__(self, device="cpu") -> None:
        super().__init__(device)
        self.calls = {}

    def _count(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1

    def multiply(self, a, b):
        self._count("multiply")
        return super().multiply(a, b)

    def real_divide(self, a, b):
        self._count("real_divide")
        return super().real_divide(a, b)


class TestRunKernel(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = Engine()

    def _t(self, values, requires_grad=False):
        return tensor(values, requires_grad=requires_grad, engine=self.engine)

    def test_forward_result_without_node(self) -> None:
        a, b = self._t([1.0, 2.0]), self._t([3.0, 4.0])

        def forward(backend, save):
            save(a, b)
            return backend.add(a, b)

        out = self.engine.run_kernel(forward, {"a": a, "b": b}, lambda dy, s: {}, "Add")
        self.assertEqual(out.tolist(), [4.0, 6.0])
        self.assertIsNone(out._get_node())
        self.assertFalse(out.requires_grad)

    def test_node_attached_when_input_requires_grad(self) -> None:
        a, b = self._t([1.0, 2.0], requires_grad=True), self._t([3.0, 4.0])

        def forward(backend, save):
            save([a])
            return backend.multiply(a, b)

        out = self.engine.run_kernel(forward, {"a": a, "b": b}, lambda dy, s: {}, "Mul")
        node = out._get_node()
        self.assertIsNotNone(node)
        self.assertEqual(node.op_label, "Mul")
        self.assertEqual(node.out_shape, (2,))
        self.assertEqual(len(node.saved_tensors), 1)
        self.assertIs(node.saved_tensors[0], a)
        self.assertIs(node.inputs["a"], a)
        self.assertTrue(out.requires_grad)
        self.assertFalse(out.is_leaf)

    def test_no_node_without_gradient_fn(self) -> None:
        a = self._t([1.0], requires_grad=True)
        out = self.engine.run_kernel(
            lambda backend, save: backend.neg(a), {"x": a}, None, "Neg"
        )
        self.assertIsNone(out._get_node())

    def test_forward_error_propagates(self) -> None:
        a = self._t([1.0], requires_grad=True)

        def forward(backend, save):
            save(a)
            raise ArithmeticError("kernel failed")

        with self.assertRaises(ArithmeticError):
            self.engine.run_kernel(forward, {"a": a}, lambda dy, s: {}, "Bad")
        self.assertIsNone(a._get_node())

    def test_forward_must_return_tensor(self) -> None:
        a = self._t([1.0])
        with self.assertRaises(TypeError):
            self.engine.run_kernel(
                lambda backend, save: np.zeros(1), {"a": a}, None, "Bad"
            )

    def test_device_mismatch(self) -> None:
        other = Engine(NumpyBackend("cuda:0"))
        a = tensor([1.0], engine=other)
        b = self._t([2.0])
        with self.assertRaises(DeviceMismatchError):
            mul(a, b, engine=self.engine)
        self.assertEqual(mul(a, a, engine=other).device, other.device)

    def test_debug_flag_logs_nan(self) -> None:
        env().set("DEBUG", True)
        self.addCleanup(env().reset)
        a = self._t([0.0])

        with self.assertLogs("src.elemgrad.infrastructure.engine._engine", level="WARNING") as cm:
            self.engine.run_kernel(
                lambda backend, save: backend.real_divide(a, a), {"a": a}, None, "RealDiv"
            )
        self.assertTrue(any("NaN" in line for line in cm.output))


class TestLazyGradients(unittest.TestCase):
    def test_only_required_thunks_run(self) -> None:
        backend = RecordingBackend()
        engine = Engine(backend)
        a = tensor([1.0, 2.0], requires_grad=True, engine=engine)
        b = tensor([3.0, 4.0], engine=engine)
        y = mul(a, b, engine=engine)
        self.assertEqual(backend.calls.get("multiply"), 1)

        engine.backward(y)
        # forward multiply plus the thunk for `a`; the thunk for `b` never runs
        self.assertEqual(backend.calls.get("multiply"), 2)
        self.assertEqual(a.grad.tolist(), [3.0, 4.0])
        self.assertIsNone(b.grad)

    def test_no_gradient_work_without_backward(self) -> None:
        backend = RecordingBackend()
        engine = Engine(backend)
        a = tensor([1.0, 2.0], requires_grad=True, engine=engine)
        b = tensor([3.0, 4.0], requires_grad=True, engine=engine)
        mul(a, b, engine=engine)
        self.assertEqual(backend.calls.get("multiply"), 1)


class TestTensorEngine(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = Engine(NumpyBackend("cuda:0"))

    def test_backward_runs_on_producing_engine(self) -> None:
        a = tensor([1.0, 2.0], requires_grad=True, engine=self.engine)
        y = mul(a, a, engine=self.engine)
        self.assertIs(y.engine, self.engine)
        y.backward()
        self.assertEqual(a.grad.device, a.device)
        self.assertEqual(a.grad.tolist(), [2.0, 4.0])
        self.assertIs(a.grad.engine, self.engine)

    def test_operators_run_on_receiver_engine(self) -> None:
        a = tensor([1.0, 2.0], engine=self.engine)
        out = a * 2
        self.assertEqual(out.device, self.engine.device)
        self.assertEqual(out.tolist(), [2.0, 4.0])
        self.assertEqual((3 - a).device, self.engine.device)

    def test_backend_built_tensor_uses_current_engine(self) -> None:
        t = NumpyBackend().make_tensor([1.0], (1,), DType.FLOAT32)
        self.assertIs(t.engine, current_engine())


class TestScoping(unittest.TestCase):
    def test_default_engine_is_stable_per_thread(self) -> None:
        self.assertIs(current_engine(), current_engine())
        self.assertIsInstance(current_engine().backend, NumpyBackend)

    def test_with_block_activates_engine(self) -> None:
        engine = Engine()
        default = current_engine()
        with engine:
            self.assertIs(current_engine(), engine)
            inner = Engine()
            with inner.activate():
                self.assertIs(current_engine(), inner)
            self.assertIs(current_engine(), engine)
        self.assertIs(current_engine(), default)

    def test_operators_use_active_engine(self) -> None:
        engine = Engine(NumpyBackend("cuda:0"))
        with engine:
            out = mul([1.0], [2.0])
        self.assertEqual(str(out.device), "cuda:0")

    def test_explicit_engine_wins(self) -> None:
        engine = Engine()
        self.assertIs(resolve_engine(engine), engine)
        self.assertIs(resolve_engine(None), current_engine())

    def test_exit_out_of_order_rejected(self) -> None:
        e1, e2 = Engine(), Engine()
        e1.__enter__()
        e2.__enter__()
        with self.assertRaises(RuntimeError):
            e1.__exit__(None, None, None)
        e2.__exit__(None, None, None)
        e1.__exit__(None, None, None)

    def test_activation_is_thread_local(self) -> None:
        engine = Engine()
        seen = []

        def worker() -> None:
            seen.append(current_engine())

        with engine:
            t = threading.Thread(target=worker)
            t.start()
            t.join()
        self.assertEqual(len(seen), 1)
        self.assertIsNot(seen[0], engine)


class TestOpWrapper(unittest.TestCase):
    def test_name_and_scope(self) -> None:
        observed = []

        def probe_(x, *, engine):
            observed.append((engine.active_op, engine.op_path))
            return x

        probe = op(probe_)
        self.assertEqual(probe.__name__, "probe")
        engine = Engine()
        self.assertEqual(probe(3, engine=engine), 3)
        self.assertEqual(observed, [("probe", "probe")])
        self.assertIsNone(engine.active_op)

    def test_scope_popped_on_error(self) -> None:
        def boom_(*, engine):
            raise KeyError("x")

        boom = op(boom_)
        engine = Engine()
        with self.assertRaises(KeyError):
            boom(engine=engine)
        self.assertEqual(engine.op_path, "")

    def test_nested_scopes(self) -> None:
        engine = Engine()
        with engine.op_scope("outer"):
            with engine.op_scope("inner"):
                self.assertEqual(engine.op_path, "outer/inner")
            self.assertEqual(engine.active_op, "outer")

    def test_requires_trailing_underscore(self) -> None:
        def bad(*, engine):
            return None

        with self.assertRaises(ValueError):
            op(bad)


class TestTensorDType(unittest.TestCase):
    def test_engine_seed_is_float32(self) -> None:
        engine = Engine()
        a = tensor([1, 2], dtype=DType.INT32, requires_grad=True, engine=engine)
        b = tensor([3, 4], dtype=DType.INT32, engine=engine)
        y = mul(a, b, engine=engine)
        self.assertIs(y.dtype, DType.INT32)
        (ga,) = engine.gradients(y, [a])
        self.assertIs(ga.dtype, DType.FLOAT32)
        self.assertEqual(ga.tolist(), [3.0, 4.0])


if __name__ == "__main__":
    unittest.main()
