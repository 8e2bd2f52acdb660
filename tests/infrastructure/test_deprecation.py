import unittest
import warnings

from src.elemgrad.infrastructure._deprecation import (
    deprecation_warn,
    disable_deprecation_warnings,
    enable_deprecation_warnings,
)
from src.elemgrad.infrastructure._environment import env


class TestDeprecationWarn(unittest.TestCase):
    def setUp(self) -> None:
        enable_deprecation_warnings()

    def tearDown(self) -> None:
        env().reset()

    def test_emits_deprecation_warning_with_hint(self) -> None:
        with self.assertWarns(DeprecationWarning) as cm:
            deprecation_warn("old thing is deprecated.", stacklevel=2)
        msg = str(cm.warning)
        self.assertTrue(msg.startswith("old thing is deprecated."))
        self.assertIn("disable_deprecation_warnings()", msg)

    def test_disabled_is_silent(self) -> None:
        disable_deprecation_warnings()
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            deprecation_warn("old thing is deprecated.")
        self.assertEqual(caught, [])

    def test_reenable(self) -> None:
        disable_deprecation_warnings()
        enable_deprecation_warnings()
        with self.assertWarns(DeprecationWarning):
            deprecation_warn("old thing is deprecated.", stacklevel=2)


if __name__ == "__main__":
    unittest.main()
