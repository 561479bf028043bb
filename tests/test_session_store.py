import sys
import unittest
from pathlib import Path

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
if str(PACKAGE_ROOT) not in sys.path:
    sys.path.insert(0, str(PACKAGE_ROOT))

from formflow.models import FieldDefinition, FormDefinition, StepDefinition  # noqa: E402
from formflow.session_store import SessionStore  # noqa: E402
from formflow.wizard import WizardController  # noqa: E402

FORM = FormDefinition(steps=[StepDefinition(id="only", fields=[FieldDefinition(name="name")])])


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


async def _never_called(record):
    raise AssertionError("submitter should not run")


def _controller():
    return WizardController(FORM, _never_called)


class SessionStoreTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.store = SessionStore(ttl_seconds=10, max_sessions=2, clock=self.clock)

    def test_idle_sessions_expire(self):
        controller = _controller()
        self.store.add("a", controller)
        self.clock.now = 9
        self.assertIs(self.store.get("a"), controller)
        self.clock.now = 18
        self.assertIs(self.store.get("a"), controller)
        self.clock.now = 28
        with self.assertLogs("formflow.session_store", level="INFO"):
            self.assertIsNone(self.store.get("a"))
        self.assertEqual(len(self.store), 0)

    def test_cap_drops_least_recently_used(self):
        self.store.add("a", _controller())
        self.clock.now = 1
        self.store.add("b", _controller())
        self.clock.now = 2
        self.store.get("a")
        self.store.add("c", _controller())
        self.assertIn("a", self.store)
        self.assertIn("c", self.store)
        self.assertNotIn("b", self.store)

    def test_expired_sessions_are_evicted_before_capping(self):
        self.store.add("a", _controller())
        self.clock.now = 5
        self.store.add("b", _controller())
        self.clock.now = 12
        self.store.add("c", _controller())
        self.assertEqual(sorted(session_id for session_id, _ in self.store.items()), ["b", "c"])

    def test_pop_removes_session(self):
        controller = _controller()
        self.store.add("a", controller)
        self.assertIs(self.store.pop("a"), controller)
        self.assertIsNone(self.store.pop("a"))
        self.assertIsNone(self.store.get("a"))


if __name__ == "__main__":
    unittest.main()
