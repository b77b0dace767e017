from __future__ import annotations

import threading
import time
import unittest

from pdf_shrink.backends import GhostscriptBackend, MupdfBackend, PikepdfBackend, QpdfBackend
from pdf_shrink.config import CompressionSettings
from pdf_shrink.registry import BackendRegistry, EnvironmentCache, default_registry

from support import FakeBackend


class TestEnvironmentCache(unittest.TestCase):
    def test_factory_runs_once_under_concurrency(self) -> None:
        cache = EnvironmentCache()
        calls = []
        lock = threading.Lock()

        def factory():
            with lock:
                calls.append(1)
            time.sleep(0.05)
            return object()

        seen = []
        threads = [
            threading.Thread(target=lambda: seen.append(cache.get_or_create("gs", factory)))
            for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(calls), 1)
        self.assertEqual(len({id(env) for env in seen}), 1)

    def test_failed_factory_is_not_cached(self) -> None:
        cache = EnvironmentCache()
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise RuntimeError("first try fails")
            return "ready"

        with self.assertRaises(RuntimeError):
            cache.get_or_create("qpdf", flaky)
        self.assertNotIn("qpdf", cache)

        self.assertEqual(cache.get_or_create("qpdf", flaky), "ready")
        self.assertEqual(cache.get_or_create("qpdf", flaky), "ready")
        self.assertEqual(len(attempts), 2)

    def test_environments_are_per_backend(self) -> None:
        cache = EnvironmentCache()
        self.assertEqual(cache.get_or_create("a", lambda: "env-a"), "env-a")
        self.assertEqual(cache.get_or_create("b", lambda: "env-b"), "env-b")
        self.assertEqual(cache.get_or_create("a", lambda: "other"), "env-a")

        cache.clear()
        self.assertEqual(cache.get_or_create("a", lambda: "fresh"), "fresh")


class TestBackendRegistry(unittest.TestCase):
    def test_registration_order_is_preserved(self) -> None:
        registry = BackendRegistry()
        for backend_id in ["z", "a", "m"]:
            registry.register(FakeBackend(backend_id, size=1))

        self.assertEqual(registry.backend_ids, ["z", "a", "m"])
        self.assertEqual(len(registry), 3)

    def test_duplicate_id_rejected(self) -> None:
        registry = BackendRegistry()
        registry.register(FakeBackend("dup", size=1))

        with self.assertRaises(ValueError):
            registry.register(FakeBackend("dup", size=2))

    def test_adapters_returns_copy(self) -> None:
        registry = BackendRegistry()
        registry.register(FakeBackend("one", size=1))

        registry.adapters.append(FakeBackend("sneaky", size=1))

        self.assertEqual(registry.backend_ids, ["one"])

    def test_default_registry(self) -> None:
        settings = CompressionSettings(qpdf_command="/opt/qpdf/bin/qpdf", subprocess_timeout=42)

        registry = default_registry(settings)

        self.assertEqual(registry.backend_ids, ["pikepdf", "qpdf", "ghostscript", "mupdf"])
        adapters = registry.adapters
        self.assertIsInstance(adapters[0], PikepdfBackend)
        self.assertIsInstance(adapters[1], QpdfBackend)
        self.assertIsInstance(adapters[2], GhostscriptBackend)
        self.assertIsInstance(adapters[3], MupdfBackend)
        self.assertEqual(adapters[1].command, "/opt/qpdf/bin/qpdf")
        self.assertEqual(adapters[2].timeout, 42)


if __name__ == "__main__":
    unittest.main()
