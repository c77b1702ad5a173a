import unittest

from tracker.core.query import SearchResult
from tracker.platforms import AdapterRegistry, IndeedAdapter, LinkedInAdapter, default_registry, supports_apply


class _StubAdapter:
    name = "Monster"
    display_name = "Monster"

    def has_valid_credentials(self, credentials):
        return True

    def search_jobs(self, credentials, query):
        return SearchResult.empty()

    def get_job_details(self, credentials, external_id, *, user_id):
        return None


class RegistryTests(unittest.TestCase):
    def test_default_registry_has_both_platforms(self):
        registry = default_registry()
        self.assertEqual(registry.names(), ["indeed", "linkedin"])
        self.assertIsInstance(registry.get("linkedin"), LinkedInAdapter)
        self.assertIsInstance(registry.get("indeed"), IndeedAdapter)

    def test_lookup_is_case_insensitive(self):
        registry = default_registry()
        self.assertIs(registry.get("LinkedIn"), registry.get("linkedin"))
        self.assertIs(registry.get(" INDEED "), registry.get("indeed"))
        self.assertIn("LINKEDIN", registry)

    def test_unknown_platform_is_absent(self):
        registry = default_registry()
        for name in ("monster", "", None):
            with self.subTest(name=name):
                self.assertIsNone(registry.get(name))

    def test_register_new_platform_without_touching_callers(self):
        registry = AdapterRegistry()
        adapter = _StubAdapter()
        registry.register(adapter)
        self.assertIs(registry.get("monster"), adapter)
        self.assertFalse(supports_apply(adapter))
        self.assertEqual(len(registry), 1)

    def test_register_rejects_blank_identifier(self):
        registry = AdapterRegistry()
        adapter = _StubAdapter()
        adapter.name = "  "
        with self.assertRaises(ValueError):
            registry.register(adapter)

    def test_replacing_an_adapter_logs(self):
        registry = default_registry()
        replacement = LinkedInAdapter(base_url="https://sandbox.example.test")
        with self.assertLogs("tracker.platforms", level="INFO"):
            registry.register(replacement)
        self.assertIs(registry.get("linkedin"), replacement)

    def test_apply_capability_per_adapter(self):
        registry = default_registry()
        self.assertTrue(supports_apply(registry.get("linkedin")))
        self.assertFalse(supports_apply(registry.get("indeed")))


if __name__ == "__main__":
    unittest.main()
