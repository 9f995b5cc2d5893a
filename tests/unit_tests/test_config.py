"""
Unit tests for configuration.
"""

import unittest
from config import DeleterConfig


class TestDeleterConfig(unittest.TestCase):
    """Test DeleterConfig data model."""

    def test_config_defaults(self):
        """Test default configuration values."""
        config = DeleterConfig()
        self.assertEqual(config.max_threads, 32)
        self.assertEqual(config.drain_timeout, 600)
        self.assertEqual(config.dns_domain_name, "bosh")
        self.assertIsNone(config.skip_drain)
        self.assertFalse(config.verbose)
        self.assertEqual(config.log_file, "instance-deleter.log")

    def test_config_from_env(self):
        """Test creating config from environment variables."""
        config = DeleterConfig.from_env(
            {
                "DELETER_MAX_THREADS": "8",
                "DELETER_DRAIN_TIMEOUT": "120",
                "DELETER_DNS_DOMAIN_NAME": "example",
                "DELETER_SKIP_DRAIN": "web,db",
                "DELETER_VERBOSE": "yes",
                "DELETER_LOG_FILE": "/var/log/deleter.log",
            }
        )

        self.assertEqual(config.max_threads, 8)
        self.assertEqual(config.drain_timeout, 120)
        self.assertEqual(config.dns_domain_name, "example")
        self.assertEqual(config.skip_drain, "web,db")
        self.assertTrue(config.verbose)
        self.assertEqual(config.log_file, "/var/log/deleter.log")

    def test_config_from_empty_env(self):
        """Test missing variables fall back to defaults."""
        self.assertEqual(DeleterConfig.from_env({}), DeleterConfig())

    def test_blank_dns_domain_disables_dns(self):
        """Test an empty domain name turns DNS cleanup off."""
        config = DeleterConfig.from_env({"DELETER_DNS_DOMAIN_NAME": " "})
        self.assertIsNone(config.dns_domain_name)

    def test_invalid_integer(self):
        """Test a non-numeric thread count is rejected."""
        with self.assertRaises(ValueError):
            DeleterConfig.from_env({"DELETER_MAX_THREADS": "many"})


if __name__ == "__main__":
    unittest.main()
