"""
Tests for the Config class.
"""
import unittest
import sys
import os
from unittest.mock import patch

# Add the parent directory to the path so we can import the application modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from config import Config


class TestConfig(unittest.TestCase):
    """Test cases for loading configuration."""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = Config(load_from_env=True)

        self.assertEqual(cfg.SEARCH_QUERY, "official")
        self.assertEqual(cfg.FETCH_INTERVAL_SECONDS, 10)
        self.assertEqual(cfg.KEY_RESET_WINDOW_SECONDS, 86400)
        self.assertTrue(cfg.INGESTION_ENABLED)
        self.assertEqual(cfg.API_KEYS, "")
        self.assertEqual(cfg.api_key_list, [])

    def test_environment_overrides(self):
        env = {
            "YOUTUBE_API_KEYS": "k1, k2,,",
            "SEARCH_QUERY": "music",
            "FETCH_INTERVAL_SECONDS": "30",
            "API_TIMEOUT_SECONDS": "2.5",
            "INGESTION_ENABLED": "false",
            "ALLOWED_ORIGINS": "https://a.example, https://b.example",
            "DATABASE_URL": "sqlite://",
        }
        with patch.dict(os.environ, env, clear=True):
            cfg = Config(load_from_env=True)

        self.assertEqual(cfg.api_key_list, ["k1", "k2"])
        self.assertEqual(cfg.SEARCH_QUERY, "music")
        self.assertEqual(cfg.FETCH_INTERVAL_SECONDS, 30)
        self.assertEqual(cfg.API_TIMEOUT_SECONDS, 2.5)
        self.assertFalse(cfg.INGESTION_ENABLED)
        self.assertEqual(cfg.ALLOWED_ORIGINS, ["https://a.example", "https://b.example"])
        self.assertEqual(cfg.DATABASE_URL, "sqlite://")

    def test_invalid_values_keep_defaults(self):
        with patch.dict(os.environ, {"FETCH_INTERVAL_SECONDS": "soon", "MAX_PAGE_LIMIT": "many"}, clear=True):
            cfg = Config(load_from_env=True)

        self.assertEqual(cfg.FETCH_INTERVAL_SECONDS, 10)
        self.assertEqual(cfg.MAX_PAGE_LIMIT, 100)

    def test_non_positive_interval(self):
        with patch.dict(os.environ, {"FETCH_INTERVAL_SECONDS": "0"}, clear=True):
            cfg = Config(load_from_env=True)
        self.assertEqual(cfg.FETCH_INTERVAL_SECONDS, 10)

    def test_instances_do_not_share_lists(self):
        first = Config(load_from_env=False)
        second = Config(load_from_env=False)
        first.ALLOWED_ORIGINS.append("https://x.example")
        self.assertEqual(second.ALLOWED_ORIGINS, ["*"])


if __name__ == '__main__':
    unittest.main()
