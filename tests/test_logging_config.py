"""
Tests for the logging configuration module.
"""
import unittest
import sys
import os
import json
import logging

# Add the parent directory to the path so we can import the application modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from logging_config import JSONFormatter, SecretRedactingFilter, StructuredLogger


class ListHandler(logging.Handler):
    """Collects formatted records."""

    def __init__(self):
        super().__init__()
        self.lines = []

    def emit(self, record):
        self.lines.append(self.format(record))


class TestLogging(unittest.TestCase):

    def setUp(self):
        self.handler = ListHandler()
        self.handler.setFormatter(JSONFormatter())
        self.handler.addFilter(SecretRedactingFilter(["AIzaSySecretKeyValue123", "short"]))
        self.std_logger = logging.getLogger("vidharvest.test")
        self.std_logger.addHandler(self.handler)
        self.std_logger.setLevel(logging.DEBUG)
        self.std_logger.propagate = False
        self.logger = StructuredLogger("vidharvest.test")

    def tearDown(self):
        self.std_logger.removeHandler(self.handler)

    def test_structured_fields(self):
        self.logger.info("Saved videos", count=3)

        entry = json.loads(self.handler.lines[0])
        self.assertEqual(entry["message"], "Saved videos")
        self.assertEqual(entry["level"], "INFO")
        self.assertEqual(entry["count"], 3)

    def test_bound_fields(self):
        self.logger.bind(query="official").info("Fetching", attempt=1)

        entry = json.loads(self.handler.lines[0])
        self.assertEqual(entry["query"], "official")
        self.assertEqual(entry["attempt"], 1)

    def test_secrets_redacted_in_message_and_fields(self):
        self.logger.warning("Key AIzaSySecretKeyValue123 failed", key="AIzaSySecretKeyValue123", other="short")

        line = self.handler.lines[0]
        self.assertNotIn("AIzaSySecretKeyValue123", line)
        entry = json.loads(line)
        self.assertEqual(entry["message"], "Key AIzaSySe... failed")
        self.assertEqual(entry["key"], "AIzaSySe...")
        self.assertEqual(entry["other"], "***")

    def test_percent_args_redacted(self):
        self.std_logger.info("using %s", "AIzaSySecretKeyValue123")
        self.assertNotIn("AIzaSySecretKeyValue123", self.handler.lines[0])

    def test_error_includes_traceback(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            self.logger.error("Cycle failed")

        entry = json.loads(self.handler.lines[0])
        self.assertEqual(entry["exception"]["type"], "RuntimeError")


if __name__ == '__main__':
    unittest.main()
