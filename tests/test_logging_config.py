"""Tests for logging setup."""
import json
import logging
import os
import sys
import unittest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from cartera.logging_config import JsonFormatter, setup_logging


class TestSetupLogging(unittest.TestCase):

    def setUp(self):
        root = logging.getLogger()
        self._handlers = root.handlers[:]
        self._level = root.level

    def tearDown(self):
        root = logging.getLogger()
        for handler in root.handlers[:]:
            root.removeHandler(handler)
        for handler in self._handlers:
            root.addHandler(handler)
        root.setLevel(self._level)

    def test_standard_format(self):
        setup_logging("debug")
        root = logging.getLogger()
        self.assertEqual(root.level, logging.DEBUG)
        self.assertEqual(len(root.handlers), 1)
        self.assertNotIsInstance(root.handlers[0].formatter, JsonFormatter)

    def test_unknown_level_defaults_to_info(self):
        setup_logging("LOUD")
        self.assertEqual(logging.getLogger().level, logging.INFO)

    def test_json_format(self):
        setup_logging("INFO", format_type="json")
        formatter = logging.getLogger().handlers[0].formatter
        self.assertIsInstance(formatter, JsonFormatter)

        record = logging.LogRecord("cartera.test", logging.WARNING, __file__, 1,
                                   "Loan %s rejected", ("abc",), None)
        payload = json.loads(formatter.format(record))
        self.assertEqual(payload["level"], "WARNING")
        self.assertEqual(payload["logger"], "cartera.test")
        self.assertEqual(payload["message"], "Loan abc rejected")


if __name__ == '__main__':
    unittest.main()
