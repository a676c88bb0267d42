from __future__ import annotations

import json
import logging
import unittest

from solana_trading.common import log_event
from solana_trading.common.logging import sanitize_text
from solana_trading.runtime import JsonFormatter, setup_logger


class SanitizeTests(unittest.TestCase):
    def test_url_queries_and_key_assignments_are_masked(self) -> None:
        masked = sanitize_text("posting to https://rpc.example/?api-key=abc123 with apikey=s3cret")
        self.assertNotIn("abc123", masked)
        self.assertNotIn("s3cret", masked)
        self.assertIn("https://rpc.example/", masked)


class JsonFormatterTests(unittest.TestCase):
    def test_event_fields_become_json_keys(self) -> None:
        logger = logging.getLogger("test.logging.json")
        records: list[logging.LogRecord] = []

        class _Capture(logging.Handler):
            def emit(self, record: logging.LogRecord) -> None:
                records.append(record)

        logger.addHandler(_Capture())
        logger.setLevel(logging.INFO)
        self.addCleanup(logger.handlers.clear)

        log_event(
            logger,
            level="warning",
            event="swqos_submit_failed",
            message="Relay submission failed",
            provider="jito",
            url="https://relay.example/api?token=abc",
        )

        payload = json.loads(JsonFormatter().format(records[0]))
        self.assertEqual(payload["level"], "WARNING")
        self.assertEqual(payload["event"], "swqos_submit_failed")
        self.assertEqual(payload["provider"], "jito")
        self.assertEqual(payload["url"], "https://relay.example/api")

    def test_setup_logger_applies_level(self) -> None:
        logger = setup_logger("debug")
        self.assertEqual(logger.name, "solana_trading")
        self.assertEqual(logger.level, logging.DEBUG)
        self.assertFalse(logger.propagate)
        self.assertIsInstance(logger.handlers[0].formatter, JsonFormatter)


if __name__ == "__main__":
    unittest.main()
