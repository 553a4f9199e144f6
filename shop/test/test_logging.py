import json
import logging
import sys
from decimal import Decimal

from django.test import SimpleTestCase

from shop.utils.logging import JsonFormatter


class JsonFormatterTest(SimpleTestCase):

    def make_record(self, **extra):
        record = logging.LogRecord(
            name="shop.services",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="order_placed",
            args=(),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_known_extra_fields_are_included(self):
        record = self.make_record(user_id=7, order_id=3, total_amount=Decimal("19.90"), unrelated="x")

        data = json.loads(JsonFormatter().format(record))

        self.assertEqual(data["message"], "order_placed")
        self.assertEqual(data["level"], "INFO")
        self.assertEqual(data["logger"], "shop.services")
        self.assertEqual(data["user_id"], 7)
        self.assertEqual(data["order_id"], 3)
        self.assertEqual(data["total_amount"], "19.90")
        self.assertNotIn("unrelated", data)
        self.assertTrue(data["timestamp"].endswith("Z"))

    def test_exception_is_rendered(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = self.make_record()
            record.exc_info = sys.exc_info()

        data = json.loads(JsonFormatter().format(record))

        self.assertIn("RuntimeError: boom", data["exception"])
