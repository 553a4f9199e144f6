"""
Custom JSON formatter for logging (without external dependencies).
"""
import json
import logging
from datetime import datetime, timezone


# Structured fields services pass through ``extra=``
EXTRA_FIELDS = (
    "request_id",
    "user_id",
    "operation",
    "status",
    "idempotency_key",
    "error",
    "order_id",
    "product_id",
    "line_id",
    "quantity",
    "lines",
    "total_amount",
    "available_stock",
    "requested_quantity",
    "previous_status",
    "stock",
    "fields",
    "event_id",
    "aggregate_id",
    "event_data",
)


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record):
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)
