"""Tests for structured log events."""

import json
import logging
from decimal import Decimal

from zapdist.log import log_event


class TestLogEvent:
    def test_emits_one_json_line(self, caplog) -> None:
        logger = logging.getLogger("zapdist.test")
        with caplog.at_level(logging.INFO, logger="zapdist.test"):
            log_event(logger, "epoch_generated", epoch_number=3, total=Decimal("1000"))
        [record] = caplog.records
        payload = json.loads(record.getMessage())
        assert payload["event"] == "epoch_generated"
        assert payload["epoch_number"] == 3
        assert payload["total"] == "1000"
        assert "ts_ms" in payload
