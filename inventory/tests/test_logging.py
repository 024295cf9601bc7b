import json
import logging
import sys
import uuid

import pytest
from catalog.tests.factories import ProductFactory
from config.logging import JsonFormatter, SamplingFilter
from inventory.owners import Owner
from inventory.services import ReservationManager
from inventory.tests.factories import StockItemFactory


def _record(msg="reservation.created", level=logging.INFO, **extra):
    record = logging.LogRecord("stockhold.inventory", level, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_merges_extra_fields():
    rid = uuid.uuid4()
    payload = json.loads(JsonFormatter().format(_record(event="reservation.created", reservation_id=rid)))

    assert payload["level"] == "INFO"
    assert payload["name"] == "stockhold.inventory"
    assert payload["message"] == "reservation.created"
    assert payload["reservation_id"] == str(rid)
    assert payload["time"].endswith("Z")


def test_json_formatter_includes_traceback():
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record("reaper.expire_failed", level=logging.ERROR)
        record.exc_info = sys.exc_info()
    payload = json.loads(JsonFormatter().format(record))
    assert "RuntimeError: boom" in payload["exc"]


def test_sampling_filter_keeps_allowed_events_and_other_levels():
    drop_all = SamplingFilter(rate=0.0, allow_events=["reservation.committed"])

    assert drop_all.filter(_record(event="reservation.committed")) is True
    assert drop_all.filter(_record(event="reservation.created")) is False
    assert drop_all.filter(_record(level=logging.WARNING)) is True
    assert SamplingFilter(rate="bogus").rate == 1.0


@pytest.mark.django_db
def test_reserve_logs_structured_events(caplog):
    product = ProductFactory()
    StockItemFactory(product=product, on_hand=1)
    manager = ReservationManager()

    with caplog.at_level(logging.INFO, logger="stockhold.inventory"):
        reservation = manager.reserve(product_id=product.id, quantity=1, owner=Owner.for_session("s"))
        manager.release(reservation.id)

    events = [getattr(r, "event", None) for r in caplog.records]
    assert "reservation.created" in events
    assert "reservation.released" in events
