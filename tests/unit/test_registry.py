import pytest

from dejavu.engine.errors import (
    ConfigurationError,
    DuplicateHandlerError,
    InvalidHandlerError,
    MissingHandlerFieldError,
    UnknownEventTypeError,
)
from dejavu.engine.inspector import DejaVu
from dejavu.engine.registry import HandlerRegistry, build_handler
from tests.helpers.fake_redis import FakeRedis

HOUR_MS = 60 * 60 * 1000

def _proto(**overrides):
    cfg = dict(
        prefix="foo",
        timestamp_fn=lambda e: e["timestamp"],
        id_fn=lambda e: e["_id"],
        val_fn=lambda e: e["val"],
        window=HOUR_MS,
    )
    cfg.update(overrides)
    return cfg

def _without(*names):
    return {k: v for k, v in _proto().items() if k not in names}

def test_construct_without_connection_fails():
    with pytest.raises(ConfigurationError, match="Must provide a Redis connection"):
        DejaVu()
    with pytest.raises(ConfigurationError, match="Must provide a Redis connection"):
        DejaVu(None)

def test_register_handler():
    dv = DejaVu(FakeRedis())
    dv.register_handler("type0", **_proto())
    assert "type0" in dv.registry
    assert dv.registry.get("type0").prefix == "foo"

@pytest.mark.parametrize("field, msg", [
    ("prefix", "Handler must specify a prefix to namespace events."),
    ("timestamp_fn", "Handler must specify a timestamp_fn."),
    ("id_fn", "Handler must specify an id_fn."),
    ("val_fn", "Handler must specify a val_fn."),
    ("window", "Handler must specify a window."),
])
def test_missing_single_field_is_named(field, msg):
    dv = DejaVu(FakeRedis())
    with pytest.raises(MissingHandlerFieldError) as ei:
        dv.register_handler("type0", **_without(field))
    assert ei.value.field == field
    assert str(ei.value) == msg
    assert "type0" not in dv.registry

def test_validation_order_reports_first_missing():
    # nothing given -> prefix first
    with pytest.raises(MissingHandlerFieldError, match="prefix"):
        build_handler()
    # only prefix given -> timestamp_fn next
    with pytest.raises(MissingHandlerFieldError, match="timestamp_fn"):
        build_handler(prefix="foo")
    # val_fn and window missing -> val_fn reported
    with pytest.raises(MissingHandlerFieldError, match="val_fn"):
        build_handler(**_without("val_fn", "window"))

def test_zero_window_counts_as_missing():
    with pytest.raises(MissingHandlerFieldError, match="window"):
        build_handler(**_proto(window=0))

def test_duplicate_registration_keeps_first_handler():
    reg = HandlerRegistry()
    first = reg.register("type0", **_proto(prefix="first"))
    with pytest.raises(DuplicateHandlerError, match="cannot overwrite existing handler"):
        reg.register("type0", **_proto(prefix="second", window=1000))
    assert reg.get("type0") is first
    assert reg.get("type0").prefix == "first"
    assert len(reg) == 1

def test_ttl_derived_from_window():
    h = build_handler(**_proto(window=HOUR_MS))
    assert h.ttl == 3600
    h = build_handler(**_proto(window=1999))
    assert h.ttl == 1

def test_explicit_ttl_wins():
    h = build_handler(**_proto(ttl=42))
    assert h.ttl == 42

def test_sub_second_window_without_ttl_rejected():
    with pytest.raises(InvalidHandlerError, match="at least 1 second"):
        build_handler(**_proto(window=999))
    dv = DejaVu(FakeRedis())
    with pytest.raises(InvalidHandlerError):
        dv.register_handler("type0", **_proto(window=500))
    assert "type0" not in dv.registry
    # explicit ttl makes it valid
    assert build_handler(**_proto(window=999, ttl=5)).ttl == 5

def test_handler_is_immutable():
    h = build_handler(**_proto())
    with pytest.raises(Exception):
        h.prefix = "bar"

def test_unknown_type_lookup():
    reg = HandlerRegistry()
    with pytest.raises(UnknownEventTypeError, match="no such handler"):
        reg.get("nope")
    # usable as a plain KeyError too
    with pytest.raises(KeyError):
        reg.get("nope")

def test_engines_have_independent_registries():
    a = DejaVu(FakeRedis())
    b = DejaVu(FakeRedis())
    a.register_handler("type0", **_proto())
    assert "type0" not in b.registry
    b.register_handler("type0", **_proto(prefix="other"))
    assert a.registry.get("type0").prefix == "foo"
