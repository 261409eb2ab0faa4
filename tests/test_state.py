from laundrymon.state import PinStatus, Reading, StatusPublisher, StatusSnapshot, StatusTable


def test_reading_values():
    assert Reading("hi") is Reading.HIGH
    assert Reading("lo") is Reading.LOW
    assert Reading.HIGH.is_high and not Reading.LOW.is_high


def test_pin_status_value_prefers_filtered():
    assert PinStatus(1, debounced=True).value is True
    assert PinStatus(1, debounced=True, filtered=False).value is False
    assert PinStatus(1, debounced=False).as_dict() == {"pin": 1, "debounced": False}


def test_publish_keeps_pin_order_and_untouched_pins():
    table = StatusTable([PinStatus(14), PinStatus(4), PinStatus(8)])
    snap = table.publish({8: PinStatus(8, debounced=True)})
    assert snap.tick == 1
    assert [s.pin for s in snap] == [14, 4, 8]
    assert snap.get(8).debounced is True
    assert snap.get(14).debounced is False
    assert snap.get(99) is None


def test_old_snapshots_are_immutable():
    table = StatusTable([PinStatus(1)])
    first = table.snapshot()
    table.publish({1: PinStatus(1, debounced=True)})
    assert first.tick == 0
    assert first.get(1).debounced is False
    assert table.snapshot().tick == 1


def test_publisher_records():
    table = StatusTable([PinStatus(14), PinStatus(4, filtered=False)])
    table.publish({14: PinStatus(14, debounced=True), 4: PinStatus(4, debounced=True, filtered=True)})
    pub = StatusPublisher(table)
    assert pub.records() == [(14, True), (4, True, True)]
    assert isinstance(pub.snapshot(), StatusSnapshot)
    assert len(pub.snapshot()) == 2
    assert pub.snapshot().as_dict()["tick"] == 1
