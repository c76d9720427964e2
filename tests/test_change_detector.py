from shipment_alerts.shipments.change_detector import diff_shipments, previous_statuses


def test_previous_statuses(shipment_factory):
    a = shipment_factory(status="in_transit")
    b = shipment_factory(status="out_for_delivery")
    new = shipment_factory()

    current = [dict(a, status="delivered"), b, new]
    result = previous_statuses(current, [a, b])

    assert result == {
        a["shipment_id"]: "in_transit",
        b["shipment_id"]: "out_for_delivery",
        new["shipment_id"]: None,
    }


def test_previous_statuses_does_not_mutate_inputs(shipment_factory):
    previous = [shipment_factory()]
    snapshot = [dict(s) for s in previous]
    previous_statuses([dict(previous[0], status="delivered")], previous)
    assert previous == snapshot


def test_diff_shipments(shipment_factory):
    kept = shipment_factory()
    moved = shipment_factory(status="in_transit")
    gone = shipment_factory()
    added = shipment_factory()

    diff = diff_shipments([kept, dict(moved, status="out_for_delivery"), added], [kept, moved, gone])

    assert diff == {
        "added": [added["shipment_id"]],
        "removed": [gone["shipment_id"]],
        "status_changed": [moved["shipment_id"]],
    }
