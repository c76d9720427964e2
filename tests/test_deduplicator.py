from shipment_alerts.alerts.deduplicator import AlertDeduplicator, is_well_formed


def test_new_candidate_is_admitted_and_prepended(alert_factory):
    existing = [alert_factory("ship_1", title="Delivery Today", type="info")]
    candidate = alert_factory("ship_2")

    admitted, merged = AlertDeduplicator().ingest([candidate], existing)

    assert admitted == [candidate]
    assert merged == [candidate] + existing


def test_outstanding_alert_blocks_same_key(alert_factory):
    existing = [alert_factory("ship_1")]
    # same (shipment, type, title), different message and id
    candidate = alert_factory("ship_1", message="UPS Package is 2 day(s) overdue")

    admitted, merged = AlertDeduplicator().ingest([candidate], existing)

    assert admitted == []
    assert merged == existing


def test_different_title_is_not_a_duplicate(alert_factory):
    existing = [alert_factory("ship_1")]
    candidate = alert_factory("ship_1", title="Weather Delay", priority="medium")

    admitted, _ = AlertDeduplicator().ingest([candidate], existing)
    assert admitted == [candidate]


def test_dismissed_alert_does_not_block(alert_factory):
    existing = [alert_factory("ship_1", dismissed=True)]
    candidate = alert_factory("ship_1")

    admitted, merged = AlertDeduplicator().ingest([candidate], existing)

    assert admitted == [candidate]
    assert len(merged) == 2


def test_duplicates_within_one_batch_admit_once(alert_factory):
    first = alert_factory("ship_1")
    second = alert_factory("ship_1", message="USPS packages often experience delays during peak seasons")

    admitted, merged = AlertDeduplicator().ingest([first, second], [])

    assert admitted == [first]
    assert merged == [first]


def test_malformed_candidates_are_rejected(alert_factory, caplog):
    good = alert_factory("ship_2")
    no_shipment = alert_factory(None)
    no_timestamp = alert_factory("ship_3", timestamp="")

    with caplog.at_level("WARNING"):
        admitted, _ = AlertDeduplicator().ingest([no_shipment, good, no_timestamp], [])

    assert admitted == [good]
    assert "malformed" in caplog.text
    assert not is_well_formed(no_shipment)
