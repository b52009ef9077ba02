from courseportal.services.watch import ChangeFeed, LiveQuery


def test_live_query_emits_on_subscribe_and_publish():
    feed = ChangeFeed()
    rows = ["a"]
    snapshots = []
    unsubscribe = LiveQuery(feed, "topic", lambda: list(rows)).subscribe(snapshots.append)

    rows.append("b")
    feed.publish("topic")
    feed.publish("other-topic")

    assert snapshots == [["a"], ["a", "b"]]

    unsubscribe()
    feed.publish("topic")
    assert len(snapshots) == 2
    assert feed.listener_count("topic") == 0


def test_loader_failure_reports_error_and_recovers():
    feed = ChangeFeed()
    state = {"fail": True}
    errors = []
    snapshots = []

    def loader():
        if state["fail"]:
            raise RuntimeError("store down")
        return ["ok"]

    LiveQuery(feed, "topic", loader).subscribe(snapshots.append, errors.append)
    assert len(errors) == 1
    assert snapshots == []

    state["fail"] = False
    feed.publish("topic")
    assert snapshots == [["ok"]]
