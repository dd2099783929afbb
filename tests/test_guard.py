from athenaeum.guard import RequestGuard


def test_latest_token_is_delivered():
    guard = RequestGuard()
    applied = []
    token = guard.issue()

    assert guard.deliver(token, applied.append, "members") is True
    assert applied == ["members"]


def test_older_token_is_dropped():
    guard = RequestGuard()
    applied = []
    first = guard.issue()
    second = guard.issue()

    assert guard.deliver(first, applied.append, "stale") is False
    assert guard.deliver(second, applied.append, "fresh") is True
    assert applied == ["fresh"]


def test_cancel_drops_outstanding_results():
    guard = RequestGuard()
    applied = []
    token = guard.issue()
    guard.cancel()

    assert guard.is_current(token) is False
    assert guard.deliver(token, applied.append, "late") is False
    assert applied == []


def test_issue_after_cancel_reactivates():
    guard = RequestGuard()
    guard.cancel()
    assert guard.is_current(guard.issue()) is True
