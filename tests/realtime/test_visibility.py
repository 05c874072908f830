"""Tests for visibility sources."""
from survey_insights.realtime.visibility import AlwaysVisible, ManualVisibility


def test_manual_visibility_notifies_on_change_only():
    source = ManualVisibility()
    seen = []
    source.subscribe(seen.append)

    source.set_visible(True)
    source.set_visible(False)
    source.set_visible(False)
    source.set_visible(True)

    assert seen == [False, True]


def test_unsubscribe():
    source = ManualVisibility()
    seen = []
    unsubscribe = source.subscribe(seen.append)
    unsubscribe()
    unsubscribe()

    source.set_visible(False)

    assert seen == []
    assert source.subscriber_count == 0


def test_failing_callback_does_not_block_others():
    source = ManualVisibility()
    seen = []

    def _broken(_visible):
        raise RuntimeError("observer bug")

    source.subscribe(_broken)
    source.subscribe(seen.append)
    source.set_visible(False)

    assert seen == [False]


def test_always_visible():
    source = AlwaysVisible()
    assert source.is_visible()
    source.subscribe(lambda _v: None)()
