"""Tests for the emotion aggregator."""

import threading

import pytest

from mood_dj.core import DETECTING, EmotionAggregator, EmotionSample


def sample(label, confidence=0.9, ts=0.0):
    return EmotionSample(label, confidence, timestamp=ts)


@pytest.fixture
def aggregator():
    return EmotionAggregator(clock=lambda: 100.0)


def test_empty_aggregator_reports_detecting(aggregator):
    reading = aggregator.tick(now=100.0)
    assert reading.short_term == DETECTING
    assert reading.long_term == DETECTING


def test_low_confidence_sample_is_ignored(aggregator):
    assert aggregator.ingest(sample("happy", confidence=0.29, ts=99.0)) is False
    assert aggregator.window == []
    assert aggregator.history == []
    assert aggregator.tick(now=100.0).short_term == DETECTING


def test_sample_at_threshold_is_accepted(aggregator):
    assert aggregator.ingest(sample("happy", confidence=0.3, ts=99.0)) is True
    assert aggregator.window == ["happy"]


def test_window_keeps_last_ten_labels(aggregator):
    for _ in range(10):
        aggregator.ingest(sample("sad", ts=99.0))
    for _ in range(6):
        aggregator.ingest(sample("happy", ts=99.0))

    assert len(aggregator.window) == 10
    assert aggregator.window.count("happy") == 6
    assert aggregator.tick(now=100.0).short_term == "happy"


def test_history_evicts_entries_older_than_a_minute(aggregator):
    aggregator.ingest(sample("angry", ts=0.0))
    aggregator.ingest(sample("happy", ts=40.0))

    aggregator.tick(now=60.0)
    assert [label for label, _ in aggregator.history] == ["angry", "happy"]

    aggregator.tick(now=60.5)
    assert [label for label, _ in aggregator.history] == ["happy"]


def test_long_term_is_priority_weighted(aggregator):
    # sad 3 * 1.5 = 4.5 vs disgusted 1 * 8 = 8
    for _ in range(3):
        aggregator.ingest(sample("sad", ts=99.0))
    aggregator.ingest(sample("disgusted", ts=99.0))

    reading = aggregator.tick(now=100.0)
    assert reading.short_term == "sad"
    assert reading.long_term == "disgusted"


def test_neutral_needs_many_frames_to_dominate(aggregator):
    for _ in range(10):
        aggregator.ingest(sample("neutral", ts=99.0))
    aggregator.ingest(sample("happy", ts=99.0))

    assert aggregator.tick(now=100.0).long_term == "happy"


def test_unknown_label_gets_weight_one():
    aggregator = EmotionAggregator(priorities={"neutral": 0.1})
    aggregator.ingest(sample("confused", ts=0.0))
    aggregator.ingest(sample("neutral", ts=0.0))
    aggregator.ingest(sample("neutral", ts=0.0))
    assert aggregator.tick(now=1.0).long_term == "confused"


def test_ties_go_to_first_seen_label(aggregator):
    aggregator.ingest(sample("happy", ts=99.0))
    aggregator.ingest(sample("sad", ts=99.0))
    aggregator.ingest(sample("sad", ts=99.0))
    aggregator.ingest(sample("happy", ts=99.0))

    assert aggregator.tick(now=100.0).short_term == "happy"


def test_short_term_is_updated_on_every_tick(aggregator):
    aggregator.ingest(sample("happy", ts=99.0))
    assert aggregator.tick(now=100.0).short_term == "happy"

    for _ in range(3):
        aggregator.ingest(sample("angry", ts=100.0))
    reading = aggregator.tick(now=101.0)

    assert reading.short_term == "angry"
    assert aggregator.current() == reading


def test_labels_are_normalized():
    s = EmotionSample("  Happy ", 0.8, timestamp=0.0)
    assert s.label == "happy"


def test_confidence_out_of_range_is_rejected():
    with pytest.raises(ValueError):
        EmotionSample("happy", 1.5, timestamp=0.0)


def test_tick_uses_clock_when_no_time_given():
    aggregator = EmotionAggregator(clock=lambda: 500.0)
    aggregator.ingest(sample("sad", ts=400.0))
    reading = aggregator.tick()
    assert reading.timestamp == 500.0
    assert aggregator.history == []


def test_subscribers_receive_readings_until_unsubscribed(aggregator):
    received = []
    unsubscribe = aggregator.subscribe(received.append)

    aggregator.ingest(sample("happy", ts=99.0))
    aggregator.tick(now=100.0)
    unsubscribe()
    aggregator.tick(now=101.0)

    assert len(received) == 1
    assert received[0].short_term == "happy"


def test_failing_subscriber_does_not_block_others(aggregator):
    received = []

    def broken(reading):
        raise RuntimeError("boom")

    aggregator.subscribe(broken)
    aggregator.subscribe(received.append)
    aggregator.tick(now=100.0)

    assert len(received) == 1


def test_reset_clears_state(aggregator):
    aggregator.ingest(sample("happy", ts=99.0))
    aggregator.tick(now=100.0)
    aggregator.reset()

    assert aggregator.window == []
    assert aggregator.current().short_term == DETECTING


def test_priority_overrides_keep_remaining_defaults():
    aggregator = EmotionAggregator(priorities={"neutral": 0.5})
    for _ in range(3):
        aggregator.ingest(sample("sad", ts=0.0))
    aggregator.ingest(sample("disgusted", ts=0.0))

    assert aggregator.priorities["disgusted"] == 8.0
    assert aggregator.priorities["neutral"] == 0.5
    assert aggregator.tick(now=1.0).long_term == "disgusted"


class PausingAggregator(EmotionAggregator):
    """Blocks inside tick() while it is pruning history."""

    def __init__(self, **kwargs):
        self.entered = threading.Event()
        self.release = threading.Event()
        super().__init__(**kwargs)

    @property
    def history_seconds(self):
        self.entered.set()
        self.release.wait(timeout=5)
        return self._history_seconds

    @history_seconds.setter
    def history_seconds(self, value):
        self._history_seconds = value


def test_sample_arriving_during_tick_counts_from_next_tick():
    aggregator = PausingAggregator()
    aggregator.ingest(sample("happy", ts=99.0))
    readings = []

    ticking = threading.Thread(target=lambda: readings.append(aggregator.tick(now=100.0)))
    ticking.start()
    assert aggregator.entered.wait(timeout=5)

    late = threading.Thread(target=aggregator.ingest, args=(sample("disgusted", ts=100.0),))
    late.start()
    late.join(timeout=0.2)
    assert late.is_alive()

    aggregator.release.set()
    ticking.join(timeout=5)
    late.join(timeout=5)

    assert readings[0].long_term == "happy"
    assert readings[0].short_term == "happy"
    assert aggregator.tick(now=101.0).long_term == "disgusted"
