"""
Emotion Aggregation

Turns noisy per-frame emotion classifications into two mood signals:

    - short-term: majority label over the last N confident frames
    - long-term: priority-weighted dominant label over the last minute

The long-term weights let rare but salient moods (disgust, fear) outvote a
steady stream of neutral frames.

Ties are broken by first appearance: the label seen earliest in the window
(or history) wins among labels with equal score.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

# Reported while there is nothing to aggregate yet.
DETECTING = "Detecting..."


class Mood(str, Enum):
    """Labels produced by the face-expression classifier."""
    HAPPY = "happy"
    SAD = "sad"
    ANGRY = "angry"
    SURPRISED = "surprised"
    FEARFUL = "fearful"
    DISGUSTED = "disgusted"
    NEUTRAL = "neutral"


DEFAULT_MOOD_PRIORITY: Dict[str, float] = {
    Mood.DISGUSTED.value: 8.0,
    Mood.FEARFUL.value: 5.0,
    Mood.SURPRISED.value: 4.0,
    Mood.ANGRY.value: 1.5,
    Mood.SAD.value: 1.5,
    Mood.HAPPY.value: 1.2,
    Mood.NEUTRAL.value: 0.1,
}


@dataclass(frozen=True)
class EmotionSample:
    """One classified frame: label, classifier confidence, capture time (epoch seconds)."""
    label: str
    confidence: float
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self):
        label = getattr(self.label, "value", self.label)
        object.__setattr__(self, "label", str(label).strip().lower())
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be in [0, 1], got {self.confidence}")


@dataclass(frozen=True)
class MoodReading:
    """Output of one aggregation tick."""
    short_term: str
    long_term: str
    timestamp: float

    def to_dict(self) -> Dict[str, object]:
        return {
            "short_term": self.short_term,
            "long_term": self.long_term,
            "timestamp": self.timestamp,
        }


def _argmax(scores: Mapping[str, float]) -> str:
    """Highest-scoring key; the first in iteration order wins ties."""
    if not scores:
        return DETECTING
    return max(scores, key=scores.__getitem__)


class EmotionAggregator:
    """
    Smooths a stream of EmotionSample into short- and long-term moods.

    ingest() and tick() share one lock, so a sample that arrives while a
    tick is running is applied after it and first counts on the next tick.
    """

    def __init__(
        self,
        window_size: int = 10,
        confidence_threshold: float = 0.3,
        history_seconds: float = 60.0,
        priorities: Optional[Mapping[str, float]] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize aggregator.

        Args:
            window_size: Capacity of the short-term window.
            confidence_threshold: Samples below this are discarded.
            history_seconds: Age after which history entries are evicted.
            priorities: Label -> weight overrides, merged over DEFAULT_MOOD_PRIORITY
                (labels in neither get weight 1).
            clock: Time source used when tick() gets no timestamp.
        """
        self.window_size = window_size
        self.confidence_threshold = confidence_threshold
        self.history_seconds = history_seconds
        self.priorities: Dict[str, float] = {**DEFAULT_MOOD_PRIORITY, **(priorities or {})}
        self._clock = clock

        self._window: Deque[str] = deque(maxlen=window_size)
        self._history: Deque[Tuple[str, float]] = deque()
        self._lock = threading.Lock()
        self._subscribers: List[Callable[[MoodReading], None]] = []
        self._latest = MoodReading(DETECTING, DETECTING, 0.0)

    @property
    def window(self) -> List[str]:
        """Snapshot of the short-term window, oldest first."""
        with self._lock:
            return list(self._window)

    @property
    def history(self) -> List[Tuple[str, float]]:
        """Snapshot of (label, timestamp) history, oldest first."""
        with self._lock:
            return list(self._history)

    def ingest(self, sample: EmotionSample) -> bool:
        """
        Record a classified frame.

        Returns:
            True if the sample was accepted, False if it was below threshold.
        """
        if sample.confidence < self.confidence_threshold:
            return False
        with self._lock:
            self._window.append(sample.label)
            self._history.append((sample.label, sample.timestamp))
        return True

    def tick(self, now: Optional[float] = None) -> MoodReading:
        """
        Prune stale history and recompute both moods.

        Every tick publishes the fresh reading to subscribers, including the
        short-term mood.

        Args:
            now: Tick time in epoch seconds (defaults to the clock).

        Returns:
            The new MoodReading.
        """
        now = self._clock() if now is None else now
        with self._lock:
            self._history = deque(
                (label, ts) for label, ts in self._history
                if now - ts <= self.history_seconds
            )
            short_term = _argmax(Counter(self._window))
            weighted: Dict[str, float] = {}
            for label, count in Counter(label for label, _ in self._history).items():
                weighted[label] = count * self.priorities.get(label, 1.0)
            long_term = _argmax(weighted)
            reading = MoodReading(short_term, long_term, now)
            self._latest = reading
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(reading)
            except Exception as e:
                logger.exception(f"Mood subscriber {callback!r} failed: {e}")
        return reading

    def current(self) -> MoodReading:
        """Reading produced by the most recent tick."""
        with self._lock:
            return self._latest

    def subscribe(self, callback: Callable[[MoodReading], None]) -> Callable[[], None]:
        """
        Register a callback invoked with every tick's reading.

        Returns:
            A function that removes the subscription.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def reset(self) -> None:
        """Drop all window and history state."""
        with self._lock:
            self._window.clear()
            self._history.clear()
            self._latest = MoodReading(DETECTING, DETECTING, 0.0)
