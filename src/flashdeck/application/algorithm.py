"""
SM-2 variant review algorithm.

Maps (current progress, outcome, config) to a new progress record. This is a
pure computation module with no I/O; randomness and time are injected so the
results are reproducible under test.
"""

import logging
import math
import random
import time
from collections.abc import Callable
from typing import Any, Protocol

from flashdeck.application.config import AlgorithmConfig
from flashdeck.domain.constants import (
    EASY_EASE_BONUS,
    FIRST_REVIEW_INTERVALS,
    HARD_EASE_PENALTY,
    LOAD_BALANCER_VARIATION,
    MS_PER_DAY,
)
from flashdeck.domain.models import Outcome, ProgressRecord

logger = logging.getLogger(__name__)


class RandomSource(Protocol):
    def random(self) -> float: ...


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with halves going toward positive infinity (2.5 -> 3, -2.5 -> -2)."""
    factor = 10**ndigits
    return math.floor(value * factor + 0.5) / factor


class ReviewAlgorithm:
    """
    OSR-style SM-2 variant with configurable parameters.

    Stateless apart from its config; every calculation returns a new
    ProgressRecord and never mutates the input.
    """

    def __init__(
        self,
        config: AlgorithmConfig | None = None,
        rng: RandomSource | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            config: Algorithm parameters; defaults if not provided.
            rng: Source of uniform floats in [0, 1) for the load balancer.
            clock: Returns the current time in epoch seconds.
        """
        self.config = config or AlgorithmConfig()
        self._rng = rng or random.Random()
        self._clock = clock

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def update_config(self, overrides: dict[str, Any]) -> AlgorithmConfig:
        """
        Merge overrides into the current config.

        Applies to calculations started after this call.
        """
        self.config = self.config.merged(overrides)
        logger.debug(f"Algorithm config updated: {self.config.model_dump()}")
        return self.config

    def calculate_review(self, progress: ProgressRecord, outcome: Outcome) -> ProgressRecord:
        """
        Calculate the next schedule for an item.

        Args:
            progress: Current progress (review_count may be 0).
            outcome: Hard, Good or Easy.

        Returns:
            New ProgressRecord with review_count + 1, last_review = now,
            due_date = now + new interval and difficulty = outcome.
        """
        cfg = self.config
        outcome = Outcome(outcome)
        ease = progress.ease if progress.ease is not None else cfg.base_ease
        interval = progress.interval
        new_ease: float = ease
        now = self.now_ms()

        if progress.review_count == 0:
            # First review - fixed lookup, no ease formula and no jitter
            new_interval = FIRST_REVIEW_INTERVALS[outcome.value]
        else:
            if outcome is Outcome.HARD:
                new_interval = interval * (cfg.interval_change_hard / 100)
                new_ease = max(cfg.ease_floor, ease - HARD_EASE_PENALTY)
            elif outcome is Outcome.GOOD:
                new_interval = interval * (ease / 100)
            else:
                new_interval = interval * (ease / 100) * (cfg.easy_bonus / 100)
                new_ease = ease + EASY_EASE_BONUS

            if cfg.enable_load_balancer and new_interval >= 1:
                new_interval = self.apply_load_balancer(new_interval)

        new_interval = min(new_interval, cfg.max_interval_days)

        return progress.evolve(
            review_count=progress.review_count + 1,
            ease=int(round_half_up(new_ease)),
            interval=round_half_up(new_interval, 2),
            last_review=now,
            due_date=int(now + new_interval * MS_PER_DAY),
            difficulty=outcome,
        )

    def apply_load_balancer(self, interval: float) -> float:
        """
        Jitter an interval by up to +/-5% to spread reviews across days.

        Intervals under one day are returned unchanged.
        """
        if interval < 1:
            return interval
        factor = 1 + (self._rng.random() * 2 - 1) * LOAD_BALANCER_VARIATION
        return interval * factor

    def calculate_initial_ease(self, linked_ease: float | None = None) -> int:
        """
        Seed the ease of a new item, optionally pulled toward a linked item's ease.
        """
        cfg = self.config
        ease: float = cfg.base_ease

        if linked_ease and cfg.max_link_contribution > 0:
            contribution = (linked_ease - cfg.base_ease) * (cfg.max_link_contribution / 100)
            ease = cfg.base_ease + contribution

        return max(cfg.ease_floor, int(round_half_up(ease)))

    def is_due(self, progress: ProgressRecord) -> bool:
        if progress.due_date is None:
            return True
        return self.now_ms() >= progress.due_date

    def days_until_review(self, progress: ProgressRecord) -> int:
        """
        Whole days until the item is due (0 if due now, negative if overdue).
        """
        if progress.due_date is None:
            return 0
        diff = progress.due_date - self.now_ms()
        return int(round_half_up(diff / MS_PER_DAY))

    def reset_progress(self, progress: ProgressRecord) -> ProgressRecord:
        """
        Return a fresh record as if the item had never been reviewed.

        Used for single-item resets. The ease is seeded with base_ease, which
        schedules identically to the ease-less record a bulk reset leaves.
        """
        return progress.evolve(
            review_count=0,
            ease=self.config.base_ease,
            interval=0.0,
            last_review=None,
            due_date=None,
            difficulty=None,
        )
