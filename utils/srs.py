"""
Spaced repetition scheduler (simplified SM-2).

Intervals are real-valued minutes. A card's repetition count decides which
rule applies:

  repetition == 0  ->  fixed first-review steps (15m / 1d / 2d)
  repetition  > 0  ->  multiply the previous interval

Ratings: 'again' (1), 'hard' (2), 'good' (3), 'easy' (4).
'delete' (0) removes the card and is never scheduled.
"""

from enum import IntEnum

from utils.models import Card, SrsState, MIN_EASE_FACTOR


class Rating(IntEnum):
    DELETE = 0
    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4

    @classmethod
    def parse(cls, value: 'int | str | Rating') -> 'Rating':
        if isinstance(value, str) and not value.isdigit():
            return cls[value.strip().upper()]
        return cls(int(value))

    @property
    def schedulable(self) -> bool:
        return self is not Rating.DELETE


AGAIN = Rating.AGAIN
HARD = Rating.HARD
GOOD = Rating.GOOD
EASY = Rating.EASY

SCHEDULABLE_RATINGS = (AGAIN, HARD, GOOD, EASY)

# Minutes
AGAIN_INTERVAL = 10
FIRST_REVIEW_INTERVALS = {
    HARD: 15,
    GOOD: 1440,
    EASY: 2880,
}

HARD_MULTIPLIER = 1.2
GOOD_MULTIPLIER = 2.5
EASY_BONUS = 1.3
EASE_STEP = 0.15

MS_PER_MINUTE = 60_000


def schedule(state: SrsState, rating: Rating, now: float) -> SrsState:
    """
    Return the SRS state after rating a card at time `now` (epoch ms).

    The 'good' multiplier is flat and ignores the ease factor; only 'easy'
    scales with it.
    """
    rating = Rating(rating)
    if not rating.schedulable:
        raise ValueError("'delete' is not a schedulable rating")

    interval = state.interval
    repetition = state.repetition
    ease = state.ease_factor

    if rating == AGAIN:
        interval = AGAIN_INTERVAL
        repetition = 0

    elif repetition == 0:
        interval = FIRST_REVIEW_INTERVALS[rating]
        repetition = 1

    else:
        if rating == HARD:
            interval = interval * HARD_MULTIPLIER
            ease = max(MIN_EASE_FACTOR, ease - EASE_STEP)
        elif rating == GOOD:
            interval = interval * GOOD_MULTIPLIER
        elif rating == EASY:
            interval = interval * EASY_BONUS * ease
            ease = ease + EASE_STEP
        repetition += 1

    return SrsState(
        interval=interval,
        repetition=repetition,
        ease_factor=ease,
        next_review_time=now + interval * MS_PER_MINUTE,
    )


def apply_rating(card: Card, rating: Rating, now: float) -> Card:
    return card.with_srs(schedule(card.srs, rating, now))


def schedule_all_ratings(state: SrsState, now: float) -> dict[Rating, SrsState]:
    """Outcomes for every button, for interval previews."""
    return {rating: schedule(state, rating, now) for rating in SCHEDULABLE_RATINGS}


def format_interval(minutes: float) -> str:
    """Human-readable label for an interval in minutes: 10m, 2h, 1d, 3mo, 1.2y."""
    if minutes < 60:
        return f"{max(1, round(minutes))}m"

    hours = minutes / 60
    if hours < 24:
        return f"{_trim(hours)}h"

    days = hours / 24
    if days < 30:
        return f"{_trim(days)}d"
    elif days < 365:
        return f"{round(days / 30)}mo"

    return f"{_trim(days / 365)}y"


def _trim(value: float) -> str:
    rounded = round(value, 1)
    if rounded == int(rounded):
        return str(int(rounded))
    return str(rounded)
