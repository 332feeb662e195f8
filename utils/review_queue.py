"""
Due-set selection and the per-session review queue.

A review session copies the due set once, at entry. Ratings update the
database, but the session only ever drops its own head card, so cards that
become due mid-session wait for the next session.
"""

from dataclasses import dataclass, replace
from typing import Iterable

from utils.models import Card
from utils.srs import Rating, GOOD


def select_due(cards: Iterable[Card], folder_id: str, now: float) -> list[Card]:
    """Cards in `folder_id` due at `now`, longest-overdue first.

    sorted() is stable, so equal due times keep collection order.
    """
    due = [c for c in cards if c.folder_id == folder_id and c.next_review_time <= now]
    return sorted(due, key=lambda c: c.next_review_time)


@dataclass(frozen=True)
class ReviewQueue:
    folder_id: str
    cards: tuple[Card, ...]
    total: int
    recalled: int = 0
    rated: int = 0

    @classmethod
    def start(cls, cards: Iterable[Card], folder_id: str, now: float) -> 'ReviewQueue':
        due = tuple(select_due(cards, folder_id, now))
        return cls(folder_id=folder_id, cards=due, total=len(due))

    @property
    def head(self) -> Card | None:
        return self.cards[0] if self.cards else None

    @property
    def remaining(self) -> int:
        return len(self.cards)

    @property
    def finished(self) -> bool:
        return not self.cards

    @property
    def position(self) -> int:
        """1-based index of the head card within the session."""
        return self.total - self.remaining + 1

    def advance(self) -> 'ReviewQueue':
        return replace(self, cards=self.cards[1:])

    def record(self, rating: Rating) -> 'ReviewQueue':
        """Drop the head card, counting it as rated and as recalled for good/easy."""
        recalled = self.recalled + (1 if Rating(rating) >= GOOD else 0)
        return replace(self, cards=self.cards[1:], recalled=recalled, rated=self.rated + 1)
