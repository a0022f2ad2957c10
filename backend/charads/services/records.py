"""Round and result records shared by the engine and the review tools.

The ``to_dict`` shapes are what gets stored in ``Result.rounds`` and what the
API returns, so field names here are the durable schema.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from charads.exceptions import PersistenceError, ValidationError


class Verification(str, Enum):
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'
    UNSET = 'unset'

    @classmethod
    def parse(cls, value: Any) -> 'Verification':
        # Records saved by the old browser client used true/false/null
        if value is True:
            return cls.ACCEPTED
        if value is False:
            return cls.REJECTED
        if value is None:
            return cls.UNSET
        return cls(value)


@dataclass(frozen=True)
class Participant:
    name: str
    secondary_id: Optional[str] = None

    @classmethod
    def create(cls, name: Optional[str], secondary_id: Optional[str] = None) -> 'Participant':
        name = (name or '').strip()
        if not name:
            raise ValidationError('Name is required')
        secondary_id = (secondary_id or '').strip() or None
        return cls(name=name, secondary_id=secondary_id)

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'secondaryId': self.secondary_id}


@dataclass
class RoundRecord:
    round_index: int
    letter: str
    submitted_term: str
    time_remaining: float
    points_awarded: float
    verification: Verification = Verification.UNSET

    @property
    def normalized_term(self) -> str:
        return normalize_term(self.submitted_term)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'roundIndex': self.round_index,
            'letter': self.letter,
            'submittedTerm': self.submitted_term,
            'timeRemaining': self.time_remaining,
            'pointsAwarded': self.points_awarded,
            'verification': self.verification.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RoundRecord':
        try:
            if 'roundIndex' in data:
                return cls(
                    round_index=int(data['roundIndex']),
                    letter=data['letter'],
                    submitted_term=data.get('submittedTerm') or '',
                    time_remaining=float(data.get('timeRemaining') or 0.0),
                    points_awarded=float(data.get('pointsAwarded') or 0.0),
                    verification=Verification.parse(data.get('verification')),
                )
            # Legacy browser-client layout
            return cls(
                round_index=int(data['round']),
                letter=data['letter'],
                submitted_term=data.get('input') or '',
                time_remaining=float(data.get('timeLeft') or 0.0),
                points_awarded=float(data.get('score') or 0.0),
                verification=Verification.parse(data.get('verified')),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Unreadable round {data!r}: {exc!r}") from exc


@dataclass
class ResultRecord:
    participant: Participant
    auto_score: float
    rounds: List[RoundRecord] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    verified_score: Optional[float] = None
    id: Optional[int] = None

    def find_round(self, round_index: int) -> Optional[RoundRecord]:
        for r in self.rounds:
            if r.round_index == round_index:
                return r
        return None

    def recompute_verified_score(self) -> float:
        self.verified_score = verified_score(self.rounds)
        return self.verified_score

    def copy(self) -> 'ResultRecord':
        return replace(self, rounds=[replace(r) for r in self.rounds])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'participant': self.participant.to_dict(),
            'autoScore': self.auto_score,
            'verifiedScore': self.verified_score,
            'rounds': [r.to_dict() for r in self.rounds],
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


def normalize_term(term: Optional[str]) -> str:
    """Edge-trimmed, upper-cased term. Internal whitespace is kept."""
    return (term or '').strip().upper()


def auto_score(rounds: List[RoundRecord]) -> float:
    total = 0.0
    for r in rounds:
        total += r.points_awarded
    return total


def verified_score(rounds: List[RoundRecord]) -> float:
    total = 0.0
    for r in rounds:
        if r.verification is Verification.ACCEPTED:
            total += r.points_awarded
    return total
