from dataclasses import replace
from typing import List

from charads.services.records import Participant, ResultRecord, RoundRecord, auto_score


class ScoreTally:
    """Running total of points for one session.

    ``add`` is O(1) per round. ``matches`` re-scans the history in the same
    order, so an intact tally compares exactly equal, float sums included.
    """

    def __init__(self):
        self.total = 0.0
        self.rounds_counted = 0

    def add(self, round_record: RoundRecord) -> float:
        self.total += round_record.points_awarded
        self.rounds_counted += 1
        return self.total

    def matches(self, rounds: List[RoundRecord]) -> bool:
        return self.rounds_counted == len(rounds) and self.total == auto_score(rounds)

    def recover(self, rounds: List[RoundRecord]) -> float:
        self.total = auto_score(rounds)
        self.rounds_counted = len(rounds)
        return self.total


def finalize_result(participant: Participant, tally: ScoreTally, rounds: List[RoundRecord]) -> ResultRecord:
    """Freeze the session into a result record.

    A tally that disagrees with the history is rebuilt from the history
    before freezing.
    """
    if not tally.matches(rounds):
        tally.recover(rounds)
    return ResultRecord(
        participant=participant,
        auto_score=tally.total,
        rounds=[replace(r) for r in rounds],
    )
