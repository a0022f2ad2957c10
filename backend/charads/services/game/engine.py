"""Round engine: the turn state machine for one participant.

REGISTERING -> IDLE -> PLAYING -> GAME_OVER, with GAME_OVER -> PLAYING on
restart. The countdown is deadline based: every tick recomputes
``deadline - now`` instead of decrementing a counter, so missed ticks never
drift the clock.

Two writers race on a round: the countdown tick and a manual submit. Both
take the engine lock and check that the engine is still PLAYING the same
round before consuming it, so a round ends exactly once.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from charads.exceptions import PersistenceError, PreconditionError, ValidationError
from charads.services.game.classifier import TermClassifier
from charads.services.game.letters import draw_letter
from charads.services.game.scoring import ScoreTally, finalize_result
from charads.services.records import Participant, ResultRecord, RoundRecord

default_logger = logging.getLogger(__name__)

ROUND_DURATION_SEC = 45.0
MAX_ROUNDS = 15


class GameState(str, Enum):
    REGISTERING = 'registering'
    IDLE = 'idle'
    PLAYING = 'playing'
    GAME_OVER = 'game_over'


@dataclass
class GameSession:
    """State of one play-through. Replaced wholesale on (re)start."""
    letter: str = ''
    deadline: float = 0.0
    time_remaining: float = 0.0
    round_index: int = 0
    input_text: str = ''
    input_error: bool = False
    rounds: List[RoundRecord] = field(default_factory=list)
    tally: ScoreTally = field(default_factory=ScoreTally)


def check_term(letter: str, text: Optional[str]) -> str:
    """Return the trimmed term or raise ValidationError."""
    trimmed = (text or '').strip()
    if not trimmed:
        raise ValidationError('Type a term before submitting')
    if trimmed[0].upper() != letter.upper():
        raise ValidationError(f'Term must start with {letter}')
    return trimmed


class RoundEngine:

    def __init__(
        self,
        classifier: Optional[TermClassifier] = None,
        letters: Callable[[], str] = draw_letter,
        clock: Callable[[], float] = time.monotonic,
        duration: float = ROUND_DURATION_SEC,
        max_rounds: int = MAX_ROUNDS,
        on_arm: Optional[Callable[['RoundEngine', int], None]] = None,
        on_change: Optional[Callable[['RoundEngine'], None]] = None,
        on_game_over: Optional[Callable[[ResultRecord], Optional[int]]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.classifier = classifier or TermClassifier()
        self.letters = letters
        self.clock = clock
        self.duration = float(duration)
        self.max_rounds = int(max_rounds)
        self.on_arm = on_arm
        self.on_change = on_change
        self.on_game_over = on_game_over
        self.logger = logger or default_logger

        self.code: Optional[str] = None
        self.state = GameState.REGISTERING
        self.participant: Optional[Participant] = None
        self.session: Optional[GameSession] = None
        self.result: Optional[ResultRecord] = None
        self.high_score = 0.0
        self.saving = False
        self.save_error: Optional[str] = None
        self._generation = 0
        self._lock = threading.RLock()

    # ---- lifecycle ----

    def register(self, name: Optional[str], secondary_id: Optional[str] = None) -> Participant:
        with self._lock:
            if self.state is not GameState.REGISTERING:
                raise PreconditionError('Participant already registered')
            self.participant = Participant.create(name, secondary_id)
            self.state = GameState.IDLE
        self._notify()
        return self.participant

    def start(self) -> GameSession:
        with self._lock:
            if self.state not in (GameState.IDLE, GameState.GAME_OVER):
                raise PreconditionError(f'Cannot start a game while {self.state.value}')
            self.session = GameSession()
            self.result = None
            self.save_error = None
            self.state = GameState.PLAYING
            self._begin_round(1)
            session = self.session
        self._notify()
        return session

    def restart(self) -> GameSession:
        return self.start()

    def close(self) -> None:
        """Disarm any live countdown. Used when the session is discarded."""
        with self._lock:
            self._generation += 1

    # ---- countdown ----

    @property
    def generation(self) -> int:
        return self._generation

    def is_armed(self, generation: int) -> bool:
        return self.state is GameState.PLAYING and generation == self._generation

    def time_remaining(self) -> float:
        with self._lock:
            if self.state is not GameState.PLAYING:
                return 0.0
            return self._remaining()

    def tick(self, generation: Optional[int] = None) -> Optional[float]:
        """Refresh the remaining time; end the round when it hits zero.

        A tick from a stale countdown (``generation`` no longer current) is
        ignored. Returns the remaining time, or None if nothing was live.
        """
        with self._lock:
            if self.state is not GameState.PLAYING:
                return None
            if generation is not None and generation != self._generation:
                return None
            remaining = self._remaining()
            self.session.time_remaining = remaining
            if remaining > 0:
                return remaining
            finished = self._end_round(0.0, 0.0, self.session.input_text)
        self._after_round(finished)
        return 0.0

    # ---- input ----

    def set_input(self, text: Optional[str]) -> bool:
        with self._lock:
            if self.state is not GameState.PLAYING:
                return False
            self.session.input_text = text or ''
            self.session.input_error = False
        return True

    def submit(self, text: Optional[str] = None) -> Optional[RoundRecord]:
        """Try to end the current round with ``text``.

        Returns the new round record, or None when the term was rejected
        (input-error flag raised, countdown untouched) or no round was live.
        """
        with self._lock:
            if self.state is not GameState.PLAYING:
                return None
            session = self.session
            if text is not None:
                session.input_text = text
            remaining = self._remaining()
            finished = None
            consumed = True
            if remaining <= 0:
                # Deadline passed before the tick noticed: a timeout
                finished = self._end_round(0.0, 0.0, session.input_text)
            else:
                try:
                    check_term(session.letter, session.input_text)
                except ValidationError as exc:
                    session.input_error = True
                    consumed = False
                    self.logger.debug(f"[input-error] round={session.round_index} letter={session.letter} reason={exc}")
                else:
                    finished = self._end_round(remaining, remaining, session.input_text)
            record = session.rounds[-1] if consumed else None
        self._after_round(finished)
        return record

    # ---- rendering ----

    def snapshot(self) -> dict:
        with self._lock:
            session = self.session
            playing = self.state is GameState.PLAYING
            return {
                'state': self.state.value,
                'participant': self.participant.to_dict() if self.participant else None,
                'letter': session.letter if playing else None,
                'timeRemaining': self._remaining() if playing else 0.0,
                'duration': self.duration,
                'inputError': bool(session and session.input_error),
                'round': (session.round_index if playing else len(session.rounds)) if session else 0,
                'maxRounds': self.max_rounds,
                'score': session.tally.total if session else 0.0,
                'highScore': self.high_score,
                'rounds': [r.to_dict() for r in session.rounds] if session else [],
                'saving': self.saving,
                'saveError': self.save_error,
                'resultId': self.result.id if self.result else None,
            }

    # ---- internals (lock held) ----

    def _remaining(self) -> float:
        return max(0.0, self.session.deadline - self.clock())

    def _begin_round(self, round_index: int) -> None:
        session = self.session
        session.round_index = round_index
        session.letter = self.letters()
        session.deadline = self.clock() + self.duration
        session.time_remaining = self.duration
        session.input_text = ''
        session.input_error = False
        self._generation += 1
        if self.on_arm:
            self.on_arm(self, self._generation)

    def _end_round(self, points: float, remaining: float, text: str) -> Optional[ResultRecord]:
        session = self.session
        record = RoundRecord(
            round_index=session.round_index,
            letter=session.letter,
            submitted_term=text or '',
            time_remaining=remaining,
            points_awarded=points,
            verification=self.classifier.classify(text or ''),
        )
        session.rounds.append(record)
        session.tally.add(record)
        # Disarm the countdown that belonged to this round
        self._generation += 1
        self.logger.info(
            f"[round-end] round={record.round_index} letter={record.letter} "
            f"points={record.points_awarded:.2f} total={session.tally.total:.2f}"
        )
        if record.round_index >= self.max_rounds:
            return self._finish()
        self._begin_round(record.round_index + 1)
        return None

    def _finish(self) -> ResultRecord:
        session = self.session
        self.state = GameState.GAME_OVER
        session.time_remaining = 0.0
        session.input_text = ''
        self.result = finalize_result(self.participant, session.tally, session.rounds)
        if self.result.auto_score > self.high_score:
            self.high_score = self.result.auto_score
        self.saving = self.on_game_over is not None
        self.logger.info(f"[game-over] participant={self.participant.name} score={self.result.auto_score:.2f}")
        return self.result

    # ---- internals (lock released) ----

    def _after_round(self, finished: Optional[ResultRecord]) -> None:
        if finished is not None and self.on_game_over is not None:
            try:
                finished.id = self.on_game_over(finished)
            except PersistenceError as exc:
                self.save_error = str(exc)
                self.logger.error(f"[persist-fail] participant={finished.participant.name} error={exc}")
            finally:
                self.saving = False
        self._notify()

    def _notify(self) -> None:
        if self.on_change:
            self.on_change(self)
