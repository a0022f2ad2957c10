import threading

import pytest

from charads.exceptions import PersistenceError, PreconditionError, ValidationError
from charads.services.game.engine import GameState, RoundEngine, check_term
from charads.services.game.letters import draw_letter
from charads.services.game.scoring import ScoreTally
from charads.services.records import Verification


def make_engine(clock, max_rounds=15, letters='T', **kwargs):
    seq = iter(letters * (max_rounds + 1)) if len(letters) > 1 else None
    engine = RoundEngine(
        letters=(lambda: next(seq)) if seq else (lambda: letters),
        clock=clock,
        duration=45,
        max_rounds=max_rounds,
        **kwargs
    )
    engine.register('Ada', 'ada@example.com')
    return engine


def test_register_requires_name(clock):
    engine = RoundEngine(clock=clock)
    with pytest.raises(ValidationError):
        engine.register('   ')
    assert engine.state is GameState.REGISTERING
    participant = engine.register('  Ada  ', '  ')
    assert participant.name == 'Ada'
    assert participant.secondary_id is None
    assert engine.state is GameState.IDLE


def test_start_arms_first_round(clock):
    armed = []
    engine = make_engine(clock, on_arm=lambda e, gen: armed.append(gen))
    engine.start()
    snap = engine.snapshot()
    assert snap['state'] == 'playing'
    assert snap['round'] == 1
    assert snap['letter'] == 'T'
    assert snap['timeRemaining'] == 45.0
    assert snap['inputError'] is False
    assert armed == [engine.generation]


def test_valid_submit_scores_seconds_left(clock):
    engine = make_engine(clock)
    engine.start()
    clock.advance(15)
    record = engine.submit('typescript')
    assert record.letter == 'T'
    assert record.submitted_term == 'typescript'
    assert record.points_awarded == 30.0
    assert record.time_remaining == 30.0
    assert record.verification is Verification.ACCEPTED
    assert engine.session.tally.total == 30.0
    assert engine.session.round_index == 2
    assert engine.time_remaining() == 45.0


def test_submit_is_case_insensitive_and_trims(clock):
    engine = make_engine(clock)
    engine.start()
    record = engine.submit('   tcp  ')
    assert record is not None
    assert record.submitted_term == '   tcp  '


def test_wrong_letter_keeps_round_and_countdown(clock):
    engine = make_engine(clock)
    engine.start()
    deadline = engine.session.deadline
    clock.advance(5)
    assert engine.submit('apple') is None
    assert engine.session.input_error is True
    assert engine.session.round_index == 1
    assert engine.session.rounds == []
    assert engine.session.deadline == deadline
    assert engine.time_remaining() == 40.0


def test_empty_submit_is_rejected(clock):
    engine = make_engine(clock)
    engine.start()
    assert engine.submit('   ') is None
    assert engine.snapshot()['inputError'] is True


def test_typing_clears_input_error(clock):
    engine = make_engine(clock)
    engine.start()
    engine.submit('apple')
    engine.set_input('t')
    assert engine.session.input_error is False


def test_tick_recomputes_from_deadline(clock):
    engine = make_engine(clock)
    engine.start()
    clock.advance(12.5)
    assert engine.tick() == 32.5
    # A long pause between ticks does not drift the countdown
    clock.advance(20)
    assert engine.tick() == 12.5
    assert engine.session.time_remaining == 12.5


def test_timeout_records_partial_input(clock):
    engine = make_engine(clock)
    engine.start()
    engine.set_input('te')
    clock.advance(45)
    assert engine.tick() == 0.0
    record = engine.session.rounds[0]
    assert record.submitted_term == 'te'
    assert record.points_awarded == 0
    assert record.time_remaining == 0
    assert engine.session.round_index == 2
    assert engine.state is GameState.PLAYING


def test_timeout_with_known_term_still_scores_zero(clock):
    engine = make_engine(clock)
    engine.start()
    engine.set_input('tcp')
    clock.advance(50)
    engine.tick()
    record = engine.session.rounds[0]
    assert record.points_awarded == 0
    assert record.verification is Verification.ACCEPTED


def test_submit_after_deadline_is_a_timeout(clock):
    engine = make_engine(clock)
    engine.start()
    clock.advance(46)
    record = engine.submit('typescript')
    assert record.points_awarded == 0
    assert record.submitted_term == 'typescript'


def test_unknown_term_is_left_unset(clock):
    engine = make_engine(clock)
    engine.start()
    record = engine.submit('tamagotchi')
    assert record.verification is Verification.UNSET


def test_stale_tick_is_ignored(clock):
    engine = make_engine(clock)
    engine.start()
    first_generation = engine.generation
    engine.submit('typescript')
    clock.advance(45)
    assert engine.tick(first_generation) is None
    assert len(engine.session.rounds) == 1
    assert not engine.is_armed(first_generation)
    assert engine.is_armed(engine.generation)


def test_racing_tick_and_submit_consume_round_once(clock):
    engine = make_engine(clock, max_rounds=1)
    over = []
    engine.on_game_over = lambda record: over.append(record) or 7
    engine.start()
    engine.set_input('te')
    clock.advance(45)
    barrier = threading.Barrier(2)

    def fire(fn):
        barrier.wait()
        fn()

    threads = [
        threading.Thread(target=fire, args=(engine.tick,)),
        threading.Thread(target=fire, args=(lambda: engine.submit('typescript'),)),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(engine.session.rounds) == 1
    assert len(over) == 1
    assert engine.state is GameState.GAME_OVER


def test_full_game_freezes_result(clock):
    saved = []
    engine = make_engine(clock, max_rounds=3, letters='TAP', on_game_over=lambda r: saved.append(r) or 42)
    engine.start()
    clock.advance(5)
    engine.submit('typescript')
    clock.advance(10)
    engine.set_input('a')
    clock.advance(45)
    engine.tick()
    clock.advance(1.5)
    engine.submit('python')

    assert engine.state is GameState.GAME_OVER
    assert engine.submit('python') is None
    assert engine.tick() is None
    result = engine.result
    assert [r.round_index for r in result.rounds] == [1, 2, 3]
    assert [r.letter for r in result.rounds] == ['T', 'A', 'P']
    assert result.auto_score == sum(r.points_awarded for r in result.rounds) == 40.0 + 0.0 + 43.5
    assert result.verified_score is None
    assert result.id == 42
    assert saved == [result]
    assert engine.high_score == result.auto_score
    assert engine.snapshot()['resultId'] == 42


def test_restart_discards_session_and_keeps_high_score(clock):
    engine = make_engine(clock, max_rounds=1)
    engine.start()
    clock.advance(5)
    engine.submit('typescript')
    old_session = engine.session
    engine.restart()
    assert engine.session is not old_session
    assert engine.session.rounds == []
    assert engine.session.tally.total == 0.0
    assert engine.session.round_index == 1
    assert engine.high_score == 40.0
    assert engine.result is None


def test_start_while_playing_is_refused(clock):
    engine = make_engine(clock)
    engine.start()
    with pytest.raises(PreconditionError):
        engine.start()


def test_register_twice_is_refused(clock):
    engine = make_engine(clock)
    with pytest.raises(PreconditionError):
        engine.register('Grace')


def test_failed_save_is_flagged_not_raised(clock):
    def boom(record):
        raise PersistenceError('store unavailable')

    engine = make_engine(clock, max_rounds=1, on_game_over=boom)
    engine.start()
    engine.submit('typescript')
    snap = engine.snapshot()
    assert snap['state'] == 'game_over'
    assert snap['saveError'] == 'store unavailable'
    assert snap['saving'] is False
    assert snap['resultId'] is None


def test_close_disarms_countdown(clock):
    engine = make_engine(clock)
    engine.start()
    generation = engine.generation
    engine.close()
    assert not engine.is_armed(generation)


def test_check_term():
    assert check_term('T', '  Terraform ') == 'Terraform'
    with pytest.raises(ValidationError):
        check_term('T', 'apple')
    with pytest.raises(ValidationError):
        check_term('T', '')


def test_score_tally_matches_rescan(clock):
    engine = make_engine(clock, max_rounds=5)
    engine.start()
    for step in (0.1, 0.2, 0.3, 7.77):
        clock.advance(step)
        engine.submit('tls')
    tally = engine.session.tally
    assert tally.matches(engine.session.rounds)
    tally.total += 1
    assert not tally.matches(engine.session.rounds)
    tally.recover(engine.session.rounds)
    assert tally.matches(engine.session.rounds)
    assert ScoreTally().matches([])


def test_draw_letter_uses_alphabet():
    for _ in range(50):
        assert draw_letter('abc') in 'ABC'
    with pytest.raises(ValueError):
        draw_letter('123')
