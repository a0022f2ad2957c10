import random
import string
import threading
import time
from typing import Dict, Optional, Tuple

from charads.exceptions import SessionNotFound
from charads.services.game.classifier import TermClassifier
from charads.services.game.engine import RoundEngine
from charads.services.game.letters import draw_letter


def generate_session_code(length=6):
    return ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))


class SessionRegistry:
    """Live play sessions keyed by a short code.

    Each code owns one ``RoundEngine``; engines are created at registration
    and discarded explicitly or after their sockets have been gone for
    ``SESSION_IDLE_GRACE_SEC``.
    """

    def __init__(self):
        self.app = None
        self.classifier: Optional[TermClassifier] = None
        self.gateway = None
        self._engines: Dict[str, RoundEngine] = {}
        self._discard_deadline: Dict[str, float] = {}
        self._lock = threading.Lock()

    def init_app(self, app, gateway=None):
        from charads.services.store import SqlResultGateway

        self.app = app
        self.classifier = TermClassifier.from_config(app)
        self.gateway = gateway or SqlResultGateway()
        with self._lock:
            for engine in self._engines.values():
                engine.close()
            self._engines.clear()
            self._discard_deadline.clear()

    def create(self, name, secondary_id=None) -> Tuple[str, RoundEngine]:
        engine = self._build_engine()
        with self._lock:
            code = generate_session_code()
            while code in self._engines:
                code = generate_session_code()
            engine.code = code
            engine.register(name, secondary_id)
            self._engines[code] = engine
        self.app.logger.info(f"[session-create] code={code} participant={engine.participant.name}")
        return code, engine

    def get(self, code: str) -> RoundEngine:
        engine = self._engines.get((code or '').upper())
        if engine is None:
            raise SessionNotFound(code)
        return engine

    def __contains__(self, code) -> bool:
        return (code or '').upper() in self._engines

    def discard(self, code: str) -> bool:
        with self._lock:
            engine = self._engines.pop(code.upper(), None)
            self._discard_deadline.pop(code.upper(), None)
        if engine is None:
            return False
        engine.close()
        self.app.logger.info(f"[session-discard] code={code.upper()}")
        return True

    def schedule_discard(self, code: str, delay_sec: Optional[float] = None) -> None:
        """Discard ``code`` after a grace period unless ``cancel_discard`` runs first."""
        from charads import socketio

        if delay_sec is None:
            delay_sec = float(self.app.config.get('SESSION_IDLE_GRACE_SEC', 30))
        code = code.upper()
        deadline = time.time() + delay_sec
        self._discard_deadline[code] = deadline

        def _runner(c: str, d: float):
            sleep_for = max(0.0, d - time.time())
            if sleep_for:
                time.sleep(sleep_for)
            if self._discard_deadline.get(c) == d:
                self.discard(c)

        socketio.start_background_task(_runner, code, deadline)

    def cancel_discard(self, code: str) -> None:
        self._discard_deadline.pop(code.upper(), None)

    def _build_engine(self) -> RoundEngine:
        from charads.services.game.countdown import schedule_countdown

        app = self.app
        cfg = app.config
        alphabet = cfg.get('LETTER_ALPHABET') or 'ABCDEFGHIJKLMNOPRSTUVW'

        def _on_arm(engine, generation):
            schedule_countdown(app, engine, generation)

        def _on_change(engine):
            from charads import socketio
            payload = engine.snapshot()
            payload['code'] = engine.code
            socketio.emit('state_update', payload, to=f"session:{engine.code}", namespace='/ws')

        def _on_game_over(record):
            with app.app_context():
                return self.gateway.create(record)

        return RoundEngine(
            classifier=self.classifier,
            letters=lambda: draw_letter(alphabet),
            duration=float(cfg.get('ROUND_DURATION_SEC', 45)),
            max_rounds=int(cfg.get('MAX_ROUNDS', 15)),
            on_arm=_on_arm,
            on_change=_on_change,
            on_game_over=_on_game_over,
            logger=app.logger,
        )
