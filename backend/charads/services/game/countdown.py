import time

from charads import socketio


def schedule_countdown(app, engine, generation: int) -> None:
    """Run the tick loop for one armed round of ``engine``.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - The loop exits as soon as the round is no longer armed (submit,
      timeout, restart or discard all bump the generation), so at most one
      countdown per session keeps ticking
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return

    interval = float(app.config.get('TICK_INTERVAL_SEC', 0.1))
    session = engine.session
    app.logger.info(
        f"[timer-set] round={session.round_index} letter={session.letter} "
        f"duration={engine.duration}s generation={generation}"
    )

    def _worker(expected_generation: int):
        while engine.is_armed(expected_generation):
            time.sleep(interval)
            with app.app_context():
                remaining = engine.tick(expected_generation)
            if remaining == 0.0:
                app.logger.info(f"[timer-fire] generation={expected_generation} round timed out")
                return
        app.logger.debug(f"[timer-abort] generation={expected_generation} disarmed")

    socketio.start_background_task(_worker, generation)
