from primechain import socketio

REAPER_FLAG = 'primechain_reaper'


def reap_idle_rooms(app, now=None) -> list:
    """Drop rooms idle past ROOM_IDLE_TTL_SEC and tell their clients."""
    ttl = int(app.config.get('ROOM_IDLE_TTL_SEC', 0))
    registry = app.extensions['primechain'].registry
    namespace = app.config.get('SOCKETIO_NAMESPACE', '/ws')
    removed = registry.purge_idle(ttl, now)
    for room in removed:
        app.logger.info(
            f"[reaper-purge] room={room.code} status={room.status} players={len(room.players)} idle>{ttl}s"
        )
        socketio.emit('room_closed', {'roomId': room.code}, to=room.channel, namespace=namespace)
        # Unsubscribe everyone so a later room reusing the code starts clean
        socketio.close_room(room.channel, namespace=namespace)
    return [room.code for room in removed]


def start_room_reaper(app) -> bool:
    """Start the background reaper for ``app`` once.

    - No-ops in TESTING mode unless ENABLE_REAPER_IN_TESTS is set
    - No-ops when ROOM_IDLE_TTL_SEC is 0
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_REAPER_IN_TESTS'):
        return False
    if int(app.config.get('ROOM_IDLE_TTL_SEC', 0)) <= 0:
        return False
    if app.extensions.get(REAPER_FLAG):
        return False
    app.extensions[REAPER_FLAG] = True

    interval = max(1, int(app.config.get('ROOM_REAPER_INTERVAL_SEC', 60)))
    app.logger.info(f"[reaper-start] ttl={app.config['ROOM_IDLE_TTL_SEC']}s interval={interval}s")

    def _worker():
        while True:
            socketio.sleep(interval)
            try:
                reap_idle_rooms(app)
            except Exception:
                app.logger.exception("[reaper-error] sweep failed")

    socketio.start_background_task(_worker)
    return True
