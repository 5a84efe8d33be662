import os


def _origins(raw):
    return [o.strip() for o in raw.split(',') if o.strip()]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of origins allowed for HTTP and Socket.IO
    CORS_ORIGINS = _origins(os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://127.0.0.1:5173,http://localhost:5174,http://127.0.0.1:5174',
    ))
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '6'))
    # Rooms idle longer than this are reaped (seconds). 0 disables.
    ROOM_IDLE_TTL_SEC = int(os.environ.get('ROOM_IDLE_TTL_SEC', '3600'))
    ROOM_REAPER_INTERVAL_SEC = int(os.environ.get('ROOM_REAPER_INTERVAL_SEC', '60'))
    # Optional: fixed seed for room codes and starting primes
    ROOM_RNG_SEED = os.environ.get('ROOM_RNG_SEED')
