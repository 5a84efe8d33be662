import random
import threading

from primechain import socketio
from primechain.models import Player
from primechain.services.rooms import RoomEngine, RoomRegistry
from primechain.services.rooms.reaper import REAPER_FLAG, reap_idle_rooms, start_room_reaper


class _ScriptedRandom(random.Random):
    """Returns queued code characters first, then behaves normally."""

    def __init__(self, codes):
        super().__init__(0)
        self._codes = list(codes)

    def choices(self, population, weights=None, *, cum_weights=None, k=1):
        if self._codes:
            return list(self._codes.pop(0))
        return super().choices(population, weights, cum_weights=cum_weights, k=k)


def test_generated_codes_are_unique_on_collision():
    registry = RoomRegistry(rng=_ScriptedRandom(['AAAAAA', 'AAAAAA', 'BBBBBB']))
    first = registry.create('h1')
    second = registry.create('h2')
    assert first.code == 'AAAAAA'
    assert second.code == 'BBBBBB'
    assert len(registry) == 2


def test_code_length_is_configurable():
    registry = RoomRegistry(code_length=4, rng=random.Random(1))
    assert len(registry.create('h1').code) == 4


def test_locked_yields_none_for_unknown_code():
    registry = RoomRegistry()
    with registry.locked('NOPE42') as room:
        assert room is None
    with registry.locked(None) as room:
        assert room is None


def test_locked_serializes_actions_on_a_room():
    registry = RoomRegistry(rng=random.Random(3))
    code = registry.create('h1').code
    entered = threading.Event()
    release = threading.Event()
    order = []

    def _slow():
        with registry.locked(code):
            entered.set()
            release.wait(2)
            order.append('slow')

    t = threading.Thread(target=_slow)
    t.start()
    entered.wait(2)

    def _fast():
        with registry.locked(code):
            order.append('fast')

    t2 = threading.Thread(target=_fast)
    t2.start()
    release.set()
    t.join(2)
    t2.join(2)
    assert order == ['slow', 'fast']


def test_membership_tracked_and_cleared_on_remove():
    registry = RoomRegistry(rng=random.Random(5))
    room = registry.create('h1')
    registry.add_player(room, Player(id='p1', name='Alice', lives=10))
    assert registry.room_code_for('p1') == room.code
    assert registry.remove(room.code) is room
    assert registry.room_code_for('p1') is None
    assert room.code not in registry


def test_purge_idle_only_removes_stale_rooms():
    registry = RoomRegistry(rng=random.Random(9))
    stale = registry.create('h1')
    fresh = registry.create('h2')
    stale.touch(1000.0)
    fresh.touch(1090.0)
    removed = registry.purge_idle(60, now=1100.0)
    assert [r.code for r in removed] == [stale.code]
    assert stale.code not in registry
    assert fresh.code in registry


def test_purge_idle_disabled_with_zero_ttl():
    registry = RoomRegistry()
    registry.create('h1').touch(0.0)
    assert registry.purge_idle(0, now=10**9) == []
    assert len(registry) == 1


def test_engine_activity_refreshes_room():
    engine = RoomEngine(RoomRegistry(rng=random.Random(11)))
    code = engine.create_room('h1').room_code
    room = engine.registry.get(code)
    room.touch(0.0)
    engine.join_room('p1', code, 'Alice')
    assert room.last_activity > 0.0


def test_ignored_actions_do_not_refresh_room():
    engine = RoomEngine(RoomRegistry(rng=random.Random(11)))
    code = engine.create_room('h1').room_code
    room = engine.registry.get(code)
    room.touch(0.0)
    engine.start_game('not-the-host', code)
    assert room.last_activity == 0.0


def test_reap_idle_rooms_uses_app_config(flask_app, registry):
    room = registry.create('h1')
    room.touch(0.0)
    kept = registry.create('h2')
    assert reap_idle_rooms(flask_app, now=kept.last_activity) == [room.code]
    assert room.code not in registry
    assert kept.code in registry


def test_reaper_not_started_in_testing(flask_app):
    assert start_room_reaper(flask_app) is False


def test_claim_member_is_first_come():
    registry = RoomRegistry()
    assert registry.claim_member('p1', 'AAAAAA') is None
    assert registry.claim_member('p1', 'BBBBBB') == 'AAAAAA'
    assert registry.claim_member('p1', 'AAAAAA') == 'AAAAAA'
    assert registry.room_code_for('p1') == 'AAAAAA'


def test_concurrent_joins_to_two_rooms_admit_one():
    engine = RoomEngine(RoomRegistry(rng=random.Random(13)))
    first = engine.create_room('h1').room_code
    second = engine.create_room('h2').room_code

    # Hold both joins at the membership step so they race on it
    barrier = threading.Barrier(2, timeout=2)
    claim = engine.registry.claim_member

    def _racing_claim(sid, code):
        barrier.wait()
        return claim(sid, code)

    engine.registry.claim_member = _racing_claim
    outcomes = {}

    def _join(code):
        outcomes[code] = engine.join_room('p1', code, 'Alice')

    threads = [threading.Thread(target=_join, args=(code,)) for code in (first, second)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(3)

    assert sorted(o.status for o in outcomes.values()) == ['applied', 'rejected']
    in_first = engine.registry.get(first).find_player('p1') is not None
    in_second = engine.registry.get(second).find_player('p1') is not None
    assert in_first != in_second
    assert engine.registry.room_code_for('p1') == (first if in_first else second)


def test_reaper_started_once_per_app(flask_app, monkeypatch):
    started = []
    monkeypatch.setattr(socketio, 'start_background_task', lambda fn, *a, **kw: started.append(fn))
    flask_app.config['ENABLE_REAPER_IN_TESTS'] = True
    assert start_room_reaper(flask_app) is True
    assert start_room_reaper(flask_app) is False
    assert flask_app.extensions[REAPER_FLAG] is True
    assert len(started) == 1
