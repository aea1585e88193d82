from dataclasses import replace

from landgrab.services.territory.feed import (
    DELETE,
    INSERT,
    UPDATE,
    OpponentView,
    PlayerChange,
    RealtimeFeed,
)
from landgrab.services.territory.state import PlayerState


def test_view_applies_inserts_updates_and_deletes():
    view = OpponentView()
    view.prime([PlayerState(id=2, username='bob'), PlayerState(id=1, username='alice')])
    assert [p.id for p in view.snapshot()] == [1, 2]
    assert [p.id for p in view.snapshot(excluding=1)] == [2]

    assert view.apply(PlayerChange(INSERT, PlayerState(id=3, username='cara')))
    assert view.apply(PlayerChange(UPDATE, PlayerState(id=2, username='bob', score=5, version=2)))
    assert view.get(2).score == 5
    assert view.apply(PlayerChange(DELETE, PlayerState(id=1, username='alice')))
    assert [p.id for p in view.snapshot()] == [2, 3]


def test_view_ignores_stale_changes():
    view = OpponentView()
    bob = PlayerState(id=2, username='bob', score=5, version=3)
    view.prime([bob])
    assert not view.apply(PlayerChange(UPDATE, replace(bob, score=1, version=2)))
    assert view.get(2).score == 5


def test_view_age_starts_infinite():
    view = OpponentView()
    assert view.age() == float('inf')
    view.prime([])
    assert view.age() < 60


class FlakySocket:
    def __init__(self):
        self.calls = []

    def emit(self, event, payload, to=None, namespace=None):
        self.calls.append((event, payload, to, namespace))
        raise RuntimeError('socket gone')


class RecordingSocket(FlakySocket):
    def emit(self, event, payload, to=None, namespace=None):
        self.calls.append((event, payload, to, namespace))


def test_publish_broadcasts_to_the_world_room():
    sock = RecordingSocket()
    feed = RealtimeFeed(sock)
    assert feed.publish([PlayerChange(INSERT, PlayerState(id=1, username='alice'))])
    event, payload, room, namespace = sock.calls[0]
    assert (event, room, namespace) == ('player_changed', 'world', '/ws')
    assert payload['kind'] == 'insert'
    assert payload['player']['username'] == 'alice'


def test_failed_broadcast_still_reaches_subscribers():
    seen = []
    feed = RealtimeFeed(FlakySocket())
    feed.subscribe(seen.append)
    changes = [PlayerChange(UPDATE, PlayerState(id=i, username=f'p{i}')) for i in (1, 2)]
    assert feed.publish(changes) is False
    assert [c.player.id for c in seen] == [1, 2]


def test_feed_without_socket_only_notifies_subscribers():
    seen = []
    feed = RealtimeFeed()
    feed.subscribe(seen.append)
    assert feed.publish([PlayerChange(DELETE, PlayerState(id=4, username='dan'))])
    assert seen[0].kind == DELETE
