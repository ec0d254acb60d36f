import json

from connection import ConnectionState


def join(service, handle, **fields):
    service.on_message(handle, json.dumps({"type": "join", **fields}))


def test_join_acks_then_broadcasts_room_state(service, make_handle):
    x = make_handle("x")
    join(service, x, roomId="abc")

    ack, state = x.pop()
    assert ack["type"] == "joined"
    assert ack["roomId"] == "abc"
    assert ack["isHost"] is True
    assert ack["peerCount"] == 1
    assert len(ack["clientId"]) == 26
    assert state == {"type": "room", "peerCount": 1, "hostId": ack["clientId"]}
    assert x.state is ConnectionState.JOINED


def test_join_defaults_room(service, make_handle):
    x = make_handle("x")
    join(service, x, roomId="", clientId="x1")
    assert x.pop()[0]["roomId"] == "room1"
    assert service.registry.describe("room1")["client_ids"] == ["x1"]


def test_second_joiner_is_not_host(service, make_handle):
    x, y = make_handle("x"), make_handle("y")
    join(service, x, roomId="abc", clientId="x1")
    x.pop()
    join(service, y, roomId="abc", clientId="y1")

    assert y.pop() == [
        {"type": "joined", "roomId": "abc", "clientId": "y1", "isHost": False, "peerCount": 2},
        {"type": "room", "peerCount": 2, "hostId": "x1"},
    ]
    assert x.pop() == [{"type": "room", "peerCount": 2, "hostId": "x1"}]


def test_relay_goes_to_others_only(service, make_handle):
    x, y, z = make_handle("x"), make_handle("y"), make_handle("z")
    join(service, x, roomId="abc", clientId="x1")
    join(service, y, roomId="abc", clientId="y1")
    join(service, z, roomId="other", clientId="z1")
    for handle in (x, y, z):
        handle.pop()

    offer = {"type": "offer", "sdp": "v=0", "meta": {"anything": [1, 2]}}
    service.on_message(x, json.dumps(offer))

    assert y.pop() == [offer]
    assert x.pop() == []
    assert z.pop() == []


def test_relay_before_join_is_dropped(service, make_handle):
    x, y = make_handle("x"), make_handle("y")
    join(service, y, roomId="room1", clientId="y1")
    y.pop()

    service.on_message(x, '{"type":"offer"}')
    assert y.pop() == []
    assert x.state is ConnectionState.UNJOINED


def test_malformed_frame_is_dropped(service, make_handle):
    x, y = make_handle("x"), make_handle("y")
    join(service, x, roomId="abc", clientId="x1")
    join(service, y, roomId="abc", clientId="y1")
    x.pop()
    y.pop()

    service.on_message(x, "not json")
    assert x.pop() == []
    assert y.pop() == []
    assert x.state is ConnectionState.JOINED


def test_second_join_is_ignored(service, make_handle):
    x = make_handle("x")
    join(service, x, roomId="abc", clientId="x1")
    x.pop()

    join(service, x, roomId="elsewhere", clientId="x2")
    assert x.pop() == []
    assert (x.room_id, x.client_id) == ("abc", "x1")
    assert "elsewhere" not in service.registry


def test_host_disconnect_promotes_remaining_member(service, make_handle):
    x, y, z = make_handle("x"), make_handle("y"), make_handle("z")
    join(service, x, roomId="abc", clientId="x1")
    join(service, y, roomId="abc", clientId="y1")
    join(service, z, roomId="abc", clientId="z1")
    for handle in (x, y, z):
        handle.pop()

    service.on_close(x)

    assert x.state is ConnectionState.CLOSED
    assert x.pop() == []
    assert y.pop() == [{"type": "room", "peerCount": 2, "hostId": "y1"}]
    assert z.pop() == [{"type": "room", "peerCount": 2, "hostId": "y1"}]


def test_last_disconnect_deletes_room_and_sends_nothing(service, make_handle):
    x = make_handle("x")
    join(service, x, roomId="abc", clientId="x1")
    x.pop()

    service.on_close(x)
    assert "abc" not in service.registry
    assert x.pop() == []

    fresh = make_handle("fresh")
    join(service, fresh, roomId="abc", clientId="f1")
    assert fresh.pop()[0]["isHost"] is True


def test_close_before_join_is_noop(service, make_handle):
    x = make_handle("x")
    service.on_close(x)
    assert len(service.registry) == 0
    assert x.state is ConnectionState.CLOSED


def test_replaced_connection_close_keeps_replacement(service, make_handle):
    old, new, y = make_handle("old"), make_handle("new"), make_handle("y")
    join(service, old, roomId="abc", clientId="dup")
    join(service, y, roomId="abc", clientId="y1")
    join(service, new, roomId="abc", clientId="dup")
    for handle in (old, new, y):
        handle.pop()

    service.on_close(old)

    assert service.registry.describe("abc")["client_ids"] == ["dup", "y1"]
    assert y.pop() == []
    assert new.pop() == []


def test_peer_count_tracks_open_connections(service, make_handle):
    handles = [make_handle(str(i)) for i in range(5)]
    for i, handle in enumerate(handles):
        join(service, handle, roomId="abc", clientId=f"c{i}")
        assert handle.pop()[0]["peerCount"] == i + 1
    for handle in handles:
        handle.pop()

    service.on_close(handles[2])
    assert handles[0].pop() == [{"type": "room", "peerCount": 4, "hostId": "c0"}]
