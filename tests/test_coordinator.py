"""End-to-end tests for the coordinator HTTP API against recording fake devices."""

import pytest
from aiohttp.test_utils import TestClient, TestServer

import coordinator
from medialib.inventory import Inventory
from tests.conftest import UNREACHABLE_ENDPOINT, inventory_data


async def _command(client: TestClient, payload) -> tuple[int, dict]:
    resp = await client.post("/command", json=payload)
    return resp.status, await resp.json()


async def _play(client: TestClient) -> dict:
    status, body = await _command(
        client, {"action": "PLAY", "targetTvId": "tv_living_room", "contentRef": "demo-video"})
    assert status == 200
    return body["session"]


class TestBasics:
    @pytest.mark.asyncio
    async def test_health(self, client) -> None:
        resp = await client.get("/health")
        assert resp.status == 200
        assert await resp.json() == {"status": "ok"}

    @pytest.mark.asyncio
    async def test_invalid_json(self, client, store) -> None:
        resp = await client.post("/command", data="{not json",
                                 headers={"Content-Type": "application/json"})
        assert resp.status == 400
        assert await resp.json() == {"error": "invalid json"}
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_cors_headers(self, client) -> None:
        resp = await client.get("/health")
        assert resp.headers["Access-Control-Allow-Origin"] == "*"

    @pytest.mark.asyncio
    async def test_list_targets(self, client, fake_tv, fake_zone) -> None:
        status, body = await _command(client, {"action": "LIST_TARGETS"})
        assert status == 200
        assert [tv["tvId"] for tv in body["tvs"]] == ["tv_living_room", "tv_bedroom"]
        assert [z["audioZoneId"] for z in body["audioZones"]] == ["zone_living_room", "zone_kitchen"]
        assert body["bluetoothDevices"][0]["bluetoothDeviceId"] == "bt_headphones"
        assert fake_tv.calls == [] and fake_zone.calls == []


class TestValidation:
    @pytest.mark.asyncio
    async def test_schema_failure_lists_every_field(self, client, store, fake_zone) -> None:
        status, body = await _command(
            client, {"action": "SET_VOLUME", "volumeLevel": 150, "audioOutput": "hdmi", "foo": 1})
        assert status == 400
        assert body["error"] == "Invalid command"
        assert {d["field"] for d in body["details"]} == {"volumeLevel", "audioOutput", "foo"}
        assert len(store) == 0
        assert fake_zone.calls == []

    @pytest.mark.asyncio
    async def test_volume_out_of_range_never_reaches_zone(self, client, fake_zone) -> None:
        status, _ = await _command(
            client, {"action": "SET_VOLUME", "audioZoneId": "zone_living_room", "volumeLevel": 150})
        assert status == 400
        assert fake_zone.calls == []

    @pytest.mark.asyncio
    async def test_unknown_tv(self, client, store, fake_tv) -> None:
        status, body = await _command(
            client, {"action": "PLAY", "targetTvId": "tv_garage", "contentRef": "demo-video"})
        assert status == 400
        assert body == {"error": "Unknown targetTvId: tv_garage"}
        assert len(store) == 0
        assert fake_tv.calls == []

    @pytest.mark.asyncio
    async def test_missing_play_fields(self, client, store) -> None:
        status, body = await _command(client, {"action": "PLAY", "targetTvId": "tv_living_room"})
        assert status == 400
        assert "contentRef" in body["error"]
        assert len(store) == 0


class TestPlayAndTransitions:
    @pytest.mark.asyncio
    async def test_play(self, client, store, fake_tv) -> None:
        session = await _play(client)
        assert session["state"] == "playing"
        assert session["audioRoute"] == "tv"
        assert session["targetTvId"] == "tv_living_room"
        assert session["sessionId"].startswith("sess_")
        assert fake_tv.calls == [
            ("/play", {"sessionId": session["sessionId"], "contentRef": "demo-video"}),
        ]
        assert store.get(session["sessionId"]) is not None

    @pytest.mark.asyncio
    async def test_each_play_gets_new_session(self, client, store) -> None:
        first = await _play(client)
        second = await _play(client)
        assert first["sessionId"] != second["sessionId"]
        assert len(store) == 2

    @pytest.mark.asyncio
    async def test_stop(self, client, fake_tv) -> None:
        session = await _play(client)
        status, body = await _command(client, {"action": "STOP", "sessionId": session["sessionId"]})
        assert status == 200
        assert body["accepted"] is True
        assert body["session"]["state"] == "stopped"
        assert body["session"]["updatedAtEpochMs"] > session["updatedAtEpochMs"]
        assert fake_tv.paths() == ["/play"]

    @pytest.mark.asyncio
    async def test_stop_unknown_session(self, client) -> None:
        status, body = await _command(client, {"action": "STOP", "sessionId": "sess_missing"})
        assert status == 404
        assert body == {"error": "Session not found"}

    @pytest.mark.asyncio
    async def test_pause_twice(self, client) -> None:
        session_id = (await _play(client))["sessionId"]
        for _ in range(2):
            status, body = await _command(client, {"action": "PAUSE", "sessionId": session_id})
            assert status == 200
            assert body["session"]["state"] == "paused"

    @pytest.mark.asyncio
    async def test_seek(self, client) -> None:
        session_id = (await _play(client))["sessionId"]
        status, body = await _command(
            client, {"action": "SEEK", "sessionId": session_id, "seekSeconds": 42.5})
        assert status == 200
        assert body["session"]["lastSeekSeconds"] == 42.5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("token", ["Infinity", "-Infinity", "NaN"])
    async def test_seek_non_finite_rejected(self, client, store, token) -> None:
        session_id = (await _play(client))["sessionId"]
        raw = f'{{"action": "SEEK", "sessionId": "{session_id}", "seekSeconds": {token}}}'
        resp = await client.post("/command", data=raw,
                                 headers={"Content-Type": "application/json"})
        assert resp.status == 400
        body = await resp.json()
        assert [d["field"] for d in body["details"]] == ["seekSeconds"]
        assert store.get(session_id).last_seek_seconds is None

        resp = await client.get(f"/sessions/{session_id}")
        assert "lastSeekSeconds" not in (await resp.json())["session"]


class TestAudio:
    @pytest.mark.asyncio
    async def test_move_audio_defaults_to_wired(self, client, fake_zone) -> None:
        session_id = (await _play(client))["sessionId"]
        status, body = await _command(
            client, {"action": "MOVE_AUDIO", "sessionId": session_id, "audioZoneId": "zone_living_room"})
        assert status == 200
        assert body["session"]["audioRoute"] == "zone"
        assert body["session"]["audioZoneId"] == "zone_living_room"
        assert body["session"]["audioOutput"] == "wired"
        assert fake_zone.calls == [
            ("/attach-session", {"sessionId": session_id, "audioOutput": "wired"}),
        ]

    @pytest.mark.asyncio
    async def test_move_audio_unknown_session(self, client, fake_zone) -> None:
        status, _ = await _command(
            client, {"action": "MOVE_AUDIO", "sessionId": "sess_missing", "audioZoneId": "zone_living_room"})
        assert status == 404
        assert fake_zone.paths() == ["/attach-session"]

    @pytest.mark.asyncio
    async def test_set_volume(self, client, store, fake_zone) -> None:
        status, body = await _command(
            client, {"action": "SET_VOLUME", "audioZoneId": "zone_living_room", "volumeLevel": 30})
        assert status == 200
        assert body == {"accepted": True}
        assert fake_zone.calls == [("/set-volume", {"volumeLevel": 30})]
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_non_2xx_device_reply_still_accepted(self, client, fake_zone) -> None:
        fake_zone.status = 503
        status, body = await _command(
            client, {"action": "SET_VOLUME", "audioZoneId": "zone_living_room", "volumeLevel": 30})
        assert status == 200
        assert body == {"accepted": True}

    @pytest.mark.asyncio
    async def test_select_bluetooth(self, client) -> None:
        status, body = await _command(client, {"action": "SELECT_BLUETOOTH_DEVICE",
                                               "audioZoneId": "zone_living_room",
                                               "bluetoothDeviceId": "bt_headphones"})
        assert status == 200
        assert body["selected"] == {"audioZoneId": "zone_living_room",
                                    "bluetoothDeviceId": "bt_headphones"}

    @pytest.mark.asyncio
    async def test_select_bluetooth_wrong_zone(self, client) -> None:
        status, body = await _command(client, {"action": "SELECT_BLUETOOTH_DEVICE",
                                               "audioZoneId": "zone_kitchen",
                                               "bluetoothDeviceId": "bt_headphones"})
        assert status == 400
        assert "not paired" in body["error"]


class TestUnreachableDevice:
    @pytest.mark.asyncio
    async def test_play_failure_keeps_session(self) -> None:
        app = coordinator.create_app(Inventory.from_dict(inventory_data(UNREACHABLE_ENDPOINT)))
        async with TestClient(TestServer(app)) as client:
            status, body = await _command(
                client, {"action": "PLAY", "targetTvId": "tv_living_room", "contentRef": "demo-video"})
            assert status == 500
            assert "error" in body
            store = app[coordinator.COORDINATOR].store
            assert len(store) == 1
            assert store.all()[0].state == "playing"


class TestReadEndpoints:
    @pytest.mark.asyncio
    async def test_sessions_listing(self, client) -> None:
        first = await _play(client)
        second = await _play(client)
        resp = await client.get("/sessions")
        body = await resp.json()
        assert [s["sessionId"] for s in body["sessions"]] == [first["sessionId"], second["sessionId"]]

    @pytest.mark.asyncio
    async def test_session_by_id(self, client) -> None:
        session = await _play(client)
        resp = await client.get(f"/sessions/{session['sessionId']}")
        assert resp.status == 200
        assert (await resp.json())["session"] == session

        resp = await client.get("/sessions/sess_missing")
        assert resp.status == 404

    @pytest.mark.asyncio
    async def test_status(self, client) -> None:
        session_id = (await _play(client))["sessionId"]
        await _command(client, {"action": "PAUSE", "sessionId": session_id})
        resp = await client.get("/status")
        body = await resp.json()
        assert body["inventory"] == {"tvs": 2, "audioZones": 2, "bluetoothDevices": 1}
        assert body["sessions"]["total"] == 1
        assert body["sessions"]["byState"]["paused"] == 1
