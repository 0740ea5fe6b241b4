"""
Shared fixtures for the test suite.

Device endpoints are replaced by in-process aiohttp servers that record
every request they receive, so tests can assert on exactly which outbound
calls the coordinator made.
"""

import copy

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from medialib.inventory import Inventory

# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

INVENTORY_DATA = {
    "tvs": [
        {"tvId": "tv_living_room", "displayName": "Living Room TV",
         "endpoint": "http://tv.invalid", "playerType": "browser"},
        {"tvId": "tv_bedroom", "displayName": "Bedroom TV", "endpoint": "http://tv2.invalid"},
    ],
    "audioZones": [
        {"audioZoneId": "zone_living_room", "displayName": "Living Room Speakers",
         "outputs": ["wired", "bluetooth"], "endpoint": "http://zone.invalid"},
        {"audioZoneId": "zone_kitchen", "displayName": "Kitchen",
         "outputs": ["wired"], "endpoint": "http://zone2.invalid"},
    ],
    "bluetoothDevices": [
        {"bluetoothDeviceId": "bt_headphones", "displayName": "Wireless Headphones",
         "macAddress": "AA:BB:CC:DD:EE:FF", "pairedWithZoneId": "zone_living_room"},
    ],
}

# Nothing listens on port 1; connecting fails immediately.
UNREACHABLE_ENDPOINT = "http://127.0.0.1:1"


def inventory_data(tv_endpoint: str | None = None, zone_endpoint: str | None = None) -> dict:
    """Fresh copy of INVENTORY_DATA with the living-room endpoints replaced."""
    data = copy.deepcopy(INVENTORY_DATA)
    if tv_endpoint:
        data["tvs"][0]["endpoint"] = tv_endpoint
    if zone_endpoint:
        data["audioZones"][0]["endpoint"] = zone_endpoint
    return data


# ---------------------------------------------------------------------------
# Recording fake device
# ---------------------------------------------------------------------------


class FakeDevice:
    """Accepts any POST, records (path, body), replies with ``status``."""

    def __init__(self, status: int = 200):
        self.calls: list[tuple[str, dict]] = []
        self.status = status
        self.server: TestServer | None = None

    def _app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/{tail:.*}", self._handle)
        return app

    async def _handle(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.calls.append((request.path, body))
        return web.json_response({"accepted": self.status < 300}, status=self.status)

    async def start(self) -> "FakeDevice":
        self.server = TestServer(self._app())
        await self.server.start_server()
        return self

    async def close(self):
        if self.server:
            await self.server.close()

    @property
    def url(self) -> str:
        return str(self.server.make_url("")).rstrip("/")

    def paths(self) -> list[str]:
        return [path for path, _ in self.calls]


@pytest_asyncio.fixture
async def fake_tv():
    device = await FakeDevice().start()
    yield device
    await device.close()


@pytest_asyncio.fixture
async def fake_zone():
    device = await FakeDevice().start()
    yield device
    await device.close()


@pytest.fixture
def inventory(fake_tv: FakeDevice, fake_zone: FakeDevice) -> Inventory:
    return Inventory.from_dict(inventory_data(fake_tv.url, fake_zone.url))


@pytest_asyncio.fixture
async def client(inventory: Inventory):
    """TestClient for a coordinator wired to the fake TV and zone."""
    import coordinator

    app = coordinator.create_app(inventory)
    test_client = TestClient(TestServer(app))
    await test_client.start_server()
    yield test_client
    await test_client.close()


@pytest.fixture
def store(client: TestClient):
    import coordinator

    return client.server.app[coordinator.COORDINATOR].store
