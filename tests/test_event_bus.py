from app.core.log import REDACTED, redact
from app.events.bus import EventBus


async def test_emit_does_not_wait_and_isolates_failures():
    bus = EventBus()
    received = []

    async def broken(payload):
        raise RuntimeError("handler exploded")

    async def healthy(payload):
        received.append(payload["n"])

    bus.on("thing.happened", broken)
    bus.on("thing.happened", healthy)

    tasks = bus.emit("thing.happened", {"n": 1})
    assert len(tasks) == 2
    assert received == []

    await bus.drain()
    assert received == [1]


async def test_emit_without_listeners_is_a_no_op():
    bus = EventBus()

    assert bus.emit("nobody.listens", {}) == []


async def test_off_removes_handler():
    bus = EventBus()

    async def handler(payload):
        pass

    bus.on("x", handler)
    bus.on("x", handler)
    assert bus.listener_count("x") == 2

    bus.off("x", handler)
    assert bus.listener_count("x") == 1


def test_redact_walks_nested_payloads():
    payload = {
        "email": "a@example.com",
        "password": "hunter2",
        "nested": [{"refresh_token": "abc"}, {"Authorization": "Bearer x"}],
    }

    cleaned = redact(payload)

    assert cleaned["email"] == "a@example.com"
    assert cleaned["password"] == REDACTED
    assert cleaned["nested"][0]["refresh_token"] == REDACTED
    assert cleaned["nested"][1]["Authorization"] == REDACTED
    assert payload["password"] == "hunter2"
