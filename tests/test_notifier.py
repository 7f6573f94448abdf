import asyncio
import json

import httpx

from services.notifier import BestEffortNotifier


def notifier_for(handler):
    return BestEffortNotifier(transport=httpx.MockTransport(handler))


def test_posts_json_payload():
    captured = []

    def handler(request):
        captured.append(request)
        return httpx.Response(200)

    assert asyncio.run(notifier_for(handler).send("https://hooks.test/x", {"action": "ping"})) is True
    assert json.loads(captured[0].content) == {"action": "ping"}
    assert captured[0].method == "POST"


def test_error_status_is_swallowed():
    assert asyncio.run(notifier_for(lambda r: httpx.Response(500)).send("https://hooks.test/x", {})) is False


def test_transport_error_is_swallowed():
    def handler(request):
        raise httpx.ConnectTimeout("timed out")

    assert asyncio.run(notifier_for(handler).send("https://hooks.test/x", {})) is False


def test_missing_url_is_a_no_op():
    calls = []
    notifier = notifier_for(lambda r: calls.append(r) or httpx.Response(200))
    assert asyncio.run(notifier.send(None, {"action": "ping"})) is False
    assert calls == []
