import asyncio

import httpx

from doctailor.client import TailorClient
from doctailor.poller import (
    COMPLETION_DELAY, MAX_RETRIES, POLL_INTERVAL, PROCESSING_FAILED, STATUS_CHECK_FAILED, StatusPoller,
)


def scripted_handler(responses):
    """Serve queued (status_code, json) pairs; the last one repeats."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        status_code, body = responses[min(len(calls) - 1, len(responses) - 1)]
        if status_code == 0:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(status_code, json=body)

    return handler, calls


def processing(progress):
    return 200, {"documentId": 1, "status": "processing", "progress": progress, "errorMessage": None}


async def run_poller(responses, settle=0.05, **kwargs):
    handler, calls = scripted_handler(responses)
    events = []
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test") as http:
        poller = StatusPoller(
            TailorClient(http),
            1,
            on_complete=lambda: events.append(("complete",)),
            on_error=lambda msg: events.append(("error", msg)),
            on_update=lambda progress, status: events.append(("update", progress, status)),
            interval=0.01,
            completion_delay=0.01,
            **kwargs,
        )
        poller.start()
        await poller.wait()
        await asyncio.sleep(settle)
    return poller, events, calls


def test_polls_until_completed():
    responses = [
        processing(40),
        processing(40),
        processing(40),
        (200, {"documentId": 1, "status": "completed", "progress": 100, "errorMessage": None}),
    ]
    poller, events, calls = asyncio.run(run_poller(responses))

    assert calls == ["/api/documents/1/status"] * 4
    assert events == [
        ("update", 40, "processing"),
        ("update", 40, "processing"),
        ("update", 40, "processing"),
        ("update", 100, "completed"),
        ("complete",),
    ]
    assert poller.progress == 100
    assert poller.status == "completed"
    assert not poller.running


def test_gives_up_after_three_failed_fetches():
    poller, events, calls = asyncio.run(run_poller([(0, None)]))

    assert len(calls) == 3
    assert events == [("error", STATUS_CHECK_FAILED)]
    assert poller.status == "failed"
    assert poller.error == STATUS_CHECK_FAILED


def test_server_errors_count_as_failed_fetches():
    poller, events, calls = asyncio.run(run_poller([(500, {"detail": "boom"})]))

    assert len(calls) == 3
    assert events == [("error", STATUS_CHECK_FAILED)]


def test_transient_failure_is_retried():
    responses = [
        (0, None),
        processing(50),
        (200, {"documentId": 1, "status": "completed", "progress": 100, "errorMessage": None}),
    ]
    poller, events, calls = asyncio.run(run_poller(responses))

    assert len(calls) == 3
    assert events[-1] == ("complete",)
    assert poller.retries == 0


def test_failed_status_reports_server_message():
    responses = [
        processing(30),
        (200, {"documentId": 1, "status": "failed", "progress": 50, "errorMessage": "No API key configured"}),
    ]
    poller, events, calls = asyncio.run(run_poller(responses))

    assert events[-1] == ("error", "No API key configured")
    assert poller.status == "failed"
    assert poller.error == "No API key configured"
    assert ("complete",) not in events


def test_failed_status_without_message_uses_generic_text():
    responses = [(200, {"documentId": 1, "status": "failed", "progress": 10, "errorMessage": None})]
    poller, events, _ = asyncio.run(run_poller(responses))

    assert events[-1] == ("error", PROCESSING_FAILED)


def test_error_message_stops_polling_while_processing():
    responses = [(200, {"documentId": 1, "status": "processing", "progress": 30, "errorMessage": "quota exceeded"})]
    poller, events, calls = asyncio.run(run_poller(responses))

    assert len(calls) == 1
    assert events == [("update", 30, "processing"), ("error", "quota exceeded")]


def test_stop_cancels_polling_and_pending_completion():
    async def scenario():
        completed = []
        responses = [(200, {"documentId": 1, "status": "completed", "progress": 100, "errorMessage": None})]
        handler, calls = scripted_handler(responses)
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test") as http:
            poller = StatusPoller(TailorClient(http), 1, on_complete=lambda: completed.append(True),
                                  interval=0.01, completion_delay=0.2)
            poller.start()
            await poller.wait()
            poller.stop()
            await asyncio.sleep(0.3)
        return completed

    assert asyncio.run(scenario()) == []


def test_stop_ends_an_open_ended_run():
    async def scenario():
        handler, calls = scripted_handler([processing(10)])
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://test") as http:
            poller = StatusPoller(TailorClient(http), 1, on_complete=lambda: None, interval=0.01)
            poller.start()
            await asyncio.sleep(0.05)
            poller.stop()
            await poller.wait()
            seen = len(calls)
            await asyncio.sleep(0.05)
        return poller, seen, len(calls)

    poller, seen, after = asyncio.run(scenario())
    assert seen >= 1
    assert after == seen
    assert not poller.running


def test_default_timing():
    assert POLL_INTERVAL == 2.0
    assert COMPLETION_DELAY == 1.0
    assert MAX_RETRIES == 3

    poller = StatusPoller(TailorClient(httpx.AsyncClient()), 1, on_complete=lambda: None)
    assert (poller.interval, poller.completion_delay, poller.max_retries) == (2.0, 1.0, 3)


def test_empty_error_message_still_stops_polling():
    responses = [(200, {"documentId": 1, "status": "processing", "progress": 30, "errorMessage": ""})]
    poller, events, calls = asyncio.run(run_poller(responses))

    assert len(calls) == 1
    assert events == [("update", 30, "processing"), ("error", "")]
    assert not poller.running
