"""SSE framing: verifies the encoder and the incremental decoder agree.

Invariants:
    - format_event() emits event + JSON data lines and a blank terminator
    - The decoder yields nothing until the blank line, then exactly one event
    - Comment (keep-alive) lines never produce events
"""

from calcsync.core.sse import KEEPALIVE, SSEDecoder, format_event


def _decode(text: str):
    decoder = SSEDecoder()
    events = []
    for line in text.split("\n"):
        event = decoder.feed(line)
        if event is not None:
            events.append(event)
    return events


def test_format_event_wire_shape():
    assert format_event("RecordDeactivated", {"id": "x"}) == (
        'event: RecordDeactivated\ndata: {"id": "x"}\n\n'
    )


def test_decoder_reads_encoded_event():
    events = _decode(format_event("RecordCreated", {"id": "1", "result": 15.0}))
    assert len(events) == 1
    assert events[0].event == "RecordCreated"
    assert events[0].data == {"id": "1", "result": 15.0}


def test_keepalive_produces_no_event():
    assert _decode(KEEPALIVE) == []


def test_keepalive_between_events_is_ignored():
    stream = (
        format_event("RecordCreated", {"id": "1"})
        + KEEPALIVE
        + format_event("RecordDeactivated", {"id": "1"})
    )
    assert [e.event for e in _decode(stream)] == ["RecordCreated", "RecordDeactivated"]


def test_event_without_name_defaults_to_message():
    events = _decode("data: hello\n\n")
    assert events[0].event == "message"
    assert events[0].data == "hello"


def test_multiline_data_is_joined():
    events = _decode("event: x\ndata: [1,\ndata: 2]\n\n")
    assert events[0].data == [1, 2]


def test_incomplete_event_is_held_back():
    decoder = SSEDecoder()
    assert decoder.feed("event: RecordCreated") is None
    assert decoder.feed('data: {"id": "1"}') is None
    event = decoder.feed("")
    assert event is not None and event.data == {"id": "1"}


def test_event_name_resets_after_dispatch():
    events = _decode("event: A\ndata: 1\n\ndata: 2\n\n")
    assert [e.event for e in events] == ["A", "message"]
