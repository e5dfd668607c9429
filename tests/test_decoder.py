"""Tests for the exec record decoder."""

from datetime import datetime, timedelta

from execmon.decoder import RECORD_SIZE, decode_event

from conftest import encode_record


def test_record_size_matches_kernel_layout():
    """Test the record is pid + padding + 16-byte comm."""
    assert RECORD_SIZE == 24


def test_decode_valid_record():
    """Test a well-formed record decodes into a ProcessEvent."""
    event = decode_event(encode_record(1234, b"bash"))

    assert event is not None
    assert event.pid == 1234
    assert event.command_name == "bash"


def test_decode_full_length_name_without_nul():
    """Test a command name filling all 16 bytes is kept whole."""
    event = decode_event(encode_record(7, b"abcdefghijklmnop"))

    assert event is not None
    assert event.command_name == "abcdefghijklmnop"


def test_decode_stops_at_first_nul():
    """Test bytes after the first NUL are ignored."""
    raw = encode_record(7, b"ls\x00garbage")

    event = decode_event(raw)

    assert event is not None
    assert event.command_name == "ls"


def test_decode_large_pid_is_unsigned():
    """Test pids are read as unsigned 32-bit little endian."""
    event = decode_event(encode_record(0xFFFFFFFE, b"x"))

    assert event is not None
    assert event.pid == 0xFFFFFFFE


def test_decode_truncated_record_is_dropped():
    """Test a record shorter than the layout yields None."""
    assert decode_event(b"\x01\x00\x00\x00\x00\x00") is None
    assert decode_event(b"") is None
    assert decode_event(encode_record(1, b"sh")[:-1]) is None


def test_decode_ignores_trailing_bytes():
    """Test perf samples padded past the layout still decode."""
    event = decode_event(encode_record(99, b"cron") + b"\x00\x00\x00\x00")

    assert event is not None
    assert event.pid == 99
    assert event.command_name == "cron"


def test_decode_invalid_utf8_does_not_raise():
    """Test undecodable name bytes are replaced instead of failing."""
    event = decode_event(encode_record(5, b"\xff\xfeabc"))

    assert event is not None
    assert event.command_name.endswith("abc")
    assert "�" in event.command_name


def test_decode_uses_given_timestamp():
    """Test observed_at can be supplied by the caller."""
    when = datetime(2026, 5, 4, 3, 2, 1)

    event = decode_event(encode_record(1, b"init"), observed_at=when)

    assert event is not None
    assert event.observed_at == when


def test_decode_defaults_to_wall_clock():
    """Test observed_at defaults to the time of decoding."""
    before = datetime.now()
    event = decode_event(encode_record(1, b"init"))
    after = datetime.now()

    assert event is not None
    assert before - timedelta(seconds=1) <= event.observed_at <= after


def test_truncated_record_does_not_affect_next_record():
    """Test decoding is stateless across good and bad records."""
    records = [b"\x01\x02\x03", encode_record(10, b"good"), b"\x00" * 6, encode_record(11, b"next")]

    events = [event for event in map(decode_event, records) if event is not None]

    assert [(e.pid, e.command_name) for e in events] == [(10, "good"), (11, "next")]
