import random

import pytest

from minnowstack.byte_stream import ByteStream, read
from minnowstack.messages import TCPSenderMessage
from minnowstack.reassembler import Reassembler
from minnowstack.tcp_receiver import TCPReceiver
from minnowstack.wrapping_integers import Wrap32

ISNS = [0, 384678, 2**32 - 3, 3_000_000_000]


def seg(seqno, data=b"", syn=False, fin=False, rst=False):
    return TCPSenderMessage(seqno=Wrap32(seqno), syn=syn, payload=data, fin=fin, rst=rst)


def make_receiver(capacity):
    return TCPReceiver(Reassembler(ByteStream(capacity)))


def connect(capacity, isn, data=b"", fin=False):
    rx = make_receiver(capacity)
    rx.receive(seg(isn, data, syn=True, fin=fin))
    return rx


def read_all(rx):
    return read(rx.stream, rx.stream.bytes_buffered())


def check(rx, isn=0, **expected):
    """Compare the named parts of the receiver's state; ``ack`` is an offset from ``isn``."""
    msg = rx.send()
    state = {
        "ackno": msg.ackno,
        "window": msg.window_size,
        "rst": msg.rst,
        "pushed": rx.stream.bytes_pushed(),
        "pending": rx.reassembler.count_bytes_pending(),
        "closed": rx.stream.is_closed(),
        "finished": rx.stream.is_finished(),
    }
    if "ack" in expected:
        offset = expected.pop("ack")
        expected["ackno"] = None if offset is None else Wrap32(isn + offset)
    assert {key: state[key] for key in expected} == expected


def block(i, size):
    return bytes(ord("a") + (i + j) % 26 for j in range(size))


def random_sizes(seed, count):
    rng = random.Random(seed)
    return [rng.randint(1, 10) for _ in range(count)]


@pytest.mark.parametrize("isn", ISNS)
def test_segment_before_syn(isn):
    rx = make_receiver(4000)
    check(rx, ack=None)
    rx.receive(seg(isn + 1, b"hello"))
    check(rx, ack=None, pending=0, pushed=0)
    assert read_all(rx) == b""
    rx.receive(seg(isn, syn=True))
    check(rx, isn, ack=1, closed=False)


@pytest.mark.parametrize("isn", ISNS)
@pytest.mark.parametrize(
    "data, fin, ack",
    [(b"Hello, CS144!", False, 14), (b"Hello and goodbye, CS144!", True, 27)],
    ids=["syn_data", "syn_data_fin"],
)
def test_segment_with_syn_and_data(isn, data, fin, ack):
    rx = connect(4000, isn, data, fin=fin)
    check(rx, isn, ack=ack, pending=0, closed=fin)
    assert read_all(rx) == data
    check(rx, finished=fin)


@pytest.mark.parametrize("isn", ISNS)
def test_empty_segment(isn):
    rx = connect(4000, isn)
    check(rx, isn, ack=1, pending=0)
    for offset in (1, 5):
        rx.receive(seg(isn + offset))
        check(rx, pending=0, pushed=0, closed=False)


@pytest.mark.parametrize("isn", ISNS)
def test_segment_with_null_byte(isn):
    text = b"Here's a null byte:\x00and it's gone."
    rx = connect(4000, isn)
    check(rx, pending=0, pushed=0)
    rx.receive(seg(isn + 1, text))
    assert read_all(rx) == text
    check(rx, isn, ack=35, closed=False)


@pytest.mark.parametrize("isn", ISNS)
def test_segment_with_data_and_fin(isn):
    rx = connect(4000, isn)
    rx.receive(seg(isn + 1, b"Goodbye, CS144!", fin=True))
    check(rx, closed=True)
    assert read_all(rx) == b"Goodbye, CS144!"
    check(rx, isn, ack=17, finished=True)


@pytest.mark.parametrize("isn", ISNS)
def test_segment_with_fin_that_cannot_be_assembled_yet(isn):
    rx = connect(4000, isn)
    rx.receive(seg(isn + 2, b"oodbye, CS144!", fin=True))
    assert read_all(rx) == b""
    check(rx, isn, ack=1, closed=False)
    rx.receive(seg(isn + 1, b"G"))
    check(rx, closed=True)
    assert read_all(rx) == b"Goodbye, CS144!"
    check(rx, isn, ack=17, finished=True)


def test_buffer_full_keep_pushing():
    isn = 23452
    rx = connect(10, isn)
    check(rx, isn, ack=1, window=10)
    steps = [
        (1, b"abcde", 6, 5, 5),
        (6, b"fghij", 11, 0, 10),
        (11, b"klmno", 11, 0, 10),
        (16, b"pqrst", 11, 0, 10),
    ]
    for offset, data, ack, win, pushed in steps:
        rx.receive(seg(isn + offset, data))
        check(rx, isn, ack=ack, window=win, pushed=pushed)
    assert read_all(rx) == b"abcdefghij"


def test_missing_first_byte_in_first_segment():
    isn = 12345
    rx = connect(10, isn)
    for offset, data in [(1, b""), (2, b"a"), (4, b"b"), (6, b"c"), (8, b"d")]:
        rx.receive(seg(isn + offset, data))
    check(rx, isn, pushed=0, window=10, ack=1)


def test_pushing_bytes_in_reverse_order():
    cap, isn = 10, 123456
    data = b"jihgfedcba"
    rx = connect(cap, isn)
    for i in range(cap - 1, 0, -1):
        rx.receive(seg(isn + i + 1, data[cap - i - 1 : cap - i]))
        check(rx, isn, ack=1, pushed=0, window=10)
    rx.receive(seg(isn + 1, data[cap - 1 : cap]))
    check(rx, isn, pushed=len(data), window=0, ack=len(data) + 1)
    assert read_all(rx) == b"abcdefghij"


@pytest.mark.parametrize("set_error", [True, False])
def test_stream_error_sets_rst_flag(set_error):
    rx = make_receiver(10)
    if set_error:
        rx.stream.set_error()
    check(rx, rst=set_error)


def test_rst_flag_sets_stream_error():
    rx = make_receiver(10)
    rx.receive(seg(987654321, rst=True))
    assert rx.stream.has_error() is True


@pytest.mark.parametrize(
    "capacity, isn, sizes, read_each",
    [
        (4000, 0, [1000] * 67, True),
        (4000, 893472, random_sizes(4, 10000), True),
        (1000, 238, random_sizes(5, 100), False),
    ],
    ids=["wrap_beyond_2_16", "transmit_4", "transmit_5"],
)
def test_many_arrivals(capacity, isn, sizes, read_each):
    rx = connect(capacity, isn)
    bytes_sent = 0
    everything = b""
    for i, size in enumerate(sizes):
        data = block(i, size)
        everything += data
        check(rx, isn, ack=bytes_sent + 1, pushed=bytes_sent)
        rx.receive(seg(isn + bytes_sent + 1, data))
        bytes_sent += size
        if read_each:
            assert read_all(rx) == data
    if not read_each:
        assert read_all(rx) == everything


def test_retransmission_of_fin():
    isn = 23452
    rx = connect(4, isn)
    rx.receive(seg(isn + 1, b"a"))
    for _ in range(2):
        rx.receive(seg(isn + 2, fin=True))
        check(rx, isn, ack=3)


@pytest.mark.parametrize("read_between", [True, False], ids=["transmit_2", "transmit_3"])
@pytest.mark.parametrize("isn", [0, 5, 384678])
def test_transmit_two_segments(isn, read_between):
    rx = connect(4000, isn)
    collected = b""
    for offset, data, ack, pushed in [(1, b"abcd", 5, 4), (5, b"efgh", 9, 8)]:
        rx.receive(seg(isn + offset, data))
        check(rx, isn, ack=ack, pending=0, pushed=pushed)
        if read_between:
            assert read_all(rx) == data
        collected += data
    if not read_between:
        assert read_all(rx) == collected


def test_window_size_decreases_appropriately():
    cap, isn = 4000, 23452
    rx = connect(cap, isn)
    check(rx, isn, ack=1, window=cap)
    for offset, data, ack, win in [(1, b"abcd", 5, cap - 4), (9, b"ijkl", 5, cap - 4), (5, b"efgh", 13, cap - 12)]:
        rx.receive(seg(isn + offset, data))
        check(rx, isn, ack=ack, window=win)


def test_window_size_expands_after_pop():
    cap, isn = 4000, 23452
    rx = connect(cap, isn)
    check(rx, isn, ack=1, window=cap)
    rx.receive(seg(isn + 1, b"abcd"))
    check(rx, isn, ack=5, window=cap - 4)
    assert read_all(rx) == b"abcd"
    check(rx, isn, ack=5, window=cap)


def test_arriving_segment_with_high_seqno():
    isn = 23452
    rx = connect(2, isn)
    rx.receive(seg(isn + 2, b"bc"))
    check(rx, pushed=0)
    rx.receive(seg(isn + 1, b"a"))
    check(rx, isn, ack=3, window=0, pushed=2)
    assert read_all(rx) == b"ab"
    check(rx, window=2)


def test_arriving_segment_with_low_seqno():
    cap, isn = 4, 294058
    rx = connect(cap, isn)
    rx.receive(seg(isn + 1, b"ab"))
    check(rx, pushed=2, window=cap - 2)
    rx.receive(seg(isn + 1, b"abc"))
    check(rx, pushed=3, window=cap - 3)
    assert read_all(rx) == b"abc"


@pytest.mark.parametrize("second", [b"cdef", b"cd"], ids=["overflowing", "matching"])
def test_segment_at_window_edge(second):
    isn = 23452
    rx = connect(4, isn)
    rx.receive(seg(isn + 1, b"ab"))
    rx.receive(seg(isn + 3, second))
    assert read_all(rx) == b"abcd"


def test_byte_with_invalid_stream_index_is_ignored():
    isn = 23452
    rx = connect(4, isn)
    rx.receive(seg(isn, b"a"))
    check(rx, isn, pushed=0, ack=1, pending=0)