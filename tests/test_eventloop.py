import os

import pytest

from minnet.eventloop import MAX_CATEGORIES, Direction, EventLoop, Result
from minnet.file_descriptor import FileDescriptor


@pytest.fixture
def pipe():
    read_fd, write_fd = os.pipe()
    reader, writer = FileDescriptor(read_fd), FileDescriptor(write_fd)
    yield reader, writer
    for handle in (reader, writer):
        if not handle.closed():
            handle.close()


def test_empty_loop_exits():
    assert EventLoop().wait_next_event(0) is Result.EXIT


def test_plain_rule_runs_while_interested():
    loop = EventLoop()
    pending = [3]
    calls = []

    def callback():
        calls.append(pending[0])
        pending[0] -= 1

    loop.add_rule("work", callback, lambda: pending[0] > 0)
    assert loop.wait_next_event(0) is Result.SUCCESS
    assert calls == [3, 2, 1]
    assert loop.wait_next_event(0) is Result.EXIT


def test_only_one_plain_rule_served_per_call():
    loop = EventLoop()
    served = []
    pending = {"a": True, "b": True}

    def make(name):
        def callback():
            served.append(name)
            pending[name] = False

        return callback

    loop.add_rule("a", make("a"), lambda: pending["a"])
    loop.add_rule("b", make("b"), lambda: pending["b"])
    assert loop.wait_next_event(0) is Result.SUCCESS
    assert served == ["a"]
    assert loop.wait_next_event(0) is Result.SUCCESS
    assert served == ["a", "b"]


def test_plain_rule_busy_wait_detected():
    loop = EventLoop()
    calls = []
    loop.add_rule("spin", lambda: calls.append(1))
    with pytest.raises(RuntimeError, match='rule "spin" is still interested'):
        loop.wait_next_event(0)
    assert len(calls) == 128


def test_cancelled_plain_rule_never_runs():
    loop = EventLoop()
    calls = []
    handle = loop.add_rule("work", lambda: calls.append(1), lambda: not calls)
    handle.cancel()
    assert loop.wait_next_event(0) is Result.EXIT
    assert calls == []


def test_bad_category_id():
    loop = EventLoop()
    with pytest.raises(IndexError, match="bad category_id"):
        loop.add_rule(0, lambda: None)


def test_category_ids_are_sequential():
    loop = EventLoop()
    ids = [loop.add_category(f"c{n}") for n in range(4)]
    assert ids == list(range(4))


def test_maximum_categories():
    loop = EventLoop()
    for n in range(MAX_CATEGORIES):
        loop.add_category(f"c{n}")
    with pytest.raises(RuntimeError, match="maximum categories reached"):
        loop.add_category("one too many")


def test_fd_rule_reads_ready_data(pipe):
    reader, writer = pipe
    loop = EventLoop()
    received = []
    loop.add_fd_rule("read", reader, Direction.IN, lambda: received.append(reader.read()))
    writer.write(b"hello")
    assert loop.wait_next_event(100) is Result.SUCCESS
    assert received == [b"hello"]


def test_fd_rule_times_out(pipe):
    reader, _writer = pipe
    loop = EventLoop()
    received = []
    loop.add_fd_rule("read", reader, Direction.IN, lambda: received.append(reader.read()))
    assert loop.wait_next_event(0) is Result.TIMEOUT
    assert received == []


def test_fd_rule_busy_wait_detected(pipe):
    reader, writer = pipe
    loop = EventLoop()
    loop.add_fd_rule("lazy", reader, Direction.IN, lambda: None)
    writer.write(b"x")
    with pytest.raises(RuntimeError, match='rule "lazy" did not read/write fd'):
        loop.wait_next_event(100)


def test_uninterested_fd_rule_means_exit(pipe):
    reader, writer = pipe
    loop = EventLoop()
    loop.add_fd_rule("read", reader, Direction.IN, lambda: reader.read(), lambda: False)
    writer.write(b"x")
    assert loop.wait_next_event(0) is Result.EXIT


def test_cancel_handle_on_fd_rule_skips_cancel_callback(pipe):
    reader, writer = pipe
    loop = EventLoop()
    cancelled = []
    handle = loop.add_fd_rule(
        "read", reader, Direction.IN, lambda: reader.read(), cancel=lambda: cancelled.append(True)
    )
    writer.write(b"x")
    handle.cancel()
    assert loop.wait_next_event(0) is Result.EXIT
    assert cancelled == []


def test_write_rule_on_broken_pipe_reports_error(pipe):
    reader, writer = pipe
    loop = EventLoop()
    events = []
    loop.add_fd_rule(
        "write",
        writer,
        Direction.OUT,
        lambda: events.append("callback"),
        cancel=lambda: events.append("cancel"),
        error=lambda: events.append("error"),
    )
    reader.close()
    assert loop.wait_next_event(100) is Result.SUCCESS
    assert events == ["error", "cancel"]
    assert loop.wait_next_event(0) is Result.EXIT


def test_write_rule_counts_writes(pipe):
    reader, writer = pipe
    loop = EventLoop()
    done = []

    def callback():
        writer.write(b"data")
        done.append(True)

    loop.add_fd_rule("write", writer, Direction.OUT, callback, lambda: not done)
    assert loop.wait_next_event(100) is Result.SUCCESS
    assert writer.write_count() == 1
    assert reader.read() == b"data"
    assert loop.wait_next_event(0) is Result.EXIT