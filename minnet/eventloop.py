"""A poll-based event loop that runs callbacks for ready file descriptors."""

from __future__ import annotations

import errno
import os
import select
import socket
import sys
import weakref
from collections.abc import Callable
from enum import Enum, IntEnum, auto
from typing import Optional, Union

from minnet.errors import UnixError
from minnet.file_descriptor import FileDescriptor

MAX_CATEGORIES = 64
_MAX_ITERATIONS = 128
_POLL_ERROR = select.POLLERR | select.POLLNVAL
_ALWAYS_REPORTED = select.POLLERR | select.POLLHUP | select.POLLNVAL

Callback = Callable[[], None]
Interest = Callable[[], bool]


def _always() -> bool:
    return True


def _nothing() -> None:
    return None


class Direction(IntEnum):
    """Whether a rule waits for its fd to become readable or writable."""

    IN = select.POLLIN
    OUT = select.POLLOUT


class Result(Enum):
    """The outcome of one call to EventLoop.wait_next_event."""

    SUCCESS = auto()
    TIMEOUT = auto()
    EXIT = auto()


class _BasicRule:
    def __init__(self, category_id: int, interest: Interest, callback: Callback) -> None:
        self.category_id = category_id
        self.interest = interest
        self.callback = callback
        self.cancel_requested = False


class _FDRule(_BasicRule):
    def __init__(
        self,
        category_id: int,
        interest: Interest,
        callback: Callback,
        fd: FileDescriptor,
        direction: Direction,
        on_cancel: Callback,
        on_error: Callback,
    ) -> None:
        super().__init__(category_id, interest, callback)
        self.fd = fd
        self.direction = direction
        self.on_cancel = on_cancel
        self.on_error = on_error

    def service_count(self) -> int:
        return self.fd.read_count() if self.direction is Direction.IN else self.fd.write_count()


class RuleHandle:
    """A handle that can cancel a rule while the loop still holds it."""

    def __init__(self, rule: _BasicRule) -> None:
        self._rule = weakref.ref(rule)

    def cancel(self) -> None:
        rule = self._rule()
        if rule is not None:
            rule.cancel_requested = True


class EventLoop:
    """Waits for events on file descriptors and runs the matching callbacks."""

    def __init__(self) -> None:
        self._categories: list[str] = []
        self._fd_rules: list[_FDRule] = []
        self._rules: list[_BasicRule] = []

    def add_category(self, name: str) -> int:
        """Register a category name and return its id."""
        if len(self._categories) >= MAX_CATEGORIES:
            raise RuntimeError("maximum categories reached")
        self._categories.append(name)
        return len(self._categories) - 1

    def _category_id(self, category: Union[int, str]) -> int:
        if isinstance(category, str):
            return self.add_category(category)
        if not 0 <= category < len(self._categories):
            raise IndexError("bad category_id")
        return category

    def add_rule(
        self,
        category: Union[int, str],
        callback: Callback,
        interest: Optional[Interest] = None,
    ) -> RuleHandle:
        """Add a rule that runs ``callback`` while ``interest`` holds.

        ``category`` is a category id, or a name for a new category.
        """
        rule = _BasicRule(self._category_id(category), interest or _always, callback)
        self._rules.append(rule)
        return RuleHandle(rule)

    def add_fd_rule(
        self,
        category: Union[int, str],
        fd: FileDescriptor,
        direction: Direction,
        callback: Callback,
        interest: Optional[Interest] = None,
        cancel: Optional[Callback] = None,
        error: Optional[Callback] = None,
    ) -> RuleHandle:
        """Add a rule that runs ``callback`` when ``fd`` is ready in ``direction``."""
        rule = _FDRule(
            self._category_id(category),
            interest or _always,
            callback,
            fd.duplicate(),
            Direction(direction),
            cancel or _nothing,
            error or _nothing,
        )
        self._fd_rules.append(rule)
        return RuleHandle(rule)

    def _name(self, rule: _BasicRule) -> str:
        return self._categories[rule.category_id]

    def _report_poll_error(self, rule: _FDRule) -> None:
        try:
            sock = socket.socket(fileno=rule.fd.fd_num())
        except OSError as exc:
            if exc.errno == errno.ENOTSOCK:
                print(f'error on polled file descriptor for rule "{self._name(rule)}"', file=sys.stderr)
                return
            raise UnixError("getsockopt", exc.errno or 0) from exc
        try:
            socket_error = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        except OSError as exc:
            raise UnixError("getsockopt", exc.errno or 0) from exc
        finally:
            sock.detach()
        if socket_error:
            print(
                f'error on polled socket for rule "{self._name(rule)}": {os.strerror(socket_error)}',
                file=sys.stderr,
            )

    def _serve_plain_rules(self) -> bool:
        for rule in list(self._rules):
            if rule.cancel_requested:
                self._rules.remove(rule)
                continue
            fired = False
            iterations = 0
            while rule.interest():
                iterations += 1
                if iterations > _MAX_ITERATIONS:
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        f"is still interested after {iterations} iterations"
                    )
                fired = True
                rule.callback()
            if fired:
                return True
        return False

    def _collect_fd_rules(self) -> list[tuple[_FDRule, int]]:
        polled = []
        for rule in list(self._fd_rules):
            if rule.cancel_requested:
                self._fd_rules.remove(rule)
                continue
            if (rule.direction is Direction.IN and rule.fd.eof()) or rule.fd.closed():
                rule.on_cancel()
                self._fd_rules.remove(rule)
                continue
            polled.append((rule, int(rule.direction) if rule.interest() else 0))
        return polled

    def wait_next_event(self, timeout_ms: int) -> Result:
        """Serve at most one ready rule, waiting up to ``timeout_ms`` (negative: forever)."""
        if self._serve_plain_rules():
            return Result.SUCCESS

        polled = self._collect_fd_rules()
        if not any(events for _rule, events in polled):
            return Result.EXIT

        masks: dict[int, int] = {}
        for rule, events in polled:
            fd = rule.fd.fd_num()
            masks[fd] = masks.get(fd, 0) | events
        poller = select.poll()
        for fd, mask in masks.items():
            poller.register(fd, mask)
        try:
            ready = poller.poll(timeout_ms)
        except OSError as exc:
            raise UnixError("poll", exc.errno or 0) from exc
        if not ready:
            return Result.TIMEOUT
        revents_by_fd = dict(ready)

        for rule, events in polled:
            revents = revents_by_fd.get(rule.fd.fd_num(), 0) & (events | _ALWAYS_REPORTED)

            if revents & _POLL_ERROR:
                self._report_poll_error(rule)
                rule.on_error()
                rule.on_cancel()
                self._fd_rules.remove(rule)
                continue

            poll_ready = bool(revents & events)
            poll_hup = bool(revents & select.POLLHUP)
            if poll_hup and ((events and not poll_ready) or rule.direction is Direction.OUT):
                rule.on_cancel()
                self._fd_rules.remove(rule)
                continue

            if poll_ready:
                count_before = rule.service_count()
                rule.callback()
                if count_before == rule.service_count() and not rule.fd.closed() and rule.interest():
                    raise RuntimeError(
                        f'EventLoop: busy wait detected: rule "{self._name(rule)}" '
                        "did not read/write fd and is still interested"
                    )
                return Result.SUCCESS

        return Result.SUCCESS