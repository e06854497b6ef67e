# minnet

A small, dependency-free networking toolkit for Linux. It covers:

- **Wire formats** (`minnet.parser`, `minnet.checksum`, `minnet.ethernet`,
  `minnet.arp`, `minnet.ipv4`): parse and serialize Ethernet headers and
  frames, ARP messages, and IPv4 headers and datagrams, with the Internet
  checksum.
- **System plumbing** (`minnet.errors`, `minnet.address`,
  `minnet.file_descriptor`, `minnet.sockets`, `minnet.tun`): reference-counted
  file descriptors, Internet addresses, UDP/TCP/packet/Unix-domain sockets, and
  TUN/TAP devices.
- **An event loop** (`minnet.eventloop`): a `poll`-based loop that runs
  callbacks when file descriptors become readable or writable, or while a plain
  condition holds.

It relies on Linux facilities (`fcntl`, `poll`, `readv`/`writev`, packet
sockets and `/dev/net/tun`).

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Parsing and serializing

Values go onto the wire through a `Serializer` and come back through a
`Parser`. The helpers `serialize(obj)` and `parse(obj, buffers, *args)` wrap
both; wire data is a list of `bytes` chunks.

```python
from minnet.parser import parse, serialize
from minnet.ipv4 import IPv4Datagram

dgram = IPv4Datagram()
dgram.header.src = 0x0A000001
dgram.header.dst = 0x0A000002
dgram.header.total_length = 20
dgram.header.compute_checksum()

wire = serialize(dgram)           # list of bytes chunks

copy = IPv4Datagram()
ok = parse(copy, wire)            # False if truncated, malformed or the checksum is wrong
print(ok, copy.header)            # IPv4 len=20 protocol=6 ttl=128 src=10.0.0.1 dst=10.0.0.2
```

`Parser.integer(size)` reads an unsigned big-endian integer and
`Parser.string(length)` reads raw bytes. A short read never raises: it sets an
error flag (checked with `has_error()`) and returns zeros. `all_remaining()`
consumes the rest of the input as a list of buffers, `all_remaining_bytes()` as
one byte string, and `buffer()` shows it without consuming it.

`Serializer.integer(value, size)` appends a big-endian integer,
`Serializer.buffer(data)` appends a buffer (or each of a list of buffers) as a
separate chunk, and `output()` returns the chunks.

## Ethernet and ARP

```python
from minnet.arp import ARPMessage
from minnet.ethernet import ETHERNET_BROADCAST, EthernetFrame, EthernetHeader, format_ethernet_address
from minnet.parser import serialize

arp = ARPMessage(opcode=ARPMessage.OPCODE_REQUEST, sender_ip_address=0x0A000001)
print(arp.supported(), arp)

frame = EthernetFrame(
    header=EthernetHeader(dst=ETHERNET_BROADCAST, src=bytes([0x02, 0, 0, 0, 0, 1]),
                          ethertype=EthernetHeader.TYPE_ARP),
    payload=serialize(arp),
)
print(frame.header)   # dst=ff:ff:ff:ff:ff:ff src=02:00:00:00:00:01 type=ARP
```

Only Ethernet/IPv4 requests and replies are supported: parsing anything else
sets the parser's error flag, and serializing it raises `ValueError`.

## Checksums

```python
from minnet.checksum import InternetChecksum

check = InternetChecksum()
check.add(b"\x45\x00\x00\x14")
print(hex(check.value()))
```

`add` accepts a byte string or an iterable of byte strings, and odd-length
pieces are summed as one continuous stream. `IPv4Header.pseudo_checksum()`
gives a starting value for checksums over an encapsulated TCP segment.

## Addresses and sockets

```python
from minnet.address import Address
from minnet.sockets import UDPSocket

sock = UDPSocket()
sock.bind(Address.from_ip("127.0.0.1", 0))
print(sock.local_address())       # e.g. 127.0.0.1:54321

sock.sendto(sock.local_address(), b"hello")
source, payload = sock.recv()
```

`Address.resolve(hostname, service)` looks a name up; `Address.from_ip(ip, port)`
takes a dotted quad and never asks a name server; `Address.from_ipv4_numeric(n)`
builds one from a 32-bit integer, and `ipv4_numeric()` goes back.

Besides `UDPSocket`, there are `TCPSocket` (`listen`, `accept`), `PacketSocket`
(`set_promiscuous`), `LocalStreamSocket` (wrapping an existing Unix-domain
stream descriptor) and `LocalDatagramSocket`. All are `FileDescriptor`s.

## File descriptors

`FileDescriptor` wraps a descriptor number. `duplicate()` gives another handle
sharing the same descriptor, EOF flag and read/write counters; the descriptor
is closed by `close()`, on leaving a `with` block, or once no handle refers to
it. `read`, `read_vectored` and `write` count each call, and on a
non-blocking descriptor a would-block error yields an empty result instead of
an exception.

`minnet.tun.TunFD(name)` and `TapFD(name)` open an existing persistent TUN or
TAP device.

## Event loop

```python
from minnet.eventloop import Direction, EventLoop, Result

loop = EventLoop()
category = loop.add_category("echo")
loop.add_fd_rule(category, sock, Direction.IN, lambda: print(sock.recv()))

while loop.wait_next_event(100) != Result.EXIT:
    pass
```

`add_rule` adds a rule with no descriptor, run while its `interest` callable
returns true. Each call to `wait_next_event` serves at most one rule and
returns `Result.SUCCESS`, `Result.TIMEOUT` or `Result.EXIT` (nothing left to
wait for). A rule whose callback neither reads nor writes while it stays
interested raises `RuntimeError` as a busy wait. `RuleHandle.cancel()` removes
a rule.

## Errors

Failures from the operating system are raised as `minnet.errors.UnixError`, a
`TaggedError` that records what was attempted (`attempt`) and the `errno`
value (`error_code`). Resolver failures are raised as `TaggedError`.

## What it does not do

minnet provides the building blocks only. It has no TCP implementation of its
own (no sender, receiver or connection state machine), no network interface or
router that uses the ARP and IPv4 formats, and no command-line program.