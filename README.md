# minnowstack

Pieces of a TCP/IP stack in pure Python. It needs nothing beyond the standard library.
Every layer is driven by explicit method calls, and the network interface also by explicit clock ticks.
There are no sockets and no threads, so the behaviour is deterministic and easy to test.

## Components

- `minnowstack.byte_stream`: `ByteStream(capacity)` is a bounded, in-order byte buffer.
  - The writing side has `push`, `close`, `is_closed`, `available_capacity` and `bytes_pushed`.
  - The reading side has `peek`, `pop`, `is_finished`, `bytes_buffered` and `bytes_popped`.
  - `set_error` and `has_error` carry an error flag that both sides share.
  - `read(stream, max_len)` pops up to `max_len` bytes and returns them.
- `minnowstack.wrapping_integers`: `Wrap32` is a 32-bit sequence number that wraps modulo 2**32.
  - `Wrap32.wrap(n, zero_point)` turns an absolute sequence number into a wrapped one.
  - `unwrap(zero_point, checkpoint)` returns the absolute value that lies closest to `checkpoint`.
  - `+` adds an integer, wrapping around.
- `minnowstack.reassembler`: `Reassembler(output)` takes out-of-order, possibly overlapping substrings.
  - `insert(first_index, data, is_last_substring)` accepts a substring and writes whatever is in order to the `ByteStream` held in `output`.
  - Bytes beyond the stream's available capacity are discarded.
  - The stream is closed once its last byte has been written.
  - `count_bytes_pending()` reports how many bytes are held back waiting for a gap to fill.
- `minnowstack.messages`: `TCPSenderMessage` and `TCPReceiverMessage` are frozen dataclasses for the segments exchanged between the two halves of a TCP connection.
  - `TCPSenderMessage` carries `seqno`, `syn`, `payload`, `fin` and `rst`.
  - `TCPSenderMessage.sequence_length()` counts the payload plus one for each of SYN and FIN.
  - `TCPReceiverMessage` carries `ackno`, `window_size` and `rst`.
- `minnowstack.tcp_receiver`: `TCPReceiver(reassembler)` is the receiving half of a connection.
  - `receive(message)` places a segment's payload at its stream index.
  - `send()` returns the acknowledgment number, the window size (capped at 65535) and the RST flag.
  - An incoming RST marks the stream as errored.
  - The output stream is available as `stream`.
- `minnowstack.network_interface`: `NetworkInterface(name, port, ethernet_address, ip_address)` sends `InternetDatagram`s as `EthernetFrame`s.
  - It resolves next hops with `ArpMessage` requests.
  - Learned mappings are cached for 30 seconds.
  - A request for the same address is sent again only after 5 seconds. When that time passes without an answer, the datagrams queued for that address are dropped.
  - `tick(ms)` advances the interface's clock.
  - Received IPv4 datagrams are appended to `datagrams_received`.
  - Frames leave through an `OutputPort` subclass that you supply.

## Installing

```
pip install .
```

## Examples

Reassembling a stream:

```python
from minnowstack.byte_stream import ByteStream, read
from minnowstack.reassembler import Reassembler

reassembler = Reassembler(ByteStream(16))
reassembler.insert(1, b"bc", False)
reassembler.insert(0, b"a", False)
reassembler.insert(3, b"d", True)

stream = reassembler.output
print(read(stream, 16))      # b'abcd'
print(stream.is_finished())  # True
```

Receiving a segment:

```python
from minnowstack.byte_stream import ByteStream
from minnowstack.messages import TCPSenderMessage
from minnowstack.reassembler import Reassembler
from minnowstack.tcp_receiver import TCPReceiver
from minnowstack.wrapping_integers import Wrap32

receiver = TCPReceiver(Reassembler(ByteStream(4000)))
receiver.receive(TCPSenderMessage(seqno=Wrap32(1000), syn=True, payload=b"hi"))
reply = receiver.send()
print(reply.ackno)        # Wrap32(raw_value=1003)
print(reply.window_size)  # 3998
```

Sending through a network interface:

```python
from minnowstack.network_interface import (
    EthernetFrame, InternetDatagram, NetworkInterface, OutputPort,
)

class Recorder(OutputPort):
    def __init__(self):
        self.frames = []

    def transmit(self, sender, frame):
        self.frames.append(frame)

port = Recorder()
iface = NetworkInterface("eth0", port, bytes.fromhex("020000000001"), "10.0.0.1")
iface.send_datagram(InternetDatagram(src=0x0A000001, dst=0x0A000002), "10.0.0.2")
print(port.frames[0].ethertype == EthernetFrame.TYPE_ARP)  # True: an ARP request went out first
```

Once a frame carrying the ARP reply is passed to `iface.recv_frame`, the queued datagram goes out in an IPv4 frame addressed to the Ethernet address that was learned.

## What the package does not do

- It has no sending half of a TCP connection: there is no window filling and no retransmission timer.
- It has no router that forwards datagrams between several interfaces.
- It never touches a real network. Frames go only to the `OutputPort` you provide, and segments go only where your code hands them.

## Running the tests

```
pip install ".[test]"
pytest
```