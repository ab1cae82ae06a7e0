"""A network interface joining IPv4 (internet layer) to Ethernet (link layer) with ARP."""

from __future__ import annotations

import logging
import struct
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from ipaddress import IPv4Address
from typing import ClassVar, Union

_log = logging.getLogger(__name__)

_ETHERNET_ADDRESS_LEN = 6

AddressLike = Union[IPv4Address, int, str]


def _ipv4_numeric(address: AddressLike) -> int:
    if isinstance(address, IPv4Address):
        return int(address)
    return int(IPv4Address(address))


def _check_ethernet_address(address: bytes) -> bytes:
    address = bytes(address)
    if len(address) != _ETHERNET_ADDRESS_LEN:
        raise ValueError(f"Ethernet address must be {_ETHERNET_ADDRESS_LEN} bytes, got {len(address)}")
    return address


def _internet_checksum(data: bytes) -> int:
    if len(data) % 2:
        data += b"\x00"
    total = sum(struct.unpack(f"!{len(data) // 2}H", data))
    while total >> 16:
        total = (total & 0xFFFF) + (total >> 16)
    return ~total & 0xFFFF


@dataclass(frozen=True)
class EthernetFrame:
    """An Ethernet frame: destination, source, EtherType and payload."""

    TYPE_IPV4: ClassVar[int] = 0x0800
    TYPE_ARP: ClassVar[int] = 0x0806
    BROADCAST: ClassVar[bytes] = b"\xff" * _ETHERNET_ADDRESS_LEN

    dst: bytes
    src: bytes
    ethertype: int
    payload: bytes = b""


@dataclass(frozen=True)
class ArpMessage:
    """An ARP message for IPv4 over Ethernet."""

    OPCODE_REQUEST: ClassVar[int] = 1
    OPCODE_REPLY: ClassVar[int] = 2
    WIRE_LENGTH: ClassVar[int] = 28
    _FORMAT: ClassVar[str] = "!HHBBH6sI6sI"
    _HARDWARE_ETHERNET: ClassVar[int] = 1

    opcode: int
    sender_ethernet_address: bytes
    sender_ip_address: int
    target_ip_address: int
    target_ethernet_address: bytes = bytes(_ETHERNET_ADDRESS_LEN)

    def to_bytes(self) -> bytes:
        """Serialize to the 28-byte wire format."""
        return struct.pack(
            self._FORMAT,
            self._HARDWARE_ETHERNET,
            EthernetFrame.TYPE_IPV4,
            _ETHERNET_ADDRESS_LEN,
            4,
            self.opcode,
            _check_ethernet_address(self.sender_ethernet_address),
            self.sender_ip_address,
            _check_ethernet_address(self.target_ethernet_address),
            self.target_ip_address,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> ArpMessage:
        """Parse a wire-format ARP message; raise ValueError if unsupported or malformed."""
        data = bytes(data)
        if len(data) < cls.WIRE_LENGTH:
            raise ValueError("truncated ARP message")
        hw_type, proto, hw_len, proto_len, opcode, sha, spa, tha, tpa = struct.unpack_from(cls._FORMAT, data)
        if (hw_type, proto, hw_len, proto_len) != (
            cls._HARDWARE_ETHERNET,
            EthernetFrame.TYPE_IPV4,
            _ETHERNET_ADDRESS_LEN,
            4,
        ):
            raise ValueError("unsupported ARP hardware or protocol type")
        if opcode not in (cls.OPCODE_REQUEST, cls.OPCODE_REPLY):
            raise ValueError(f"unsupported ARP opcode {opcode}")
        return cls(
            opcode=opcode,
            sender_ethernet_address=sha,
            sender_ip_address=spa,
            target_ip_address=tpa,
            target_ethernet_address=tha,
        )


@dataclass(frozen=True)
class InternetDatagram:
    """An IPv4 datagram without options; the header checksum is computed on serialization."""

    HEADER_LENGTH: ClassVar[int] = 20
    _FORMAT: ClassVar[str] = "!BBHHHBBHII"

    src: int
    dst: int
    ttl: int = 64
    proto: int = 6
    payload: bytes = b""
    tos: int = 0
    ident: int = 0
    df: bool = True
    mf: bool = False
    fragment_offset: int = 0

    def to_bytes(self) -> bytes:
        """Serialize header and payload, filling in the header checksum."""
        total = self.HEADER_LENGTH + len(self.payload)
        if total > 0xFFFF:
            raise ValueError("datagram too long")
        flags = (int(self.df) << 14) | (int(self.mf) << 13) | (self.fragment_offset & 0x1FFF)
        header = struct.pack(
            self._FORMAT,
            0x45,
            self.tos,
            total,
            self.ident,
            flags,
            self.ttl,
            self.proto,
            0,
            self.src,
            self.dst,
        )
        checksum = _internet_checksum(header)
        return header[:10] + struct.pack("!H", checksum) + header[12:] + bytes(self.payload)

    @classmethod
    def from_bytes(cls, data: bytes) -> InternetDatagram:
        """Parse an IPv4 datagram; raise ValueError if malformed or the checksum is wrong."""
        data = bytes(data)
        if len(data) < cls.HEADER_LENGTH:
            raise ValueError("truncated IPv4 header")
        vihl, tos, total, ident, flags, ttl, proto, _, src, dst = struct.unpack_from(cls._FORMAT, data)
        header_len = (vihl & 0x0F) * 4
        if vihl >> 4 != 4:
            raise ValueError("not an IPv4 datagram")
        if header_len < cls.HEADER_LENGTH or header_len > len(data):
            raise ValueError("bad IPv4 header length")
        if total < header_len or total > len(data):
            raise ValueError("bad IPv4 total length")
        if _internet_checksum(data[:header_len]) != 0:
            raise ValueError("bad IPv4 header checksum")
        return cls(
            src=src,
            dst=dst,
            ttl=ttl,
            proto=proto,
            payload=data[header_len:total],
            tos=tos,
            ident=ident,
            df=bool(flags & 0x4000),
            mf=bool(flags & 0x2000),
            fragment_offset=flags & 0x1FFF,
        )


class OutputPort(ABC):
    """The physical port through which a network interface sends Ethernet frames."""

    @abstractmethod
    def transmit(self, sender: NetworkInterface, frame: EthernetFrame) -> None:
        """Send ``frame`` on behalf of ``sender``."""


class NetworkInterface:
    """Sends IPv4 datagrams as Ethernet frames, resolving next hops with ARP."""

    ARP_CACHE_TTL_MS: ClassVar[int] = 30_000
    ARP_REQUEST_TTL_MS: ClassVar[int] = 5_000

    def __init__(
        self,
        name: str,
        port: OutputPort,
        ethernet_address: bytes,
        ip_address: AddressLike,
    ) -> None:
        if port is None:
            raise ValueError("OutputPort must not be None")
        self.name = name
        self.port = port
        self.ethernet_address = _check_ethernet_address(ethernet_address)
        self.ip_address = IPv4Address(_ipv4_numeric(ip_address))
        self.datagrams_received: deque[InternetDatagram] = deque()

        self._arp_cache: dict[int, tuple[bytes, int]] = {}
        self._pending_requests: dict[int, int] = {}
        self._waiting: dict[int, deque[InternetDatagram]] = {}
        self._now_ms = 0

        _log.debug(
            "Network interface has Ethernet address %s and IP address %s",
            self.ethernet_address.hex(":"),
            self.ip_address,
        )

    def _transmit(self, frame: EthernetFrame) -> None:
        self.port.transmit(self, frame)

    def _ipv4_frame(self, dst: bytes, dgram: InternetDatagram) -> EthernetFrame:
        return EthernetFrame(
            dst=dst, src=self.ethernet_address, ethertype=EthernetFrame.TYPE_IPV4, payload=dgram.to_bytes()
        )

    def send_datagram(self, dgram: InternetDatagram, next_hop: AddressLike) -> None:
        """Send ``dgram`` to ``next_hop``, first asking for its Ethernet address if unknown."""
        next_hop_ip = _ipv4_numeric(next_hop)

        cached = self._arp_cache.get(next_hop_ip)
        if cached is not None and self._now_ms - cached[1] < self.ARP_CACHE_TTL_MS:
            self._transmit(self._ipv4_frame(cached[0], dgram))
            return

        self._waiting.setdefault(next_hop_ip, deque()).append(dgram)

        requested_at = self._pending_requests.get(next_hop_ip)
        if requested_at is None or self._now_ms - requested_at >= self.ARP_REQUEST_TTL_MS:
            request = ArpMessage(
                opcode=ArpMessage.OPCODE_REQUEST,
                sender_ethernet_address=self.ethernet_address,
                sender_ip_address=int(self.ip_address),
                target_ip_address=next_hop_ip,
            )
            self._transmit(
                EthernetFrame(
                    dst=EthernetFrame.BROADCAST,
                    src=self.ethernet_address,
                    ethertype=EthernetFrame.TYPE_ARP,
                    payload=request.to_bytes(),
                )
            )
            self._pending_requests[next_hop_ip] = self._now_ms

    def recv_frame(self, frame: EthernetFrame) -> None:
        """Accept a frame addressed to this interface (or broadcast) and act on its payload."""
        if frame.dst not in (self.ethernet_address, EthernetFrame.BROADCAST):
            return

        if frame.ethertype == EthernetFrame.TYPE_IPV4:
            try:
                dgram = InternetDatagram.from_bytes(frame.payload)
            except ValueError:
                return
            self.datagrams_received.append(dgram)
        elif frame.ethertype == EthernetFrame.TYPE_ARP:
            try:
                message = ArpMessage.from_bytes(frame.payload)
            except ValueError:
                return
            self._handle_arp(message)

    def _handle_arp(self, message: ArpMessage) -> None:
        sender_ip = message.sender_ip_address
        sender_eth = message.sender_ethernet_address
        self._arp_cache[sender_ip] = (sender_eth, self._now_ms)

        waiting = self._waiting.pop(sender_ip, None)
        if waiting is not None:
            self._pending_requests.pop(sender_ip, None)
            for dgram in waiting:
                self._transmit(self._ipv4_frame(sender_eth, dgram))

        if message.opcode == ArpMessage.OPCODE_REQUEST and message.target_ip_address == int(self.ip_address):
            reply = ArpMessage(
                opcode=ArpMessage.OPCODE_REPLY,
                sender_ethernet_address=self.ethernet_address,
                sender_ip_address=int(self.ip_address),
                target_ip_address=sender_ip,
                target_ethernet_address=sender_eth,
            )
            self._transmit(
                EthernetFrame(
                    dst=sender_eth,
                    src=self.ethernet_address,
                    ethertype=EthernetFrame.TYPE_ARP,
                    payload=reply.to_bytes(),
                )
            )

    def tick(self, ms_since_last_tick: int) -> None:
        """Advance time, expiring cached mappings and unanswered ARP requests."""
        self._now_ms += ms_since_last_tick
        now = self._now_ms

        for ip, (_, learned_at) in list(self._arp_cache.items()):
            if now - learned_at >= self.ARP_CACHE_TTL_MS:
                del self._arp_cache[ip]

        for ip, requested_at in list(self._pending_requests.items()):
            if now - requested_at >= self.ARP_REQUEST_TTL_MS:
                self._waiting.pop(ip, None)
                del self._pending_requests[ip]