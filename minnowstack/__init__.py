"""Pieces of a user-space TCP/IP stack: byte streams, reassembly, a TCP receiver and an ARP network interface."""

__version__ = "0.1.0"