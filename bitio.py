"""
Bit-level I/O for the compressed payload format

Layout: byte 0 holds the number of padding bits in the last data byte (0..7),
bytes 1..N hold the data bits, least-significant bit first within each byte
"""

import os
import sys
from typing import BinaryIO, Iterable, Iterator, Optional, TextIO, Union

from huffman_errors import (
    ChannelFailureError,
    EndOfStreamError,
    InvalidBitError,
    MalformedStreamError,
)

BYTE_SIZE = 8 # bits per byte

Channel = Union[str, os.PathLike, BinaryIO]


def _open_channel(channel: Channel, mode: str) -> BinaryIO:
    if isinstance(channel, (str, os.PathLike)):
        try:
            return open(channel, mode)
        except OSError as e:
            raise ChannelFailureError(f"cannot open {os.fspath(channel)!r}: {e}") from e
    return channel


class BitWriter:
    def __init__(self, sink: Channel, debug: Union[bool, TextIO] = False, close_sink: bool = True):
        self.output = _open_channel(sink, "wb")
        # paths are always owned by the writer
        self.close_sink = close_sink or isinstance(sink, (str, os.PathLike))
        self.debug_stream: Optional[TextIO] = None
        if debug is True:
            self.debug_stream = sys.stdout
        elif debug:
            self.debug_stream = debug

        self.buffer = bytearray() # completed bytes, held until the header is known
        self.current_byte = 0 # bits of the group being filled
        self.num_bits = 0 # how many bits are in current_byte (0..7)
        self.bits_written = 0
        self.closed = False

    def write_bit(self, bit: int) -> None:
        if self.closed:
            raise ValueError("write to a closed BitWriter")
        if not isinstance(bit, int) or bit not in (0, 1):
            raise InvalidBitError(f"Illegal bit: {bit!r}")
        if self.debug_stream is not None:
            self.debug_stream.write(str(bit))

        self.current_byte |= bit << self.num_bits
        self.num_bits += 1
        self.bits_written += 1
        if self.num_bits == BYTE_SIZE:
            self.buffer.append(self.current_byte)
            self.current_byte = 0
            self.num_bits = 0

    def write_bits(self, bits: Union[str, Iterable[int]]) -> None:
        """Write a sequence of bits, either ints or a string of '0'/'1' characters."""
        if isinstance(bits, str):
            for ch in bits:
                if ch == '0':
                    self.write_bit(0)
                elif ch == '1':
                    self.write_bit(1)
                else:
                    raise InvalidBitError(f"Illegal bit character: {ch!r}")
        else:
            for bit in bits:
                self.write_bit(bit)

    @property
    def padding_bits(self) -> int:
        return (BYTE_SIZE - self.num_bits) % BYTE_SIZE

    def close(self) -> None:
        """Write header and packed bytes, then release the sink even if writing fails."""
        if self.closed:
            return
        self.closed = True

        remaining = self.padding_bits
        if self.num_bits > 0: # flush the partial last group, high bits stay zero
            self.buffer.append(self.current_byte)
            self.current_byte = 0
            self.num_bits = 0

        try:
            try:
                self.output.write(bytes([remaining]))
                self.output.write(bytes(self.buffer))
            finally:
                if self.close_sink:
                    self.output.close()
                else:
                    self.output.flush()
        except OSError as e:
            raise ChannelFailureError(f"cannot write compressed output: {e}") from e

    def __enter__(self) -> "BitWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class BitReader:
    def __init__(self, source: Channel, close_source: bool = True):
        self.input = _open_channel(source, "rb")
        self.close_source = close_source or isinstance(source, (str, os.PathLike))
        self.closed = False
        self.current_byte: Optional[int] = None # byte being consumed
        self.next_byte: Optional[int] = None # one byte of lookahead
        self.num_bits = 0 # bits already taken from current_byte
        self.remaining_at_end = 0 # padding bits in the final data byte

        try:
            header = self._read_byte()
            if header is not None: # a source with no header holds no bits
                if header >= BYTE_SIZE:
                    raise MalformedStreamError(f"padding count must be 0..7, got {header}")
                self.remaining_at_end = header
                self.next_byte = self._read_byte()
            self._advance()
        except BaseException:
            self.close()
            raise

    def _read_byte(self) -> Optional[int]:
        try:
            data = self.input.read(1)
        except OSError as e:
            raise ChannelFailureError(f"cannot read compressed input: {e}") from e
        return data[0] if data else None

    def _advance(self) -> None:
        # lookahead becomes current, fetch a new lookahead
        self.current_byte = self.next_byte
        if self.current_byte is not None:
            self.next_byte = self._read_byte()
        self.num_bits = 0

    def has_next_bit(self) -> bool:
        at_end = self.current_byte is None
        only_padding = self.next_byte is None and BYTE_SIZE - self.num_bits == self.remaining_at_end
        return not at_end and not only_padding

    def next_bit(self) -> int:
        if not self.has_next_bit():
            raise EndOfStreamError("no bits left in compressed input")
        result = self.current_byte & 1
        self.current_byte >>= 1
        self.num_bits += 1
        if self.num_bits == BYTE_SIZE:
            self._advance()
        return result

    def __iter__(self) -> Iterator[int]:
        while self.has_next_bit():
            yield self.next_bit()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self.close_source:
            try:
                self.input.close()
            except OSError as e:
                raise ChannelFailureError(f"cannot close compressed input: {e}") from e

    def __enter__(self) -> "BitReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
