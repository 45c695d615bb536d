"""
Encode and decode loops tying the code tree to the bit streams

A tree whose root is a single Leaf has the empty code. Such a payload carries
one 0 bit per occurrence of the symbol, and decoding emits the symbol once per
bit consumed.
"""

import io
from typing import Dict, Iterable, Iterator, List, Mapping, Union

from bitio import BitReader, BitWriter
from huffman import Leaf, Node, generate_huffman_codes
from huffman_errors import TruncatedStreamError

SINGLE_SYMBOL_CODE = "0"


def encoding_map(root: Node) -> Dict[int, str]:
    """Codes to transmit for each symbol, with the single-symbol case made one bit long."""
    codes = generate_huffman_codes(root)
    if isinstance(root, Leaf):
        codes[root.symbol] = SINGLE_SYMBOL_CODE
    return codes


def encode(symbols: Iterable[int], code: Union[Node, Mapping[int, str]], writer: BitWriter) -> int:
    """
    Write the code of every symbol to writer, returns the number of bits written.
    code is either a tree root or a symbol -> code mapping from encoding_map.
    """
    code_map = code if isinstance(code, Mapping) else encoding_map(code)
    start = writer.bits_written
    for symbol in symbols:
        bits = code_map.get(symbol)
        if not bits: # unknown symbol, or an empty code that cannot be transmitted
            raise ValueError(f"symbol {symbol!r} has no transmittable code")
        writer.write_bits(bits)
    return writer.bits_written - start


def translate(reader: BitReader, root: Node) -> Iterator[int]:
    """Yield decoded symbols until reader runs out of bits."""
    if isinstance(root, Leaf):
        for _ in reader:
            yield root.symbol
        return

    current_node: Node = root
    while reader.has_next_bit():
        bit = reader.next_bit()
        current_node = current_node.left if bit == 0 else current_node.right

        if isinstance(current_node, Leaf): # reached a leaf
            yield current_node.symbol
            current_node = root # reset to the root for the next symbol

    if current_node is not root:
        raise TruncatedStreamError("compressed input ended in the middle of a code")


def decode(reader: BitReader, root: Node) -> List[int]:
    return list(translate(reader, root))


def encode_bytes(data: bytes, root: Node) -> bytes: # data: input bytes to encode
    sink = io.BytesIO()
    with BitWriter(sink, close_sink=False) as writer:
        encode(data, root, writer)
    return sink.getvalue()


def decode_bytes(payload: bytes, root: Node) -> bytes: # payload: header byte followed by packed bits
    with BitReader(io.BytesIO(payload)) as reader:
        return bytes(translate(reader, root))

