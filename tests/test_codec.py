import io

import pytest

from bitio import BitReader, BitWriter
from codec import decode, decode_bytes, encode, encode_bytes, encoding_map, translate
from huffman import build_huffman_tree, load_code_table, save_code_table
from huffman_errors import TruncatedStreamError

CLRS = {ord('a'): 5, ord('b'): 9, ord('c'): 12, ord('d'): 13, ord('e'): 16, ord('f'): 45}


def clrs_message():
    return b"".join(bytes([s]) * n for s, n in CLRS.items())


def test_decode_reproduces_message():
    root = build_huffman_tree(CLRS)
    message = b"fabcdeffffaab"
    assert decode_bytes(encode_bytes(message, root), root) == message


def test_clrs_message_takes_224_bits():
    root = build_huffman_tree(CLRS)
    payload = encode_bytes(clrs_message(), root)
    assert len(payload) == 1 + 28
    assert payload[0] == 0
    assert decode_bytes(payload, root) == clrs_message()


def test_decode_with_reloaded_table():
    data = b"the quick brown fox jumps over the lazy dog"
    ft = {}
    for b in data:
        ft[b] = ft.get(b, 0) + 1
    root = build_huffman_tree(ft)
    table = io.StringIO()
    save_code_table(root, table)
    table.seek(0)
    reloaded = load_code_table(table)
    assert decode_bytes(encode_bytes(data, root), reloaded) == data


def test_encode_returns_bit_count():
    root = build_huffman_tree(CLRS)
    writer = BitWriter(io.BytesIO(), close_sink=False)
    assert encode(b"fa", root, writer) == 5
    assert encode(b"e", encoding_map(root), writer) == 3
    writer.close()


def test_encode_unknown_symbol_fails():
    root = build_huffman_tree(CLRS)
    writer = BitWriter(io.BytesIO(), close_sink=False)
    with pytest.raises(ValueError):
        encode(b"z", root, writer)


def test_single_symbol_uses_one_bit_per_occurrence():
    root = build_huffman_tree({65: 4})
    assert encoding_map(root) == {65: "0"}
    payload = encode_bytes(b"AAAA", root)
    assert payload == bytes([4, 0])
    assert decode_bytes(payload, root) == b"AAAA"


def test_single_symbol_with_reloaded_table():
    root = load_code_table(io.StringIO("65\n\n"))
    assert decode_bytes(encode_bytes(b"A" * 9, root), root) == b"A" * 9


def test_empty_payload_decodes_to_nothing():
    root = build_huffman_tree(CLRS)
    assert decode_bytes(b"\x00", root) == b""
    assert decode_bytes(b"", root) == b""


def test_truncated_payload_fails():
    root = build_huffman_tree(CLRS)
    sink = io.BytesIO()
    with BitWriter(sink, close_sink=False) as writer:
        writer.write_bits("0" + "11") # 'f', then two bits into a longer code
    with BitReader(io.BytesIO(sink.getvalue())) as reader:
        symbols = translate(reader, root)
        assert next(symbols) == ord('f')
        with pytest.raises(TruncatedStreamError):
            next(symbols)


def test_truncated_payload_fails_in_decode():
    root = build_huffman_tree(CLRS)
    payload = encode_bytes(b"fedcba", root) # 18 bits, ends with the 4-bit code of a
    with pytest.raises(TruncatedStreamError):
        decode_bytes(bytes([payload[0] + 1]) + payload[1:], root)


def test_decode_list_of_symbols():
    root = build_huffman_tree({300: 1, 301: 2, 302: 4})
    sink = io.BytesIO()
    with BitWriter(sink, close_sink=False) as writer:
        encode([302, 300, 301, 302], root, writer)
    with BitReader(io.BytesIO(sink.getvalue())) as reader:
        assert decode(reader, root) == [302, 300, 301, 302]
