"""
Command-line compressor built on the Huffman codec

Compressing FILE writes two outputs next to it:
  FILE.code   - the code table, two text lines per symbol
  FILE.short  - the compressed payload (padding header byte + packed bits)

How to run:
  python compressor.py compress notes.txt
  python compressor.py decompress notes.txt.code notes.txt.short notes.out
  python compressor.py compress notes.txt --debug     # also echo every bit written
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from bitio import BitReader, BitWriter
from codec import encode, encoding_map, translate
from huffman import build_huffman_tree, load_code_table, save_code_table
from huffman_errors import ChannelFailureError, HuffmanError, MalformedTableError

CODE_SUFFIX = ".code"
PAYLOAD_SUFFIX = ".short"
CHUNK_SIZE = 64 * 1024
MAX_BYTE = 255


@dataclass
class CompressionStats:
    input_bytes: int
    payload_bytes: int
    table_entries: int
    data_bits: int

    @property
    def compression_ratio(self) -> float:
        return self.payload_bytes / max(1, self.input_bytes)


def count_frequencies(path: Path) -> Dict[int, int]:
    ft: Dict[int, int] = {}
    try:
        with path.open("rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                for b in chunk:
                    ft[b] = ft.get(b, 0) + 1
    except OSError as e:
        raise ChannelFailureError(f"cannot read {path}: {e}") from e
    return ft


def _iter_bytes(path: Path):
    try:
        with path.open("rb") as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
                yield from chunk
    except OSError as e:
        raise ChannelFailureError(f"cannot read {path}: {e}") from e


def compress_file(input_path: Path, code_path: Optional[Path] = None,
                  payload_path: Optional[Path] = None, debug: bool = False) -> CompressionStats:
    input_path = Path(input_path)
    code_path = Path(code_path) if code_path else input_path.with_name(input_path.name + CODE_SUFFIX)
    payload_path = Path(payload_path) if payload_path else input_path.with_name(input_path.name + PAYLOAD_SUFFIX)

    ft = count_frequencies(input_path)
    root = build_huffman_tree(ft) # EmptyAlphabetError for an empty file

    try:
        with code_path.open("w", encoding="ascii", newline="\n") as out:
            save_code_table(root, out)
    except OSError as e:
        raise ChannelFailureError(f"cannot write {code_path}: {e}") from e

    code_map = encoding_map(root)
    with BitWriter(payload_path, debug=debug) as writer:
        data_bits = encode(_iter_bytes(input_path), code_map, writer)
    if debug:
        print()

    return CompressionStats(
        input_bytes=sum(ft.values()),
        payload_bytes=payload_path.stat().st_size,
        table_entries=len(code_map),
        data_bits=data_bits,
    )


def decompress_file(code_path: Path, payload_path: Path, output_path: Path) -> int:
    """Decode payload_path with the table in code_path, returns the number of bytes written."""
    code_path, payload_path, output_path = Path(code_path), Path(payload_path), Path(output_path)
    try:
        f = code_path.open("r", encoding="ascii")
    except OSError as e:
        raise ChannelFailureError(f"cannot read {code_path}: {e}") from e
    with f:
        try:
            root = load_code_table(f, max_symbol=MAX_BYTE)
        except UnicodeDecodeError as e:
            raise MalformedTableError(f"{code_path} is not an ASCII code table") from e

    written = 0
    buf = bytearray()
    with BitReader(payload_path) as reader:
        try:
            with output_path.open("wb") as out:
                for symbol in translate(reader, root):
                    buf.append(symbol)
                    if len(buf) >= CHUNK_SIZE:
                        out.write(buf)
                        written += len(buf)
                        buf.clear()
                out.write(buf)
                written += len(buf)
        except BaseException as e:
            # no partial output after a failed decode
            output_path.unlink(missing_ok=True)
            if isinstance(e, OSError) and not isinstance(e, ChannelFailureError):
                raise ChannelFailureError(f"cannot write {output_path}: {e}") from e
            raise
    return written


# Main

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Huffman file compressor")
    sub = ap.add_subparsers(dest="command", required=True)

    cp = sub.add_parser("compress", help="Write FILE.code and FILE.short")
    cp.add_argument("input", type=Path, help="File to compress")
    cp.add_argument("--code", type=Path, default=None, help="Code table output (default: INPUT.code)")
    cp.add_argument("--out", type=Path, default=None, help="Payload output (default: INPUT.short)")
    cp.add_argument("--debug", action="store_true", help="Echo every bit written as ASCII 0/1")

    dp = sub.add_parser("decompress", help="Rebuild a file from its .code and .short files")
    dp.add_argument("code", type=Path, help="Code table written by compress")
    dp.add_argument("payload", type=Path, help="Compressed payload written by compress")
    dp.add_argument("output", type=Path, help="Where to write the decompressed bytes")

    args = ap.parse_args(argv)

    try:
        if args.command == "compress":
            stats = compress_file(args.input, args.code, args.out, debug=args.debug)
            print(f"Compressed {args.input}: {stats.input_bytes} -> {stats.payload_bytes} bytes "
                  f"({stats.compression_ratio:.3f}), {stats.table_entries} codes, {stats.data_bits} bits")
        else:
            n = decompress_file(args.code, args.payload, args.output)
            print(f"Wrote {n} bytes to {args.output}")
    except (HuffmanError, OSError, ValueError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
