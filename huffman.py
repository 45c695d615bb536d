import heapq
import itertools
from typing import Dict, Iterable, List, Optional, TextIO, Tuple, Union

from huffman_errors import ChannelFailureError, EmptyAlphabetError, MalformedTableError


class Leaf: # Node for Huffman tree holding one symbol
    def __init__(self, symbol: int, weight: int = 0):
        self.symbol = symbol
        self.weight = weight # only meaningful while building from frequencies

    def __repr__(self) -> str:
        return f"Leaf({self.symbol!r})"


class Internal: # Node for Huffman tree with exactly two children
    def __init__(self, left: "Node", right: "Node", weight: int = 0):
        self.left = left
        self.right = right
        self.weight = weight

    def __repr__(self) -> str:
        return f"Internal({self.left!r}, {self.right!r})"


Node = Union[Leaf, Internal]


def is_leaf(node: Node) -> bool:
    return isinstance(node, Leaf)


def build_huffman_tree(frequency_table: Dict[int, int]) -> Node: # frequency_table: dict of symbol -> frequency
    # heap entries are (weight, sequence, node) so equal weights pop in insertion order
    sequence = itertools.count()
    priority_queue = [
        (frequency, next(sequence), Leaf(symbol, frequency))
        for symbol, frequency in sorted(frequency_table.items())
        if frequency > 0
    ]
    if not priority_queue:
        raise EmptyAlphabetError("no symbol has a positive frequency")
    heapq.heapify(priority_queue)

    # Build the tree
    while len(priority_queue) > 1:
        first_weight, _, first = heapq.heappop(priority_queue)
        second_weight, _, second = heapq.heappop(priority_queue)
        weight = first_weight + second_weight
        merged_node = Internal(first, second, weight) # children in removal order
        heapq.heappush(priority_queue, (weight, next(sequence), merged_node))

    return priority_queue[0][2] # root of the tree, a bare Leaf for a one-symbol alphabet


def code_table(root: Node) -> List[Tuple[int, str]]:
    """
    Pre-order list of (symbol, code) pairs, leftmost leaf first.
    Read-only: the tree is never modified.
    """
    table: List[Tuple[int, str]] = []
    stack: List[Tuple[Node, str]] = [(root, "")]
    while stack:
        node, code = stack.pop()
        if isinstance(node, Leaf):
            table.append((node.symbol, code))
        else:
            # right pushed first so the left subtree is emitted first
            stack.append((node.right, code + '1'))
            stack.append((node.left, code + '0'))
    return table


def generate_huffman_codes(root: Node) -> Dict[int, str]: # root: root of the Huffman tree
    return dict(code_table(root)) # mapping of symbols to their Huffman codes


def weighted_path_length(root: Node, frequency_table: Dict[int, int]) -> int:
    """Total number of code bits needed to encode every occurrence in frequency_table."""
    codes = generate_huffman_codes(root)
    return sum(frequency * len(codes[symbol])
               for symbol, frequency in frequency_table.items() if frequency > 0)


def save_code_table(root: Node, output: TextIO) -> None:
    """Write one two-line record per leaf: the decimal ordinal, then the code."""
    try:
        for symbol, code in code_table(root):
            output.write(f"{symbol}\n{code}\n")
    except OSError as e:
        raise ChannelFailureError(f"cannot write code table: {e}") from e


class _Slot: # mutable placeholder used while rebuilding a tree from its table
    def __init__(self):
        self.symbol: Optional[int] = None
        self.left: Optional["_Slot"] = None
        self.right: Optional["_Slot"] = None

    def has_children(self) -> bool:
        return self.left is not None or self.right is not None


def _read_records(lines: Iterable[str], max_symbol: Optional[int] = None) -> Iterable[Tuple[int, str]]:
    it = iter(lines)
    record = 0
    while True:
        try:
            ordinal_line = next(it, None)
            if ordinal_line is None:
                return
            code_line = next(it, None)
        except OSError as e:
            raise ChannelFailureError(f"cannot read code table: {e}") from e

        record += 1
        ordinal_line = ordinal_line.rstrip("\r\n")
        if code_line is None:
            raise MalformedTableError(f"record {record}: missing code line after {ordinal_line!r}")
        code = code_line.rstrip("\r\n")

        # plain ASCII digits only: no sign, whitespace or underscores
        if not (ordinal_line.isascii() and ordinal_line.isdigit()):
            raise MalformedTableError(f"record {record}: ordinal {ordinal_line!r} is not a decimal number")
        symbol = int(ordinal_line)
        if max_symbol is not None and symbol > max_symbol:
            raise MalformedTableError(f"record {record}: ordinal {symbol} is above {max_symbol}")
        if code.strip("01"):
            raise MalformedTableError(f"record {record}: code {code!r} may only contain '0' and '1'")
        yield symbol, code


def _freeze(slot: _Slot, code: str) -> Node:
    if slot.symbol is not None:
        return Leaf(slot.symbol)
    if slot.left is None or slot.right is None:
        raise MalformedTableError(f"code prefix {code!r} has a missing branch")
    return Internal(_freeze(slot.left, code + '0'), _freeze(slot.right, code + '1'))


def load_code_table(input: Union[TextIO, Iterable[str]], max_symbol: Optional[int] = None) -> Node:
    """
    Rebuild a code tree from a table written by save_code_table.

    Each record is inserted independently by walking from the root and
    creating placeholders as needed. Raises MalformedTableError for an empty
    table, a code used by two symbols, a symbol with two codes, a leaf with
    descendants, a branch with only one child, or an ordinal above max_symbol.
    """
    root = _Slot()
    seen: Dict[int, str] = {}

    for symbol, code in _read_records(input, max_symbol):
        if seen.get(symbol, code) != code:
            raise MalformedTableError(f"symbol {symbol} has two codes: {seen[symbol]!r} and {code!r}")
        seen[symbol] = code

        node = root
        for i, bit in enumerate(code):
            if node.symbol is not None:
                raise MalformedTableError(f"code {code!r} passes through the leaf at {code[:i]!r}")
            if bit == '0':
                if node.left is None:
                    node.left = _Slot()
                node = node.left
            else:
                if node.right is None:
                    node.right = _Slot()
                node = node.right

        if node.has_children():
            raise MalformedTableError(f"code {code!r} for symbol {symbol} is a prefix of another code")
        if node.symbol is not None and node.symbol != symbol:
            raise MalformedTableError(f"code {code!r} is assigned to both {node.symbol} and {symbol}")
        node.symbol = symbol

    if not seen:
        raise MalformedTableError("code table is empty")
    return _freeze(root, "")
