import io
import random

import pytest

from huffman import (
    Internal,
    Leaf,
    build_huffman_tree,
    code_table,
    generate_huffman_codes,
    is_leaf,
    load_code_table,
    save_code_table,
    weighted_path_length,
)
from huffman_errors import ChannelFailureError, EmptyAlphabetError, MalformedTableError

CLRS = {ord('a'): 5, ord('b'): 9, ord('c'): 12, ord('d'): 13, ord('e'): 16, ord('f'): 45}


def saved(root):
    out = io.StringIO()
    save_code_table(root, out)
    return out.getvalue()


def random_frequencies(rng):
    n = rng.randint(1, 60)
    return {s: rng.randint(1, 1000) for s in rng.sample(range(256), n)}


def test_clrs_example_code_lengths():
    codes = generate_huffman_codes(build_huffman_tree(CLRS))
    assert len(codes[ord('f')]) == 1
    assert len(codes[ord('a')]) >= 3
    assert weighted_path_length(build_huffman_tree(CLRS), CLRS) == 224


def test_clrs_example_table_is_deterministic():
    root = build_huffman_tree(CLRS)
    assert code_table(root) == [
        (ord('f'), "0"),
        (ord('c'), "100"),
        (ord('d'), "101"),
        (ord('a'), "1100"),
        (ord('b'), "1101"),
        (ord('e'), "111"),
    ]
    assert saved(root) == "102\n0\n99\n100\n100\n101\n97\n1100\n98\n1101\n101\n111\n"


def test_build_ignores_non_positive_frequencies():
    root = build_huffman_tree({1: 4, 2: 0, 3: -2, 4: 1})
    assert set(generate_huffman_codes(root)) == {1, 4}


def test_build_empty_alphabet_fails():
    with pytest.raises(EmptyAlphabetError):
        build_huffman_tree({})
    with pytest.raises(EmptyAlphabetError):
        build_huffman_tree({65: 0})


def test_single_symbol_is_a_bare_leaf():
    root = build_huffman_tree({65: 7})
    assert is_leaf(root)
    assert generate_huffman_codes(root) == {65: ""}
    assert saved(root) == "65\n\n"


def test_internal_nodes_always_have_two_children():
    root = build_huffman_tree({s: s + 1 for s in range(20)})
    stack = [root]
    while stack:
        node = stack.pop()
        if isinstance(node, Internal):
            assert node.left is not None and node.right is not None
            stack += [node.left, node.right]
        else:
            assert isinstance(node, Leaf)


def test_equal_weights_are_resolved_by_symbol_order():
    root = build_huffman_tree({3: 1, 1: 1, 2: 1, 0: 1})
    assert code_table(root) == [(0, "00"), (1, "01"), (2, "10"), (3, "11")]


def test_codes_are_prefix_free():
    rng = random.Random(7)
    for _ in range(25):
        codes = list(generate_huffman_codes(build_huffman_tree(random_frequencies(rng))).values())
        for i, a in enumerate(codes):
            for b in codes[i + 1:]:
                assert not a.startswith(b) and not b.startswith(a)


def test_table_round_trip_keeps_codes():
    rng = random.Random(11)
    for _ in range(25):
        root = build_huffman_tree(random_frequencies(rng))
        reloaded = load_code_table(io.StringIO(saved(root)))
        assert generate_huffman_codes(reloaded) == generate_huffman_codes(root)


def test_reloaded_single_symbol_table():
    root = load_code_table(io.StringIO("65\n\n"))
    assert isinstance(root, Leaf)
    assert root.symbol == 65


def test_load_accepts_lines_and_crlf():
    root = load_code_table(["10\r\n", "0\r\n", "13\r\n", "1\r\n"])
    assert generate_huffman_codes(root) == {10: "0", 13: "1"}


def test_load_ignores_record_order():
    root = load_code_table(io.StringIO("2\n11\n0\n0\n1\n10\n"))
    assert generate_huffman_codes(root) == {0: "0", 1: "10", 2: "11"}


def test_save_does_not_modify_tree():
    root = build_huffman_tree(CLRS)
    before = code_table(root)
    saved(root)
    saved(root)
    assert code_table(root) == before


@pytest.mark.parametrize("text", [
    "",                       # empty table
    "65\n0\n66\n0\n",         # one code, two symbols
    "65\n0\n65\n1\n",         # one symbol, two codes
    "65\n0\n66\n01\n67\n1\n", # leaf with descendants
    "66\n01\n65\n0\n67\n1\n", # same, descendant first
    "65\n\n66\n1\n",          # root leaf plus more codes
    "65\n0\n",                # branch with a single child
    "65\n00\n66\n1\n",        # missing 01
    "x\n0\n",                 # ordinal not a number
    "-1\n0\n",                # negative ordinal
    "1_0\n0\n65\n1\n",        # underscore in ordinal
    " +65 \n0\n66\n1\n",      # sign and spaces around ordinal
    "٣\n0\n66\n1\n",         # non-ASCII digit
    "65\n012\n",              # bad code character
    "65\n0\n66\n",            # missing code line
])
def test_malformed_tables_are_rejected(text):
    with pytest.raises(MalformedTableError):
        load_code_table(io.StringIO(text))


def test_same_record_twice_is_accepted():
    root = load_code_table(io.StringIO("65\n0\n65\n0\n66\n1\n"))
    assert generate_huffman_codes(root) == {65: "0", 66: "1"}


def test_max_symbol_limits_ordinals():
    assert generate_huffman_codes(load_code_table(["255\n", "0\n", "0\n", "1\n"], max_symbol=255)) == {255: "0", 0: "1"}
    with pytest.raises(MalformedTableError):
        load_code_table(["256\n", "0\n", "0\n", "1\n"], max_symbol=255)


class FailingText(io.StringIO):
    def write(self, s):
        raise OSError("disk full")


def test_save_failure_is_a_channel_failure():
    with pytest.raises(ChannelFailureError) as excinfo:
        save_code_table(build_huffman_tree(CLRS), FailingText())
    assert isinstance(excinfo.value.__cause__, OSError)


def failing_lines():
    yield "65\n"
    yield "0\n"
    raise OSError("unreadable")


def test_read_failure_is_a_channel_failure():
    with pytest.raises(ChannelFailureError) as excinfo:
        load_code_table(failing_lines())
    assert isinstance(excinfo.value.__cause__, OSError)
