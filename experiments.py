"""
Experiment runner: Huffman codec over synthetic data

Every run goes through the full codec path: build the tree, save the code
table as text, encode with BitWriter, decode with BitReader. Two pipelines:
  huffman        - decode with the tree that was built from frequencies
  huffman+table  - decode with the tree reloaded from the saved code table

Outputs (in --outdir):
  - metrics.csv     (raw row per run per configuration)
  - summary.csv     (grouped mean/stdev)
  - *.png           (charts)

How to run:
  python experiments.py --outdir results --runs 5
  python experiments.py --outdir results --runs 3 --exp1_size_kb 256 --exp2_max_kb 2048
  python experiments.py --outdir results --exp1_generators uniform256,zipf128,english_like
"""

from __future__ import annotations

import argparse
import csv
import io
import math
import random
import statistics
import time
from dataclasses import asdict, dataclass, fields
from functools import partial
from itertools import groupby
from operator import attrgetter
from pathlib import Path
from typing import Callable, Dict, List, Sequence, Tuple

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from bitio import BitReader, BitWriter
from codec import encode, encoding_map, translate
from huffman import build_huffman_tree, load_code_table, save_code_table

PIPELINES = ("huffman", "huffman+table")


# Utilities

def now_ns() -> int:
    return time.perf_counter_ns()

def ns_to_ms(ns: int) -> float:
    return ns / 1_000_000.0

def freq_table(data: bytes) -> Dict[int, int]:
    ft: Dict[int, int] = {}
    for b in data:
        ft[b] = ft.get(b, 0) + 1
    return ft

def fixed_width_bits(ft: Dict[int, int]) -> int:
    # bits a fixed-length code over the same alphabet would need
    width = max(1, math.ceil(math.log2(len(ft)))) if ft else 0
    return width * sum(ft.values())


# Synthetic dataset generators

ENGLISH_WEIGHTS = {" ": 13.0, "\n": 1.5, "etaoinshrdlu": 6.0, "cmfwgypbvk": 2.5, "jxqz": 1.2}

def _weighted(size: int, symbols: Sequence[int], weights: Sequence[float], seed: int) -> bytes:
    return bytes(random.Random(seed).choices(symbols, weights=weights, k=size))

def gen_uniform(size: int, seed: int, alphabet: int = 256) -> bytes:
    return _weighted(size, range(alphabet), [1.0] * alphabet, seed)

def gen_repetitive(size: int, seed: int, dom_frac: float = 0.90, dominant: int = ord('A')) -> bytes:
    # dominant symbol takes dom_frac of the mass, the other 255 byte values share the rest
    weights = [dom_frac if b == dominant else (1.0 - dom_frac) / 255 for b in range(256)]
    return _weighted(size, range(256), weights, seed)

def gen_zipf_like(size: int, seed: int, alphabet: int = 128, s: float = 1.2) -> bytes:
    return _weighted(size, range(alphabet), [rank ** -s for rank in range(1, alphabet + 1)], seed)

def gen_english_like(size: int, seed: int) -> bytes:
    symbols: List[int] = []
    weights: List[float] = []
    for group, weight in ENGLISH_WEIGHTS.items():
        for ch in dict.fromkeys(group + group.upper()): # ordered, no duplicates
            symbols.append(ord(ch))
            weights.append(weight)
    return _weighted(size, symbols, weights, seed)

def gen_single_symbol(size: int, seed: int) -> bytes:
    return b"A" * size

GENERATOR_REGISTRY: Dict[str, Callable[[int, int], bytes]] = {
    "uniform256": gen_uniform,
    "uniform128": partial(gen_uniform, alphabet=128),
    "zipf128": gen_zipf_like,
    "zipf64": partial(gen_zipf_like, alphabet=64),
    "repetitive90": gen_repetitive,
    "repetitive99": partial(gen_repetitive, dom_frac=0.99),
    "english_like": gen_english_like,
    "single_symbol": gen_single_symbol,
}

def generate_dataset(name: str, size_bytes: int, seed: int) -> bytes:
    if name not in GENERATOR_REGISTRY:
        raise ValueError(f"unknown generator {name!r}, choose from {', '.join(GENERATOR_REGISTRY)}")
    return GENERATOR_REGISTRY[name](size_bytes, seed)


# Experiment runner

@dataclass
class MetricRow:
    exp_name: str
    dataset_name: str
    file_size_bytes: int
    run_id: int
    pipeline: str  # "huffman" or "huffman+table"
    unique_symbols: int

    build_ms: float
    table_ms: float
    encode_ms: float
    decode_ms: float
    total_ms: float

    table_bytes: int
    compressed_bytes: int
    data_bits: int
    fixed_width_bits: int
    pad_bits: int
    compression_ratio: float
    correctness_ok: int  # 1 or 0


def run_one(data: bytes, pipeline: str) -> MetricRow:
    if pipeline not in PIPELINES:
        raise ValueError(f"pipeline must be one of {PIPELINES}")
    ft = freq_table(data)

    t0 = now_ns()
    root = build_huffman_tree(ft)
    code_map = encoding_map(root)
    t1 = now_ns()

    # code table round trip, always saved so table_bytes is comparable
    table_text = io.StringIO()
    save_code_table(root, table_text)
    decode_root = root
    if pipeline == "huffman+table":
        table_text.seek(0)
        decode_root = load_code_table(table_text)
    t2 = now_ns()

    sink = io.BytesIO()
    with BitWriter(sink, close_sink=False) as writer:
        data_bits = encode(data, code_map, writer)
        pad_bits = writer.padding_bits
    packed = sink.getvalue()
    t3 = now_ns()

    with BitReader(io.BytesIO(packed)) as reader:
        decoded = bytes(translate(reader, decode_root))
    t4 = now_ns()

    build_ms, table_ms = ns_to_ms(t1 - t0), ns_to_ms(t2 - t1)
    encode_ms, decode_ms = ns_to_ms(t3 - t2), ns_to_ms(t4 - t3)

    return MetricRow(
        exp_name="",
        dataset_name="",
        file_size_bytes=len(data),
        run_id=0,
        pipeline=pipeline,
        unique_symbols=len(ft),
        build_ms=build_ms,
        table_ms=table_ms,
        encode_ms=encode_ms,
        decode_ms=decode_ms,
        total_ms=build_ms + table_ms + encode_ms + decode_ms,
        table_bytes=len(table_text.getvalue().encode("ascii")),
        compressed_bytes=len(packed),
        data_bits=data_bits,
        fixed_width_bits=fixed_width_bits(ft),
        pad_bits=pad_bits,
        compression_ratio=len(packed) / max(1, len(data)),
        correctness_ok=1 if decoded == data else 0,
    )


def write_csv(path: Path, rows: List[MetricRow]) -> None:
    with path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=[fl.name for fl in fields(MetricRow)])
        w.writeheader()
        w.writerows(asdict(r) for r in rows)


def mean_stdev(vals: List[float]) -> Tuple[float, float]:
    return statistics.mean(vals), (statistics.stdev(vals) if len(vals) > 1 else 0.0)


GROUP_KEY = ("exp_name", "dataset_name", "file_size_bytes", "pipeline")
SUMMARY_METRICS = ("compression_ratio", "encode_ms", "decode_ms", "build_ms", "table_ms", "total_ms")

def summarize(items: List[MetricRow]) -> Dict[str, float]:
    """One summary row: mean/stdev per metric plus size against a fixed-width code."""
    out: Dict[str, float] = {"n_runs": len(items)}
    for m in SUMMARY_METRICS:
        out[f"{m}_mean"], out[f"{m}_stdev"] = mean_stdev([getattr(x, m) for x in items])
    out["huffman_vs_fixed_width"] = statistics.mean(x.data_bits / max(1, x.fixed_width_bits) for x in items)
    out["correctness_ok_rate"] = statistics.mean(x.correctness_ok for x in items)
    return out

def group_summary(rows: List[MetricRow], out_path: Path) -> None:
    key_of = attrgetter(*GROUP_KEY)
    summaries = [
        {**dict(zip(GROUP_KEY, key)), **summarize(list(items))}
        for key, items in groupby(sorted(rows, key=key_of), key=key_of)
    ]
    if not summaries:
        return
    with out_path.open("w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=list(summaries[0]))
        w.writeheader()
        w.writerows(summaries)


# Plotting

def _line_chart(x, series: Dict[str, List[float]], xlabel: str, ylabel: str, title: str,
                out: Path, xticklabels: Sequence[str] = ()) -> None:
    plt.figure()
    for label, y in series.items():
        plt.plot(x, y, marker="o", label=label)
    if xticklabels:
        plt.xticks(x, xticklabels, rotation=20, ha="right")
    if xlabel:
        plt.xlabel(xlabel)
    plt.ylabel(ylabel)
    plt.title(title)
    if len(series) > 1:
        plt.legend()
    plt.tight_layout()
    plt.savefig(out, dpi=200)
    plt.close()


def plot_experiment_1(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp1_distribution"]
    if not exp_rows:
        return

    datasets = sorted(set(r.dataset_name for r in exp_rows))
    x = list(range(len(datasets)))

    def mean_for(dataset: str, pipeline: str, value: Callable[[MetricRow], float]) -> float:
        vals = [value(r) for r in exp_rows if r.dataset_name == dataset and r.pipeline == pipeline]
        return statistics.mean(vals) if vals else float("nan")

    _line_chart(x, {
        "huffman": [mean_for(d, "huffman", lambda r: r.data_bits) for d in datasets],
        "fixed width": [mean_for(d, "huffman", lambda r: r.fixed_width_bits) for d in datasets],
    }, "", "Encoded Bits", "Experiment 1: Huffman vs Fixed-Width Code Size",
        outdir / "exp1_code_size.png", datasets)

    _line_chart(x, {
        p: [mean_for(d, p, lambda r: r.decode_ms) for d in datasets] for p in PIPELINES
    }, "", "Decode Time (ms)", "Experiment 1: Decode Time by Distribution",
        outdir / "exp1_decode_time.png", datasets)

    _line_chart(x, {
        p: [mean_for(d, p, lambda r: r.total_ms) for d in datasets] for p in PIPELINES
    }, "", "Total Time (ms) (build + table + encode + decode)",
        "Experiment 1: Total Runtime by Distribution", outdir / "exp1_total_time.png", datasets)


def plot_experiment_2(rows: List[MetricRow], outdir: Path) -> None:
    exp_rows = [r for r in rows if r.exp_name == "exp2_size_scaling"]
    if not exp_rows:
        return

    for dist in sorted(set(r.dataset_name for r in exp_rows)):
        dist_rows = [r for r in exp_rows if r.dataset_name == dist]
        sizes = sorted(set(r.file_size_bytes for r in dist_rows))

        def mean_size(size: int, pipeline: str, field: str) -> float:
            vals = [getattr(r, field) for r in dist_rows if r.file_size_bytes == size and r.pipeline == pipeline]
            return statistics.mean(vals) if vals else float("nan")

        for field, ylabel, stem in (
            ("encode_ms", "Encode Time (ms)", "encode_time"),
            ("decode_ms", "Decode Time (ms)", "decode_time"),
            ("compression_ratio", "Compressed Bytes / Original Bytes", "compression_ratio"),
        ):
            _line_chart(sizes, {p: [mean_size(s, p, field) for s in sizes] for p in PIPELINES},
                        "File Size (bytes)", ylabel, f"Experiment 2: {ylabel} vs Size ({dist})",
                        outdir / f"exp2_{stem}_{dist}.png")


# Main

def parse_csv_list(s: str) -> List[str]:
    return [x.strip() for x in s.split(",") if x.strip()]

def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--outdir", type=str, default="results", help="Output directory for CSV and plots")
    ap.add_argument("--runs", type=int, default=5, help="Repetitions per configuration (>=3 recommended for timing)")
    ap.add_argument("--seed", type=int, default=123, help="Base random seed")

    # Experiment toggles
    ap.add_argument("--no_exp1", action="store_true", help="Disable experiment 1 (distribution)")
    ap.add_argument("--no_exp2", action="store_true", help="Disable experiment 2 (size scaling)")

    # Experiment 1 controls
    ap.add_argument("--exp1_size_kb", type=int, default=128, help="Experiment 1 fixed file size in KB")
    ap.add_argument("--exp1_generators", type=str,
                    default="uniform256,zipf128,repetitive90,english_like,single_symbol",
                    help="Comma-separated dataset generator names for experiment 1")

    # Experiment 2 controls
    ap.add_argument("--exp2_min_kb", type=int, default=4, help="Experiment 2 min size in KB (power-of-two growth)")
    ap.add_argument("--exp2_max_kb", type=int, default=1024, help="Experiment 2 max size in KB (power-of-two growth)")
    ap.add_argument("--exp2_generators", type=str, default="uniform256,zipf128,repetitive90",
                    help="Comma-separated dataset generator names for experiment 2")

    args = ap.parse_args()

    outdir = Path(args.outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    rows: List[MetricRow] = []

    def record(exp_name: str, dataset_name: str, run_id: int, data: bytes) -> None:
        for pipeline in PIPELINES:
            row = run_one(data, pipeline)
            row.exp_name = exp_name
            row.dataset_name = dataset_name
            row.run_id = run_id
            rows.append(row)

    # Experiment 1: distributions (fixed size)
    if not args.no_exp1:
        fixed_size = max(1, args.exp1_size_kb) * 1024
        for gen_name in parse_csv_list(args.exp1_generators):
            for run_id in range(1, args.runs + 1):
                data = generate_dataset(gen_name, fixed_size, args.seed + run_id)
                record("exp1_distribution", gen_name, run_id, data)

    # Experiment 2: size scaling (multiple sizes, powers of 2)
    if not args.no_exp2:
        sizes: List[int] = []
        s = max(1, args.exp2_min_kb) * 1024
        while s <= max(1, args.exp2_max_kb) * 1024:
            sizes.append(s)
            s *= 2

        for gen_name in parse_csv_list(args.exp2_generators):
            for size_b in sizes:
                for run_id in range(1, args.runs + 1):
                    data = generate_dataset(gen_name, size_b, args.seed + 10_000 + size_b + run_id)
                    record("exp2_size_scaling", gen_name, run_id, data)

    # Write raw and summary
    metrics_csv = outdir / "metrics.csv"
    summary_csv = outdir / "summary.csv"
    write_csv(metrics_csv, rows)
    group_summary(rows, summary_csv)

    # Plots
    plot_experiment_1(rows, outdir)
    plot_experiment_2(rows, outdir)

    ok_rate = sum(r.correctness_ok for r in rows) / max(1, len(rows))
    print(f"Wrote {len(rows)} rows to {metrics_csv}")
    print(f"Wrote grouped summary to {summary_csv}")
    print(f"Correctness rate across all runs: {ok_rate:.3f}")
    print("Charts saved in:", outdir.resolve())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
