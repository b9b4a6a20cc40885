"""
Benchmark: parse and compile throughput on a synthetic AIR document.
Measures actions/second for parse_air_text and compile_actions.
"""
import time

import jax

from air_jax.compiler import compile_actions
from air_jax.parser import parse_air_text
from air_jax.timeline import element_index_at


def make_document(n_actions=500, n_elements=12):
    lines = []
    for a in range(n_actions):
        lines.append(f"[Begin Action {a}]")
        lines.append("Clsn2Default: 2")
        lines.append(" Clsn2[0] = -13, 0, 16,-79")
        lines.append(" Clsn2[1] = 5,-79, -5,-93")
        for e in range(n_elements):
            if e == n_elements // 2:
                lines.append("Loopstart")
                lines.append("Clsn1: 1")
                lines.append(" Clsn1[0] = 17,-80, 65,-68")
            lines.append(f"{a},{e}, {e},-{e}, 4, H, AS256D128")
        lines.append("")
    return "\n".join(lines)


def benchmark(n_actions=500, n_elements=12, repeats=5):
    text = make_document(n_actions, n_elements)
    print(f"\n{'='*60}")
    print(f"  {n_actions} actions x {n_elements} elements  |  {len(text):,} bytes")
    print(f"{'='*60}")

    t0 = time.time()
    for _ in range(repeats):
        actions = parse_air_text(text)
    elapsed = (time.time() - t0) / repeats
    print(f"  Parse: {elapsed * 1000:.1f} ms  ({n_actions / elapsed:,.0f} actions/sec)")

    t0 = time.time()
    compiled = compile_actions(actions)
    print(f"  Compile: {(time.time() - t0) * 1000:.1f} ms")

    lookup = jax.jit(element_index_at)
    anim = compiled[0]
    jax.block_until_ready(lookup(anim, 0))
    t0 = time.time()
    for tick in range(1000):
        idx = lookup(anim, tick)
    jax.block_until_ready(idx)
    print(f"  Lookup (jit): {(time.time() - t0) * 1000:.1f} ms / 1000 ticks")


if __name__ == '__main__':
    benchmark(n_actions=100)
    benchmark(n_actions=1000)
