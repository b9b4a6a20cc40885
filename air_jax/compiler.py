"""
Compiler: converts parsed Actions into fixed-shape JAX tables an engine can
index per tick (see timeline.py).
"""
from typing import Dict, List, Optional

import numpy as np
import jax.numpy as jnp
import flax.struct

from air_jax.data_model import (
    HOLD_TICKS, Action, ClsnBox, InterpolationKind,
)


@flax.struct.dataclass
class CompiledAction:
    groups: jnp.ndarray         # [n] int32
    images: jnp.ndarray         # [n] int32
    offsets: jnp.ndarray        # [n, 2] int32 (x, y)
    durations: jnp.ndarray      # [n] int32, holds mapped to HOLD_TICKS
    starts: jnp.ndarray         # [n] int32, first tick of each element
    interp_offset: jnp.ndarray  # [n] bool
    clsn1: jnp.ndarray          # [n, max_boxes, 4] int32
    clsn1_mask: jnp.ndarray     # [n, max_boxes] bool
    clsn2: jnp.ndarray          # [n, max_boxes, 4] int32
    clsn2_mask: jnp.ndarray     # [n, max_boxes] bool
    total_ticks: jnp.int32
    loop_tick: jnp.int32        # first tick of the loop_start element
    loop_start: jnp.int32
    number: int = flax.struct.field(pytree_node=False)

    @property
    def n_elements(self) -> int:
        return self.groups.shape[0]


def _durations(times: np.ndarray) -> np.ndarray:
    """Map element times to tick counts.

    A negative time holds the frame: it becomes HOLD_TICKS and every element
    after it is unreachable, so it gets 0.
    """
    holds = times < 0
    after_hold = (np.cumsum(holds) - holds) > 0
    out = np.where(holds, HOLD_TICKS, times)
    out = np.where(after_hold, 0, out)
    return out.astype(np.int32)


def _pack_boxes(per_element: List[Optional[List[ClsnBox]]], max_boxes: int):
    n = len(per_element)
    boxes = np.zeros((n, max_boxes, 4), dtype=np.int32)
    mask = np.zeros((n, max_boxes), dtype=bool)
    for i, elem_boxes in enumerate(per_element):
        for j, b in enumerate(elem_boxes or []):
            boxes[i, j] = (b.x1, b.y1, b.x2, b.y2)
            mask[i, j] = True
    return boxes, mask


def compile_action(action: Action) -> CompiledAction:
    """
    Compile one Action into a CompiledAction.
    """
    n = len(action.elements)
    if n == 0:
        raise ValueError(f"Action {action.number} has no elements to compile")

    elems = action.elements
    times = np.array([e.time for e in elems], dtype=np.int64)
    durations = _durations(times)
    starts = np.concatenate([[0], np.cumsum(durations)[:-1]]).astype(np.int32)
    total = int(durations.sum())
    loop_tick = int(starts[action.loop_start]) if action.loop_start < n else total

    interp_offset = np.zeros(n, dtype=bool)
    for idx in action.interpolates_of(InterpolationKind.OFFSET):
        if idx < n:
            interp_offset[idx] = True

    # At least 1 to keep shapes valid
    max_boxes = max([len(e.clsn1 or []) for e in elems]
                    + [len(e.clsn2 or []) for e in elems] + [1])
    clsn1, clsn1_mask = _pack_boxes([e.clsn1 for e in elems], max_boxes)
    clsn2, clsn2_mask = _pack_boxes([e.clsn2 for e in elems], max_boxes)

    return CompiledAction(
        groups=jnp.asarray([e.group for e in elems], dtype=jnp.int32),
        images=jnp.asarray([e.image for e in elems], dtype=jnp.int32),
        offsets=jnp.asarray([(e.x, e.y) for e in elems], dtype=jnp.int32),
        durations=jnp.asarray(durations),
        starts=jnp.asarray(starts),
        interp_offset=jnp.asarray(interp_offset),
        clsn1=jnp.asarray(clsn1),
        clsn1_mask=jnp.asarray(clsn1_mask),
        clsn2=jnp.asarray(clsn2),
        clsn2_mask=jnp.asarray(clsn2_mask),
        total_ticks=jnp.int32(total),
        loop_tick=jnp.int32(loop_tick),
        loop_start=jnp.int32(action.loop_start),
        number=action.number,
    )


def compile_actions(actions: Dict[int, Action]) -> Dict[int, CompiledAction]:
    """Compile every non-empty action of a parse result."""
    return {num: compile_action(a) for num, a in actions.items() if a.elements}
