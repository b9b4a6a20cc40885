"""
Per-tick playback queries over a CompiledAction. All functions are pure JAX
and can be jitted or vmapped over ticks.
"""
import jax.numpy as jnp

from air_jax.compiler import CompiledAction


def wrap_tick(anim: CompiledAction, tick):
    """Map an absolute tick into the action's own timeline.

    Past the end, ticks wrap into [loop_tick, total_ticks). With no loop
    (loop_start == n) they stay on the last tick.
    """
    tick = jnp.asarray(tick, dtype=jnp.int32)
    loop_len = anim.total_ticks - anim.loop_tick
    looped = anim.loop_tick + (tick - anim.total_ticks) % jnp.maximum(loop_len, 1)
    held = jnp.maximum(anim.total_ticks - 1, 0)
    past_end = jnp.where(loop_len > 0, looped, held)
    return jnp.where(tick < anim.total_ticks, tick, past_end)


def element_index_at(anim: CompiledAction, tick):
    """Index of the element shown at ``tick``."""
    local = wrap_tick(anim, tick)
    idx = jnp.searchsorted(anim.starts, local, side='right') - 1
    return jnp.clip(idx, 0, anim.n_elements - 1)


def _next_index(anim: CompiledAction, idx):
    n = anim.n_elements
    wrap_to = jnp.where(anim.loop_start < n, anim.loop_start, idx)
    return jnp.where(idx + 1 < n, idx + 1, wrap_to)


def offset_at(anim: CompiledAction, tick):
    """(x, y) draw offset at ``tick`` as float32.

    Elements flagged by an offset interpolation move linearly toward the
    next element's offset over their duration.
    """
    local = wrap_tick(anim, tick)
    idx = element_index_at(anim, tick)
    nxt = _next_index(anim, idx)
    duration = anim.durations[idx]
    elapsed = (local - anim.starts[idx]).astype(jnp.float32)
    frac = jnp.where(anim.interp_offset[idx] & (duration > 0),
                     elapsed / jnp.maximum(duration, 1).astype(jnp.float32), 0.0)
    start = anim.offsets[idx].astype(jnp.float32)
    end = anim.offsets[nxt].astype(jnp.float32)
    return start + (end - start) * frac


def clsn_at(anim: CompiledAction, tick, side=2):
    """Collision boxes active at ``tick``: ([max_boxes, 4], [max_boxes] mask)."""
    idx = element_index_at(anim, tick)
    if side == 1:
        return anim.clsn1[idx], anim.clsn1_mask[idx]
    if side == 2:
        return anim.clsn2[idx], anim.clsn2_mask[idx]
    raise ValueError(f"clsn side must be 1 or 2, got {side}")
