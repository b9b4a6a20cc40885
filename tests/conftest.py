"""Shared test fixtures and constants for air-jax tests."""
import os

from air_jax.data_model import Action, Element

DATA_DIR = os.path.join(os.path.dirname(__file__), 'data')
SAMPLE_AIR = os.path.join(DATA_DIR, 'sample.air')

# Smallest valid document: one action, one bare element.
MINIMAL_AIR = """\
[Begin Action 0]
0,0, 5,-3, 3
"""


def make_action(times, loop_start=0, offsets=None, interpolates=None, number=0):
    """Build an Action directly from element times (and optional (x, y) offsets)."""
    if offsets is None:
        offsets = [(0, 0)] * len(times)
    elements = [Element(group=number, image=i, x=x, y=y, time=t)
                for i, (t, (x, y)) in enumerate(zip(times, offsets))]
    return Action(number=number, elements=elements, loop_start=loop_start,
                  interpolates=interpolates)
