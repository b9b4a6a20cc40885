#!/usr/bin/env python
"""
Parse an AIR animation file and print a per-action summary.

Usage:
    python scripts/air_summary.py kfm.air                  # table of actions
    python scripts/air_summary.py kfm.air --action 200     # one action, element by element
    python scripts/air_summary.py kfm.air --json           # full dump as JSON
    python scripts/air_summary.py kfm.air --collect        # report every broken action
"""

import argparse
import dataclasses
import enum
import json
import logging
import sys

from air_jax.errors import AirError, AirParseErrors
from air_jax.parser import ParserSettings, parse_air


def _json_default(obj):
    if isinstance(obj, enum.Enum):
        return obj.name
    raise TypeError(f"Not JSON serializable: {type(obj).__name__}")


def _print_table(actions):
    print(f"{'action':>8}  {'elements':>8}  {'loop':>5}  {'ticks':>7}  interpolates")
    for number in sorted(actions):
        a = actions[number]
        ticks = a.total_time if a.total_time is not None else 'hold'
        interp = ', '.join(f"{ip.kind.name.lower()}@{ip.index}" for ip in (a.interpolates or []))
        print(f"{number:>8}  {len(a.elements):>8}  {a.loop_start:>5}  {ticks:>7}  {interp}")


def _print_action(action):
    print(f"Action {action.number}  (loop_start={action.loop_start})")
    for i, e in enumerate(action.elements):
        extras = []
        if e.flip is not None:
            extras.append(f"flip={e.flip.name}")
        if e.blend is not None:
            extras.append(f"blend={e.blend.mode.name}({e.blend.source},{e.blend.dest})")
        if e.x_scale is not None or e.y_scale is not None:
            extras.append(f"scale=({e.x_scale},{e.y_scale})")
        if e.rotation is not None:
            extras.append(f"angle={e.rotation}")
        extras.append(f"clsn1={len(e.clsn1) if e.clsn1 is not None else '-'}")
        extras.append(f"clsn2={len(e.clsn2) if e.clsn2 is not None else '-'}")
        marker = '>' if i == action.loop_start else ' '
        print(f" {marker}{i:3d}: {e.group},{e.image} @({e.x},{e.y}) t={e.time}  {' '.join(extras)}")


def main():
    parser = argparse.ArgumentParser(
        description="Summarize the actions of an AIR animation file"
    )
    parser.add_argument("air_file", help="Path to the .air file")
    parser.add_argument(
        "--action", type=int, default=None,
        help="Print the elements of a single action",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Dump the parsed actions as JSON",
    )
    parser.add_argument(
        "--collect", action="store_true",
        help="Keep going past broken actions and report all of them",
    )
    parser.add_argument(
        "--encoding", type=str, default="utf-8",
        help="Text encoding of the file (default: utf-8)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Show parser diagnostics",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    settings = ParserSettings(errors='collect' if args.collect else 'strict',
                              encoding=args.encoding)

    status = 0
    try:
        actions = parse_air(args.air_file, settings)
    except AirParseErrors as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        actions = exc.actions
        status = 1
    except AirError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.action is not None:
        if args.action not in actions:
            print(f"ERROR: action {args.action} not found", file=sys.stderr)
            sys.exit(1)
        actions = {args.action: actions[args.action]}

    if args.json:
        payload = {str(num): dataclasses.asdict(a) for num, a in sorted(actions.items())}
        print(json.dumps(payload, indent=2, default=_json_default))
    elif args.action is not None:
        _print_action(actions[args.action])
    else:
        _print_table(actions)
    sys.exit(status)


if __name__ == "__main__":
    main()
