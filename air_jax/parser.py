"""
AIR animation parser.
Reads .air text (or files) and produces a mapping of action number → Action.
"""
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

from lark import Lark, Tree
from lark.exceptions import UnexpectedInput

from air_jax.builder import build_action
from air_jax.data_model import Action
from air_jax.errors import (
    AirParseErrors, AirSemanticError, AirSyntaxError, UnexpectedNode,
)


# ── Settings ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ParserSettings:
    # 'strict' stops at the first failing action; 'collect' builds the rest
    # and raises AirParseErrors at the end.
    errors: str = 'strict'
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger('air_jax'))
    encoding: str = 'utf-8'

    def __post_init__(self):
        if self.errors not in ('strict', 'collect'):
            raise ValueError(f"errors must be 'strict' or 'collect', got {self.errors!r}")

    def __call__(self, **kwargs: Any) -> 'ParserSettings':
        return replace(self, **kwargs)


DEFAULT_SETTINGS = ParserSettings()


# ── Recognizer ────────────────────────────────────────────────────────

def _load_grammar() -> str:
    return Path(__file__).with_name('grammar.lark').read_text(encoding='utf-8')


_parser = Lark(_load_grammar(), start='file', parser='lalr', propagate_positions=True)


def recognize(text: str) -> Tree:
    """Run the grammar over ``text`` and return the ``file`` tree."""
    if not text.endswith('\n'):
        text += '\n'
    try:
        return _parser.parse(text)
    except UnexpectedInput as exc:
        expected = getattr(exc, 'expected', None) or getattr(exc, 'allowed', None) or ()
        raise AirSyntaxError(exc.line, exc.column, expected) from exc


# ── Main entry points ─────────────────────────────────────────────────

def parse_air_text(text: str, settings: Optional[ParserSettings] = None) -> Dict[int, Action]:
    """
    Parse AIR text into a dict of action number → Action.

    A number declared twice keeps the later action.
    """
    settings = settings or DEFAULT_SETTINGS
    log = settings.logger
    tree = recognize(text)

    actions: Dict[int, Action] = {}
    failures = []
    for node in tree.children:
        if not isinstance(node, Tree) or node.data != 'action':
            kind = str(node.data) if isinstance(node, Tree) else getattr(node, 'type', str(node))
            raise UnexpectedNode(kind, expected='action')
        try:
            action = build_action(node.children, log)
        except AirSemanticError as exc:
            if settings.errors == 'strict':
                raise
            log.warning("skipping action block: %s", exc)
            failures.append(exc)
            continue
        if action.number in actions:
            log.debug("action %d declared again; replacing the earlier one", action.number)
        actions[action.number] = action

    if failures:
        raise AirParseErrors(failures, actions)
    return actions


def parse_air(air_file, settings: Optional[ParserSettings] = None) -> Dict[int, Action]:
    """
    Parse an AIR file into a dict of action number → Action.

    Args:
        air_file: path to the .air animation file
        settings: ParserSettings (encoding, error mode, logger)

    Returns:
        Dict[int, Action]
    """
    settings = settings or DEFAULT_SETTINGS
    with open(air_file, encoding=settings.encoding) as f:
        air_text = f.read()
    return parse_air_text(air_text, settings)
