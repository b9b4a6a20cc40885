"""
Semantic builders for AIR: walk rule-tagged syntax nodes and assemble
Elements and Actions.

ElementBuilder handles one frame line. ActionBuilder is the per-block state
machine: it owns the one-shot and default collision-box slots for each side,
the loop point and the interpolation keyframes.
"""
import logging
from typing import Dict, Iterable, List, Optional

from lark import Token, Tree

from air_jax.data_model import (
    BLEND_FULL, BLEND_HALF,
    Action, Blend, Clsn, ClsnBox, ClsnKind, Element, Flip, Interpolate,
    InterpolationKind,
)
from air_jax.errors import (
    InvalidModifierValue, InvalidNumericLiteral, UnexpectedNode,
)

logger = logging.getLogger('air_jax')


# ── Spelling tables (keys are upper-cased source text) ────────────────

FLIP_MAP = {
    'H': Flip.HORIZONTAL,
    'V': Flip.VERTICAL,
    'HV': Flip.BOTH,
    'VH': Flip.BOTH,
}

BLEND_MAP = {
    'A': Blend.add(BLEND_FULL, BLEND_FULL),
    'A1': Blend.add(BLEND_FULL, BLEND_HALF),
    'S': Blend.sub(),
}

CLSN_KIND_MAP = {
    'CLSN1DEFAULT': ClsnKind.CLSN1_DEFAULT,
    'CLSN2DEFAULT': ClsnKind.CLSN2_DEFAULT,
    'CLSN1': ClsnKind.CLSN1,
    'CLSN2': ClsnKind.CLSN2,
}

INTERPOLATION_MAP = {
    'OFFSET': InterpolationKind.OFFSET,
    'BLEND': InterpolationKind.BLEND,
    'SCALE': InterpolationKind.SCALE,
    'ANGLE': InterpolationKind.ANGLE,
}

BASE_FIELDS = ('group', 'image', 'x', 'y', 'time')


# ── Token helpers ─────────────────────────────────────────────────────

def _tokens(node: Tree) -> List[Token]:
    return [c for c in node.children if isinstance(c, Token)]


def _first_token(node: Tree) -> Optional[Token]:
    for child in node.children:
        if isinstance(child, Token):
            return child
        if isinstance(child, Tree):
            tok = _first_token(child)
            if tok is not None:
                return tok
    return None


def parse_int(field_name: str, token) -> int:
    try:
        return int(str(token))
    except ValueError:
        raise InvalidNumericLiteral(field_name, str(token), token=token) from None


def parse_decimal(field_name: str, token) -> float:
    try:
        return float(str(token))
    except ValueError:
        raise InvalidNumericLiteral(field_name, str(token), token=token) from None


def _node_kind(node) -> str:
    if isinstance(node, Tree):
        return str(node.data)
    if isinstance(node, Token):
        return node.type
    return type(node).__name__


# ── Element builder ───────────────────────────────────────────────────

class ElementBuilder:
    """Accumulates one frame: five required values, then modifiers in order."""

    def __init__(self):
        self._base: Dict[str, int] = {}
        self._options: Dict[str, object] = {}

    def set_base(self, tokens):
        if len(tokens) != len(BASE_FIELDS):
            raise UnexpectedNode(
                'base_element', expected=f"{len(BASE_FIELDS)} values",
                token=tokens[0] if tokens else None)
        for name, tok in zip(BASE_FIELDS, tokens):
            self._base[name] = parse_int(name, tok)

    def apply_modifier(self, node: Tree):
        kind = _node_kind(node)
        if kind == 'flip':
            tok = _tokens(node)[0]
            flip = FLIP_MAP.get(str(tok).upper())
            if flip is None:
                raise InvalidModifierValue('flip', str(tok), token=tok)
            self._options['flip'] = flip
        elif kind == 'blend':
            self._options['blend'] = self._blend(node)
        elif kind in ('x_scale', 'y_scale'):
            self._options[kind] = parse_decimal(kind, _tokens(node)[0])
        elif kind == 'rotation':
            self._options['rotation'] = parse_int('rotation', _tokens(node)[0])
        else:
            raise UnexpectedNode(kind, expected='element option',
                                 token=_first_token(node) if isinstance(node, Tree) else node)

    def _blend(self, node: Tree) -> Blend:
        child = node.children[0]
        if isinstance(child, Tree) and child.data == 'blend_add':
            src_tok, dst_tok = _tokens(child)
            return Blend.add(parse_int('blend source', src_tok),
                             parse_int('blend dest', dst_tok))
        blend = BLEND_MAP.get(str(child).upper())
        if blend is None:
            raise InvalidModifierValue('blend', str(child), token=child)
        return blend

    def build(self) -> Element:
        if len(self._base) != len(BASE_FIELDS):
            raise UnexpectedNode('action_element', expected='base_element')
        return Element(**self._base, **self._options)


def build_element(node: Tree) -> Element:
    """Build an Element from an ``action_element`` node."""
    eb = ElementBuilder()
    for child in node.children:
        kind = _node_kind(child)
        if kind == 'base_element':
            eb.set_base(_tokens(child))
        elif kind == 'modifiers':
            for modifier in child.children:
                eb.apply_modifier(modifier)
        else:
            raise UnexpectedNode(kind, expected='base_element or modifiers',
                                 token=_first_token(child) if isinstance(child, Tree) else child)
    return eb.build()


def build_clsn(node: Tree, log: Optional[logging.Logger] = None) -> Clsn:
    """Build a Clsn declaration from a ``clsn_group`` node."""
    log = log or logger
    header, *box_nodes = node.children
    if _node_kind(header) != 'clsn_def':
        raise UnexpectedNode(_node_kind(header), expected='clsn_def',
                             token=_first_token(header) if isinstance(header, Tree) else header)
    kind_tok, count_tok = _tokens(header)
    kind = CLSN_KIND_MAP.get(str(kind_tok).upper())
    if kind is None:
        raise InvalidModifierValue('clsn', str(kind_tok), token=kind_tok)
    declared = parse_int(f"{kind_tok} count", count_tok)

    boxes = []
    for box in box_nodes:
        if _node_kind(box) != 'clsn_box':
            raise UnexpectedNode(_node_kind(box), expected='clsn_box',
                                 token=_first_token(box) if isinstance(box, Tree) else box)
        tokens = _tokens(box)
        tags = [t for t in tokens if t.type == 'CLSN_TAG']
        numbers = [t for t in tokens if t.type != 'CLSN_TAG']
        if tags:
            tag_kind = CLSN_KIND_MAP.get(str(tags[0]).upper())
            if tag_kind is None or tag_kind.side != kind.side:
                log.warning("%s box at line %s sits under %s; keeping it as clsn%d",
                            tags[0], getattr(tags[0], 'line', '?'), kind_tok, kind.side)
        coords = [parse_int(name, tok)
                  for name, tok in zip(('x1', 'y1', 'x2', 'y2'), numbers)]
        boxes.append(ClsnBox(*coords))

    if declared != len(boxes):
        log.warning("%s declares %d box(es) but lists %d at line %s; using the listed boxes",
                    kind_tok, declared, len(boxes), getattr(kind_tok, 'line', '?'))
    return Clsn(kind=kind, boxes=boxes)


# ── Action builder ────────────────────────────────────────────────────

class ActionBuilder:
    """
    Per-block accumulator for one Action.

    Collision boxes travel on two independent channels per side: a pending
    (one-shot) slot consumed by the next element, and a default slot copied
    onto every element that has no pending boxes. Loop start and
    interpolation keyframes record the element count at the moment they are
    declared, i.e. they point at the next element to be appended.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self.log = log or logger
        self.number: Optional[int] = None
        self.elements: List[Element] = []
        self.pending_clsn1: Optional[List[ClsnBox]] = None
        self.pending_clsn2: Optional[List[ClsnBox]] = None
        self.default_clsn1: Optional[List[ClsnBox]] = None
        self.default_clsn2: Optional[List[ClsnBox]] = None
        self.loop_start = 0
        self.interpolates: Optional[List[Interpolate]] = None

    # Operations

    def declare_number(self, number: int):
        self.number = number

    def append_element(self, element: Element):
        if self.pending_clsn1 is not None:
            element.clsn1 = self.pending_clsn1
            self.pending_clsn1 = None
        elif self.default_clsn1 is not None:
            element.clsn1 = list(self.default_clsn1)

        if self.pending_clsn2 is not None:
            element.clsn2 = self.pending_clsn2
            self.pending_clsn2 = None
        elif self.default_clsn2 is not None:
            element.clsn2 = list(self.default_clsn2)

        self.elements.append(element)

    def declare_clsn(self, clsn: Clsn):
        slot = f"{'default' if clsn.kind.is_default else 'pending'}_clsn{clsn.kind.side}"
        setattr(self, slot, list(clsn.boxes))

    def declare_loop_start(self):
        self.loop_start = len(self.elements)

    def declare_interpolation(self, kind: InterpolationKind):
        if self.interpolates is None:
            self.interpolates = []
        self.interpolates.append(Interpolate(kind=kind, index=len(self.elements)))

    # Node dispatch

    def feed(self, node):
        kind = _node_kind(node)
        if kind == 'action_def':
            tok = _tokens(node)[0]
            number = parse_int('action number', tok)
            if number < 0:
                raise InvalidNumericLiteral('action number', str(tok), token=tok)
            self.declare_number(number)
        elif kind == 'action_element':
            self.append_element(build_element(node))
        elif kind == 'clsn_group':
            self.declare_clsn(build_clsn(node, self.log))
        elif kind == 'loopstart':
            self.declare_loop_start()
        elif kind == 'interpolation':
            tok = _tokens(node)[0]
            ikind = INTERPOLATION_MAP.get(str(tok).upper())
            if ikind is None:
                raise InvalidModifierValue('interpolation', str(tok), token=tok)
            self.declare_interpolation(ikind)
        else:
            raise UnexpectedNode(kind, token=_first_token(node) if isinstance(node, Tree) else node)

    def build(self) -> Action:
        if self.number is None:
            raise UnexpectedNode('action', expected='action_def')
        for side, pending in ((1, self.pending_clsn1), (2, self.pending_clsn2)):
            if pending is not None:
                self.log.debug("action %d: discarding clsn%d with no element after it",
                               self.number, side)
        return Action(
            number=self.number,
            elements=self.elements,
            loop_start=self.loop_start,
            interpolates=self.interpolates,
        )


def build_action(nodes: Iterable, log: Optional[logging.Logger] = None) -> Action:
    """Build one Action from the children of an ``action`` node."""
    ab = ActionBuilder(log)
    for node in nodes:
        ab.feed(node)
    return ab.build()
