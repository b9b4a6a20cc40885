import enum
from dataclasses import dataclass, field
from typing import List, Optional

# Blend coefficients are on a 0..256 scale; 256 is full strength.
BLEND_FULL = 256
BLEND_HALF = 128

# Element time of -1 holds the frame forever. Any other negative time is
# read the same way.
INFINITE_TIME = -1

# Tick count standing in for an infinite element in compiled tables.
# Large enough to never be reached, small enough that int32 sums stay valid.
HOLD_TICKS = 2 ** 30


class Flip(enum.Enum):
    HORIZONTAL = 'H'
    VERTICAL = 'V'
    BOTH = 'HV'


class BlendMode(enum.Enum):
    ADD = 'add'
    SUB = 'sub'


class ClsnKind(enum.Enum):
    CLSN1_DEFAULT = 'clsn1default'
    CLSN2_DEFAULT = 'clsn2default'
    CLSN1 = 'clsn1'
    CLSN2 = 'clsn2'

    @property
    def side(self) -> int:
        """1 for attack boxes, 2 for hurt boxes."""
        return 1 if self in (ClsnKind.CLSN1, ClsnKind.CLSN1_DEFAULT) else 2

    @property
    def is_default(self) -> bool:
        return self in (ClsnKind.CLSN1_DEFAULT, ClsnKind.CLSN2_DEFAULT)


class InterpolationKind(enum.Enum):
    OFFSET = 'offset'
    BLEND = 'blend'
    SCALE = 'scale'
    ANGLE = 'angle'


@dataclass(frozen=True)
class Blend:
    mode: BlendMode
    source: Optional[int] = None   # only set for ADD
    dest: Optional[int] = None

    @classmethod
    def add(cls, source: int = BLEND_FULL, dest: int = BLEND_FULL) -> 'Blend':
        return cls(BlendMode.ADD, source, dest)

    @classmethod
    def sub(cls) -> 'Blend':
        return cls(BlendMode.SUB)


@dataclass(frozen=True)
class ClsnBox:
    # Opposite corners; either ordering is legal and is kept as written.
    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def width(self) -> int:
        return self.x2 - self.x1

    @property
    def height(self) -> int:
        return self.y2 - self.y1


@dataclass
class Clsn:
    kind: ClsnKind
    boxes: List[ClsnBox] = field(default_factory=list)


@dataclass(frozen=True)
class Interpolate:
    kind: InterpolationKind
    index: int   # element at which the interpolation begins


@dataclass
class Element:
    group: int
    image: int
    x: int
    y: int
    time: int
    flip: Optional[Flip] = None
    blend: Optional[Blend] = None
    rotation: Optional[int] = None
    x_scale: Optional[float] = None
    y_scale: Optional[float] = None
    clsn1: Optional[List[ClsnBox]] = None
    clsn2: Optional[List[ClsnBox]] = None

    @property
    def holds(self) -> bool:
        return self.time < 0


@dataclass
class Action:
    number: int
    elements: List[Element] = field(default_factory=list)
    loop_start: int = 0
    interpolates: Optional[List[Interpolate]] = None

    def __post_init__(self):
        if not 0 <= self.loop_start <= len(self.elements):
            raise ValueError(
                f"loop_start {self.loop_start} outside 0..{len(self.elements)} "
                f"for action {self.number}")

    @property
    def loops(self) -> bool:
        """False when the loop point sits past the last element."""
        return self.loop_start < len(self.elements)

    @property
    def total_time(self) -> Optional[int]:
        """Sum of element times, or None if some element holds forever."""
        if any(e.holds for e in self.elements):
            return None
        return sum(e.time for e in self.elements)

    def interpolates_of(self, kind: InterpolationKind) -> List[int]:
        return [ip.index for ip in (self.interpolates or []) if ip.kind == kind]
