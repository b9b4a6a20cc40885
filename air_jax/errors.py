from typing import Dict, Iterable, List, Optional, Sequence


def _location(token) -> Optional[str]:
    line = getattr(token, 'line', None)
    column = getattr(token, 'column', None)
    if line is None or line < 1:
        return None
    return f"line {line}, column {column if column is not None else 1}"


class AirError(Exception):
    """Base AIR error."""


class AirSemanticError(AirError):
    """A node was recognized but its content cannot be built into the model."""

    def __init__(self, message: str, *, token=None):
        where = _location(token)
        if where:
            message = f"{message} ({where})"
        super().__init__(message)
        self.line = getattr(token, 'line', None)
        self.column = getattr(token, 'column', None)


class AirSyntaxError(AirError):
    """The document does not conform to the AIR grammar."""

    def __init__(self, line: int, column: int, expected: Iterable[str] = ()):
        self.line = line
        self.column = column
        self.expected = sorted(expected)
        message = f"Syntax error at line {line}, column {column}"
        if self.expected:
            message += f"; expected one of: {', '.join(self.expected)}"
        super().__init__(message)

    @property
    def position(self):
        return self.line, self.column


class InvalidNumericLiteral(AirSemanticError):
    def __init__(self, field: str, text: str, *, token=None):
        super().__init__(f"Invalid number for {field}: {text!r}", token=token)
        self.field = field
        self.text = text


class InvalidModifierValue(AirSemanticError):
    def __init__(self, modifier: str, text: str, *, token=None):
        super().__init__(f"Invalid {modifier} value: {text!r}", token=token)
        self.modifier = modifier
        self.text = text


class UnexpectedNode(AirSemanticError):
    def __init__(self, kind: str, *, expected: Optional[str] = None, token=None):
        message = f"Unexpected node: {kind}"
        if expected:
            message += f" (expected {expected})"
        super().__init__(message, token=token)
        self.kind = kind
        self.expected = expected


class AirParseErrors(AirError):
    """Every block error from a parse that kept going past failures."""

    def __init__(self, errors: Sequence[AirSemanticError], actions: Dict[int, object]):
        self.errors: List[AirSemanticError] = list(errors)
        self.actions = actions
        lines = '\n'.join(f"  - {err}" for err in self.errors)
        super().__init__(f"{len(self.errors)} action(s) failed to build:\n{lines}")
