"""Width specifiers and their resolution against a source's native width."""

from dataclasses import dataclass
from typing import Any, List, Sequence, Union

from .exceptions import InvalidWidthError


@dataclass(frozen=True)
class ExplicitWidth:
    """A caller-supplied pixel width."""

    value: int


@dataclass(frozen=True)
class OriginalWidth:
    """Use the source's native width (``None`` or ``"auto"``)."""


WidthSpec = Union[ExplicitWidth, OriginalWidth]


@dataclass(frozen=True)
class ResolvedWidth:
    """A width specifier paired with the concrete width it resolved to."""

    requested: Any
    spec: WidthSpec
    width: int

    @property
    def denotes_original(self) -> bool:
        return isinstance(self.spec, OriginalWidth)


def parse_width_spec(raw: Any) -> WidthSpec:
    """
    Parse a raw width specifier into the tagged union.

    Accepts positive ints, ``None``, ``"auto"`` and digit strings (the CLI
    passes everything as strings).

    Raises:
        InvalidWidthError: For booleans, floats, non-positive or non-numeric values
    """
    if raw is None:
        return OriginalWidth()
    if isinstance(raw, str):
        text = raw.strip().lower()
        if text in ("auto", "null", "none", "original"):
            return OriginalWidth()
        if not text.isdigit():
            raise InvalidWidthError(f"Invalid width: {raw!r}")
        raw = int(text)
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise InvalidWidthError(f"Width must be a positive integer, got {raw!r}")
    if raw <= 0:
        raise InvalidWidthError(f"Width must be a positive integer, got {raw!r}")
    return ExplicitWidth(raw)


def resolve_widths(requested: Sequence[Any], native_width: int) -> List[ResolvedWidth]:
    """
    Resolve width specifiers in request order, keeping duplicates.

    Args:
        requested: Raw width specifiers
        native_width: The source's decoded width

    Returns:
        One ``ResolvedWidth`` per specifier
    """
    resolved = []
    for raw in requested:
        spec = parse_width_spec(raw)
        width = native_width if isinstance(spec, OriginalWidth) else spec.value
        resolved.append(ResolvedWidth(requested=raw, spec=spec, width=width))
    return resolved


def select_output_widths(
    resolved: Sequence[ResolvedWidth], native_width: int, allow_upscale: bool = False
) -> List[ResolvedWidth]:
    """
    Pick the widths that become outputs.

    Widths larger than the source are dropped unless upscaling is allowed; if
    that leaves nothing, the source width is used. Duplicate widths collapse
    onto their first occurrence.
    """
    candidates = [
        item for item in resolved if allow_upscale or item.width <= native_width
    ]
    if not candidates:
        candidates = [ResolvedWidth(requested=None, spec=OriginalWidth(), width=native_width)]

    selected: List[ResolvedWidth] = []
    seen = set()
    for item in candidates:
        if item.width in seen:
            continue
        seen.add(item.width)
        selected.append(item)
    return selected
