"""Composite resource identifiers and existence checks.

Identifiers join identity fields with ``ID_SEPARATOR``. A variant segment
holds one of several mutually exclusive fields, told apart by a literal
prefix on the value (``v_100`` for a VLAN, ``vg_blue`` for a VLAN group);
an empty or unrecognized prefix means the segment is unscoped.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..errors import IdentityError
from .parser import statement_lines

logger = logging.getLogger(__name__)

ID_SEPARATOR = "_-_"
DEFAULT_ROUTING_INSTANCE = "default"


@dataclass(frozen=True)
class Segment:
    """One position in a composite identifier.

    Either ``field`` is set (a plain segment, with ``default`` used when
    the field is empty) or ``variants`` maps literal prefixes to fields.
    """
    field: Optional[str] = None
    default: str = ""
    variants: tuple[tuple[str, str], ...] = ()

    @property
    def is_variant(self) -> bool:
        return bool(self.variants)

    def label(self) -> str:
        if self.is_variant:
            return "[" + "|".join(f"{prefix}<{name}>" for prefix, name in self.variants) + "]"
        return f"<{self.field}>"


class IdentityCodec:
    """Compose and decompose identifiers for one resource type."""

    def __init__(self, *segments: Segment, min_components: Optional[int] = None):
        self.segments = segments
        self.min_components = len(segments) if min_components is None else min_components

    @property
    def format(self) -> str:
        return ID_SEPARATOR.join(segment.label() for segment in self.segments)

    def compose(self, options: Any) -> str:
        parts = []
        for segment in self.segments:
            if segment.is_variant:
                value = ""
                for prefix, name in segment.variants:
                    current = getattr(options, name, None)
                    if current:
                        value = f"{prefix}{current}"
                        break
                parts.append(value)
            else:
                parts.append(getattr(options, segment.field) or segment.default)
        return ID_SEPARATOR.join(parts)

    def decompose(self, resource_id: str) -> dict[str, str]:
        """
        Split an identifier into identity field values.

        Identifiers shorter than the full format but with at least
        ``min_components`` parts are accepted: variant segments are
        dropped first, then trailing plain segments take their defaults.

        Raises:
            IdentityError: If the identifier has too few components
        """
        parts = resource_id.split(ID_SEPARATOR) if resource_id else []
        if len(parts) < self.min_components:
            raise IdentityError(
                f'missing element(s) in id with separator "{ID_SEPARATOR}" '
                f"(id must be {self.format})"
            )
        if len(parts) > len(self.segments):
            raise IdentityError(
                f'too many elements in id with separator "{ID_SEPARATOR}" '
                f"(id must be {self.format})"
            )

        segments = list(self.segments)
        if len(parts) < len(segments):
            # Older identifiers have no variant segment.
            segments = [s for s in segments if not s.is_variant]

        values: dict[str, str] = {}
        for segment in self.segments:
            if segment.is_variant:
                for _, name in segment.variants:
                    values[name] = ""
            else:
                values[segment.field] = segment.default

        for segment, part in zip(segments, parts):
            if segment.is_variant:
                for prefix, name in segment.variants:
                    if part.startswith(prefix):
                        values[name] = part[len(prefix):]
                        break
            elif part:
                values[segment.field] = part

        first = self.segments[0]
        if not first.is_variant and not values[first.field]:
            raise IdentityError(f"empty {first.field} in id (id must be {self.format})")
        return values


async def exists(session: Any, path: str) -> bool:
    """Whether ``path`` has any configuration on the device."""
    output = await session.command(f"show configuration {path} | display set")
    found = bool(statement_lines(output))
    logger.debug(f"Existence check for '{path}': {found}")
    return found
