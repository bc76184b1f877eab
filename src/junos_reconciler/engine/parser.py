"""Statement Parser: relative ``display set`` output back to an options tree.

Lines are matched against field keywords, longest keyword first, and
applied cumulatively to a single options tree:

- flags match their keyword exactly
- scalars match ``"<keyword> "`` and convert the remaining text
- singleton blocks are read, modified and replaced
- keyed blocks are found (or created) by their key token and merged
"""
import dataclasses
import logging
from functools import lru_cache
from typing import Any, Iterable, Optional, Union

from ..errors import ParseError
from .schema import Kind, FieldSpec, Options, field_specs

logger = logging.getLogger(__name__)

OUTPUT_START = "<configuration-output>"
OUTPUT_END = "</configuration-output>"


def unquote(value: str) -> str:
    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
        return value[1:-1]
    return value


def statement_lines(output: Union[str, Iterable[str]]) -> list[str]:
    """Extract statement lines from raw ``show configuration`` output.

    Skips everything up to the ``<configuration-output>`` marker when one
    is present, stops at ``</configuration-output>``, drops blank lines and
    strips a leading ``set ``.
    """
    raw = output.splitlines() if isinstance(output, str) else list(output)
    if any(line.strip() == OUTPUT_START for line in raw):
        start = next(i for i, line in enumerate(raw) if line.strip() == OUTPUT_START)
        raw = raw[start + 1:]

    lines = []
    for line in raw:
        line = line.strip()
        if line == OUTPUT_END:
            break
        if not line:
            continue
        if line.startswith("set "):
            line = line[4:]
        lines.append(line)
    return lines


@lru_cache(maxsize=None)
def _matchers(cls: type) -> tuple[tuple[str, FieldSpec], ...]:
    """Fields ordered by keyword length, longest first; positional last."""
    specs = field_specs(cls)
    return tuple(sorted(specs, key=lambda item: len(item[1].keyword), reverse=True))


class StatementParser:
    """Re-hydrate an ``Options`` tree from relative statements."""

    def __init__(self, strict: bool = True):
        """
        Initialize parser.

        Args:
            strict: Raise ``ParseError`` on lines that match no field
        """
        self.strict = strict

    def parse(
        self,
        output: Union[str, Iterable[str]],
        options_cls: type,
        ignore: Iterable[str] = (),
        seed: Optional[Options] = None,
    ) -> Options:
        """
        Parse relative statements into a new options tree.

        Args:
            output: Raw command output or already split lines
            options_cls: Options dataclass of the resource
            ignore: Line prefixes owned by other resources (e.g. ``neighbor ``)
            seed: Optional tree to fill instead of a fresh one; identity
                fields are usually set on it by the caller

        Returns:
            The populated options tree
        """
        obj = seed if seed is not None else options_cls()
        ignore = tuple(ignore)

        for line in statement_lines(output):
            if any(line == p.strip() or line.startswith(p) for p in ignore):
                continue
            if self._apply(obj, line, line):
                continue
            if self.strict:
                raise ParseError(f"unrecognized statement for {options_cls.__name__}", line=line)
            logger.debug(f"Skipping unrecognized statement: {line}")

        return obj

    def _apply(self, obj: Any, text: str, line: str) -> bool:
        for name, spec in _matchers(type(obj)):
            keyword = spec.keyword

            if spec.kind == Kind.FLAG:
                if text == keyword:
                    setattr(obj, name, True)
                    self._imply(obj, spec)
                    return True
                continue

            if spec.kind in (Kind.INT, Kind.STRING, Kind.LIST):
                if keyword:
                    if not text.startswith(keyword + " "):
                        continue
                    rest = text[len(keyword) + 1:]
                else:
                    rest = text
                self._set_scalar(obj, name, spec, rest, line)
                self._imply(obj, spec)
                return True

            if spec.kind == Kind.BLOCK:
                if self._apply_block(obj, name, spec, text, line):
                    return True
                continue

            if spec.kind == Kind.KEYED:
                if self._apply_keyed(obj, name, spec, text, line):
                    return True
                continue

        return False

    def _set_scalar(self, obj: Any, name: str, spec: FieldSpec, rest: str, line: str) -> None:
        if spec.kind == Kind.INT:
            try:
                value: Any = int(rest)
            except ValueError as e:
                raise ParseError(
                    f"failed to convert value from '{rest}' to integer: {e}", line=line
                ) from e
            setattr(obj, name, value)
        elif spec.kind == Kind.STRING:
            setattr(obj, name, unquote(rest) if spec.quoted else rest)
        else:
            getattr(obj, name).append(unquote(rest) if spec.quoted else rest)

    def _imply(self, obj: Any, spec: FieldSpec) -> None:
        for implied in spec.implies:
            setattr(obj, implied, True)

    def _apply_block(self, obj: Any, name: str, spec: FieldSpec, text: str, line: str) -> bool:
        if spec.discriminator:
            if not text.startswith(spec.keyword + " "):
                return False
            tag, _, rest = text[len(spec.keyword) + 1:].partition(" ")
            if tag not in spec.choices:
                return False
        elif text == spec.keyword:
            tag, rest = None, ""
        elif text.startswith(spec.keyword + " "):
            tag, rest = None, text[len(spec.keyword) + 1:]
        else:
            return False

        current = getattr(obj, name)
        # Seed defaults on first line; later lines mutate a copy.
        block = dataclasses.replace(current) if current is not None else spec.block()
        if tag is not None:
            setattr(block, spec.discriminator, tag)
        if rest and not self._apply(block, rest, line):
            return False
        setattr(obj, name, block)
        return True

    def _apply_keyed(self, obj: Any, name: str, spec: FieldSpec, text: str, line: str) -> bool:
        if not text.startswith(spec.keyword + " "):
            return False
        key, _, rest = text[len(spec.keyword) + 1:].partition(" ")
        key = unquote(key)

        entries = getattr(obj, name)
        existing = next((e for e in entries if getattr(e, spec.key) == key), None)
        entry = dataclasses.replace(existing) if existing is not None else spec.block()
        setattr(entry, spec.key, key)
        if rest and not self._apply(entry, rest, line):
            return False

        if existing is not None:
            entries.remove(existing)
        entries.append(entry)
        return True
