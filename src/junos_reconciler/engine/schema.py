"""Declarative field descriptors for resource options.

Each resource type and each nested block is a dataclass deriving from
``Options``. Configurable fields carry a ``FieldSpec`` in their dataclass
metadata; the dataclass itself is the schema, and field declaration order
is the statement emission order.

Example:
    @dataclass
    class Limit(Options):
        maximum: Optional[int] = number("maximum", 1, 4294967295, required=True)
        teardown: Optional[int] = number("teardown", 1, 100)
"""
import dataclasses
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, Optional

METADATA_KEY = "junos"


class Kind(str, Enum):
    """How a field maps onto statements."""
    FLAG = "flag"        # presence only: "<keyword>"
    INT = "int"          # "<keyword> <n>"
    STRING = "string"    # "<keyword> <value>"
    LIST = "list"        # one "<keyword> <value>" line per element
    BLOCK = "block"      # singleton nested block (max items = 1)
    KEYED = "keyed"      # ordered nested blocks: "<keyword> <key> ..."


@dataclass(frozen=True)
class FieldSpec:
    """Statement grammar and constraints for one options field."""
    keyword: str
    kind: Kind
    quoted: bool = False
    value_range: Optional[tuple[int, int]] = None
    choices: tuple[str, ...] = ()
    pattern: Optional[str] = None
    pattern_message: Optional[str] = None
    conflicts_with: tuple[str, ...] = ()
    requires: tuple[str, ...] = ()
    required: bool = False
    implies: tuple[str, ...] = ()
    block: Optional[type] = None
    key: Optional[str] = None
    presence: bool = False
    discriminator: Optional[str] = None

    def matches_pattern(self, value: str) -> bool:
        return self.pattern is None or re.fullmatch(self.pattern, value) is not None


@dataclass(frozen=True)
class Constraints:
    """Block level rules that span more than two fields."""
    exactly_one_of: tuple[tuple[str, ...], ...] = ()
    at_least_one_of: tuple[tuple[str, ...], ...] = ()
    checks: tuple[Callable[[Any], Optional[str]], ...] = ()


@dataclass
class Options:
    """Base class for resource options and nested blocks."""

    constraints: ClassVar[Constraints] = Constraints()


def _spec_field(spec: FieldSpec, **kwargs) -> Any:
    return field(metadata={METADATA_KEY: spec}, **kwargs)


def flag(keyword: str, **constraints) -> Any:
    """Boolean field emitted as a bare keyword."""
    return _spec_field(FieldSpec(keyword, Kind.FLAG, **constraints), default=False)


def number(keyword: str, low: Optional[int] = None, high: Optional[int] = None, **constraints) -> Any:
    """Optional integer field; ``None`` means not configured."""
    value_range = (low, high) if low is not None and high is not None else None
    return _spec_field(
        FieldSpec(keyword, Kind.INT, value_range=value_range, **constraints),
        default=None,
    )


def text(keyword: str, default: Optional[str] = None, **constraints) -> Any:
    """String field; ``None`` means not configured."""
    return _spec_field(FieldSpec(keyword, Kind.STRING, **constraints), default=default)


def text_list(keyword: str, **constraints) -> Any:
    """Repeated string field, one statement per element."""
    return _spec_field(
        FieldSpec(keyword, Kind.LIST, **constraints), default_factory=list
    )


def block(keyword: str, cls: type, **constraints) -> Any:
    """Singleton nested block."""
    return _spec_field(
        FieldSpec(keyword, Kind.BLOCK, block=cls, **constraints), default=None
    )


def keyed(keyword: str, cls: type, key: str, **constraints) -> Any:
    """Ordered list of nested blocks identified by ``key``."""
    return _spec_field(
        FieldSpec(keyword, Kind.KEYED, block=cls, key=key, **constraints),
        default_factory=list,
    )


def field_specs(cls_or_obj: Any) -> list[tuple[str, FieldSpec]]:
    """Return (field name, spec) pairs in declaration order."""
    return [
        (f.name, f.metadata[METADATA_KEY])
        for f in dataclasses.fields(cls_or_obj)
        if METADATA_KEY in f.metadata
    ]


def identity_fields(cls_or_obj: Any) -> list[str]:
    """Names of fields that carry no statement grammar."""
    return [
        f.name
        for f in dataclasses.fields(cls_or_obj)
        if METADATA_KEY not in f.metadata
    ]


def is_set(spec: FieldSpec, value: Any) -> bool:
    """Whether a field value differs from its unset sentinel."""
    if spec.kind == Kind.FLAG:
        return bool(value)
    if spec.kind in (Kind.LIST, Kind.KEYED):
        return bool(value)
    return value is not None


def top_level_keywords(cls: type) -> list[str]:
    """First tokens of every field keyword, deduplicated, in declaration order."""
    seen: list[str] = []
    for _, spec in field_specs(cls):
        if not spec.keyword:
            continue
        root = spec.keyword.split(" ", 1)[0]
        if root not in seen:
            seen.append(root)
    return seen


def _field_name(known: dict, key: str) -> str:
    if key not in known and f"{key}_" in known:
        return f"{key}_"
    return key


def from_dict(cls: type, data: Optional[dict]) -> Any:
    """Build an options tree from plain data (e.g. loaded YAML).

    Unknown keys raise ``ValueError``; nested blocks are converted
    recursively. Fields named after Python keywords (``import_``) may be
    given without the trailing underscore.
    """
    known = {f.name: f for f in dataclasses.fields(cls)}
    data = {_field_name(known, key): value for key, value in (data or {}).items()}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ValueError(f"unknown field(s) for {cls.__name__}: {', '.join(unknown)}")

    kwargs = {}
    for name, value in data.items():
        spec = known[name].metadata.get(METADATA_KEY)
        # YAML reads bare numbers (vlan ids, AS numbers) as int
        takes_text = known[name].type is str or (spec is not None and spec.kind == Kind.STRING)
        if takes_text and isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        if spec is not None and spec.kind == Kind.BLOCK and value is not None:
            value = from_dict(spec.block, value if isinstance(value, dict) else {})
        elif spec is not None and spec.kind == Kind.KEYED:
            value = [from_dict(spec.block, item) for item in value or []]
        elif spec is not None and spec.kind == Kind.LIST:
            value = [str(item) for item in value or []]
        kwargs[name] = value
    return cls(**kwargs)


def to_dict(obj: Any) -> dict:
    """Inverse of ``from_dict``, omitting unset fields; keyword fields lose their ``_``."""
    result: dict = {}
    for f in dataclasses.fields(obj):
        value = getattr(obj, f.name)
        spec = f.metadata.get(METADATA_KEY)
        key = f.name.rstrip("_")
        if spec is None:
            result[f.name] = value
        elif not is_set(spec, value):
            continue
        elif spec.kind == Kind.BLOCK:
            result[key] = to_dict(value)
        elif spec.kind == Kind.KEYED:
            result[key] = [to_dict(item) for item in value]
        elif spec.kind == Kind.LIST:
            result[key] = list(value)
        else:
            result[key] = value
    return result
