"""Statement Builder: options tree to ordered ``set`` statements.

Validation runs over the whole tree before anything is emitted; every
problem found is reported together in one ``ValidationError``.
"""
import logging
from typing import Any

from ..errors import ValidationError
from .schema import Kind, FieldSpec, Options, field_specs, is_set

logger = logging.getLogger(__name__)


def quote(value: str) -> str:
    return f'"{value}"'


class StatementBuilder:
    """Turn an ``Options`` tree into ``set`` statements."""

    def build(self, set_prefix: str, options: Options) -> list[str]:
        """
        Validate and render options.

        Args:
            set_prefix: Statement prefix ending with a space, e.g.
                ``"set protocols bgp group G1 "``, or ``""`` for relative
                statements
            options: Options tree to render

        Returns:
            Statements in declaration order

        Raises:
            ValidationError: If any constraint is violated
        """
        errors = self.validate(options)
        if errors:
            raise ValidationError(errors)

        lines: list[str] = []
        self._emit(set_prefix, options, lines)
        return lines

    def validate(self, options: Options) -> list[str]:
        """Return every constraint violation in the tree."""
        errors: list[str] = []
        self._validate_block(options, "", errors)
        return errors

    # === Validation ===

    def _validate_block(self, obj: Options, where: str, errors: list[str]) -> None:
        specs = dict(field_specs(obj))

        for name, spec in specs.items():
            value = getattr(obj, name)
            if not is_set(spec, value):
                if spec.required:
                    errors.append(f"{name} must be specified{where}")
                continue

            self._validate_value(name, spec, value, where, errors)

            for other in spec.conflicts_with:
                if is_set(specs[other], getattr(obj, other)):
                    # Report each pair once.
                    if other in specs and name in specs[other].conflicts_with and other < name:
                        continue
                    errors.append(f"{name} and {other} cannot be configured together{where}")
            for other in spec.requires:
                if not is_set(specs[other], getattr(obj, other)):
                    errors.append(f"{other} must be specified with {name}{where}")

        rules = type(obj).constraints
        for group in rules.exactly_one_of:
            count = sum(1 for n in group if is_set(specs[n], getattr(obj, n)))
            if count != 1:
                errors.append(f"exactly one of {_join_names(group)} must be specified{where}")
        for group in rules.at_least_one_of:
            if not any(is_set(specs[n], getattr(obj, n)) for n in group):
                errors.append(f"one of {_join_names(group)} must be specified{where}")
        for check in rules.checks:
            message = check(obj)
            if message:
                errors.append(f"{message}{where}")

    def _validate_value(
        self,
        name: str,
        spec: FieldSpec,
        value: Any,
        where: str,
        errors: list[str],
    ) -> None:
        if spec.kind == Kind.INT:
            if isinstance(value, bool) or not isinstance(value, int):
                errors.append(f"{name} must be an integer, got {value!r}{where}")
                return
            if spec.value_range is not None:
                low, high = spec.value_range
                if not low <= value <= high:
                    errors.append(f"{name} must be between {low} and {high}, got {value}{where}")

        elif spec.kind == Kind.STRING:
            self._validate_text(name, spec, value, where, errors)

        elif spec.kind == Kind.LIST:
            for item in value:
                self._validate_text(name, spec, item, where, errors)

        elif spec.kind == Kind.BLOCK:
            inner = f" in {name} block{where}"
            if spec.discriminator:
                tag = getattr(value, spec.discriminator)
                if tag not in spec.choices:
                    errors.append(
                        f"{spec.discriminator} must be one of {', '.join(spec.choices)}, got {tag!r}{inner}"
                    )
                    return
            self._validate_block(value, inner, errors)
            if not spec.presence and not spec.discriminator and not self._has_statements(value):
                errors.append(f"{name} block is empty{where}")

        elif spec.kind == Kind.KEYED:
            seen: set[str] = set()
            for entry in value:
                key = getattr(entry, spec.key)
                if not key:
                    errors.append(f"{spec.key} must be specified in {name} block{where}")
                    continue
                if key in seen:
                    errors.append(
                        f'multiple {name} blocks with the same {spec.key} "{key}"{where}'
                    )
                    continue
                seen.add(key)
                self._validate_block(entry, f' in {name} "{key}"{where}', errors)

    def _validate_text(
        self,
        name: str,
        spec: FieldSpec,
        value: Any,
        where: str,
        errors: list[str],
    ) -> None:
        if not isinstance(value, str):
            errors.append(f"{name} must be a string, got {value!r}{where}")
            return
        if spec.choices and value not in spec.choices:
            errors.append(f"{name} must be one of {', '.join(spec.choices)}, got {value!r}{where}")
        if not spec.matches_pattern(value):
            errors.append((spec.pattern_message or f"{name} has invalid value {value!r}") + where)
        if spec.quoted and '"' in value:
            errors.append(f"{name} must not contain a double quote{where}")

    def _has_statements(self, obj: Options) -> bool:
        return any(is_set(spec, getattr(obj, name)) for name, spec in field_specs(obj))

    # === Emission ===

    def _emit(self, prefix: str, obj: Options, lines: list[str]) -> None:
        for name, spec in field_specs(obj):
            value = getattr(obj, name)
            if not is_set(spec, value):
                continue
            if spec.kind == Kind.FLAG:
                lines.append(prefix + spec.keyword)

            elif spec.kind == Kind.INT:
                lines.append(_line(prefix, spec.keyword, str(value)))

            elif spec.kind == Kind.STRING:
                lines.append(_line(prefix, spec.keyword, _render(spec, value)))

            elif spec.kind == Kind.LIST:
                for item in value:
                    lines.append(_line(prefix, spec.keyword, _render(spec, item)))

            elif spec.kind == Kind.BLOCK:
                head = spec.keyword
                if spec.discriminator:
                    head = f"{head} {getattr(value, spec.discriminator)}"
                children: list[str] = []
                self._emit(f"{prefix}{head} ", value, children)
                if spec.presence or not children:
                    lines.append(prefix + head)
                lines.extend(children)

            elif spec.kind == Kind.KEYED:
                for entry in value:
                    head = f"{spec.keyword} {getattr(entry, spec.key)}"
                    lines.append(prefix + head)
                    self._emit(f"{prefix}{head} ", entry, lines)


def _line(prefix: str, keyword: str, value: str) -> str:
    if keyword:
        return f"{prefix}{keyword} {value}"
    return prefix + value


def _render(spec: FieldSpec, value: str) -> str:
    return quote(value) if spec.quoted else value


def _join_names(names: tuple[str, ...]) -> str:
    if len(names) <= 1:
        return "".join(names)
    return f"{', '.join(names[:-1])} or {names[-1]}"
