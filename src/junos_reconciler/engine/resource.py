"""Resource type descriptors.

A ``ResourceType`` ties an options dataclass to where it lives in the
configuration hierarchy, how it is identified, which referenced objects
must exist before it is created, and how it is replaced on update.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from ..errors import ValidationError
from .builder import StatementBuilder
from .identity import IdentityCodec, DEFAULT_ROUTING_INSTANCE
from .schema import identity_fields, top_level_keywords


class UpdateMode(str, Enum):
    """How the previous state is removed before the new state is set."""
    SUBTREE = "subtree"   # delete the whole resource path
    OPTIONS = "options"   # delete each option keyword, keep child resources


@dataclass(frozen=True)
class Precheck:
    """A referenced object that must exist before create.

    ``path`` returns ``None`` when the check does not apply (e.g. the
    default routing instance).
    """
    path: Callable[[Any], Optional[str]]
    message: Callable[[Any], str]


def routing_instance_precheck(field: str = "routing_instance") -> Precheck:
    def path(options: Any) -> Optional[str]:
        instance = getattr(options, field)
        if not instance or instance == DEFAULT_ROUTING_INSTANCE:
            return None
        return f"routing-instances {instance}"

    return Precheck(
        path=path,
        message=lambda o: f'routing instance "{getattr(o, field)}" doesn\'t exist',
    )


def routing_instance_prefix(options: Any) -> str:
    """Hierarchy prefix for an optional routing instance scope."""
    instance = getattr(options, "routing_instance", "")
    if not instance or instance == DEFAULT_ROUTING_INSTANCE:
        return ""
    return f"routing-instances {instance} "


def in_routing_instance(options: Any) -> str:
    instance = getattr(options, "routing_instance", "")
    if not instance or instance == DEFAULT_ROUTING_INSTANCE:
        return ""
    return f' in routing-instance "{instance}"'


@dataclass(frozen=True)
class ResourceType:
    """Static description of one managed resource type."""
    name: str
    options: type
    path: Callable[[Any], str]
    identity: IdentityCodec
    describe: Callable[[Any], str]
    prechecks: tuple[Precheck, ...] = ()
    bare_prefix: bool = False
    update_mode: UpdateMode = UpdateMode.SUBTREE
    ignore: tuple[str, ...] = ()
    identity_checks: tuple[Callable[[Any], Optional[str]], ...] = ()
    description: str = ""

    def config_path(self, options: Any) -> str:
        return self.path(options)

    def validate_identity(self, options: Any) -> None:
        """Identity fields without a default must be set.

        Raises:
            ValidationError: If an identity field is missing or rejected
        """
        errors = []
        for segment in self.identity.segments:
            if segment.is_variant or segment.default:
                continue
            if not getattr(options, segment.field):
                errors.append(f"{segment.field} must be specified")
        for check in self.identity_checks:
            message = check(options)
            if message:
                errors.append(message)
        if errors:
            raise ValidationError(errors)

    def set_statements(self, options: Any, builder: StatementBuilder) -> list[str]:
        """Validated ``set`` statements for the full desired state."""
        self.validate_identity(options)
        prefix = f"set {self.config_path(options)}"
        lines = builder.build(prefix + " ", options)
        if self.bare_prefix:
            lines.insert(0, prefix)
        return lines

    def delete_statements(self, options: Any) -> list[str]:
        """Statements removing the current state ahead of a replace."""
        self.validate_identity(options)
        path = self.config_path(options)
        if self.update_mode == UpdateMode.OPTIONS:
            return [f"delete {path} {keyword}" for keyword in top_level_keywords(self.options)]
        return [f"delete {path}"]

    def new_options(self, **identity: str) -> Any:
        """Options carrying only identity fields."""
        allowed = set(identity_fields(self.options))
        return self.options(**{k: v for k, v in identity.items() if k in allowed})

    def identity_of(self, options: Any) -> dict[str, Any]:
        return {name: getattr(options, name) for name in identity_fields(self.options)}
