"""Translation and reconciliation engine."""
from .builder import StatementBuilder
from .identity import IdentityCodec, Segment, ID_SEPARATOR, DEFAULT_ROUTING_INSTANCE, exists
from .orchestrator import Reconciler, EngineContext, ApplyResult
from .parser import StatementParser, statement_lines
from .resource import ResourceType, UpdateMode, Precheck
from .schema import Options, FieldSpec, Kind, Constraints, from_dict, to_dict

__all__ = [
    "StatementBuilder",
    "StatementParser",
    "statement_lines",
    "IdentityCodec",
    "Segment",
    "ID_SEPARATOR",
    "DEFAULT_ROUTING_INSTANCE",
    "exists",
    "Reconciler",
    "EngineContext",
    "ApplyResult",
    "ResourceType",
    "UpdateMode",
    "Precheck",
    "Options",
    "FieldSpec",
    "Kind",
    "Constraints",
    "from_dict",
    "to_dict",
]
