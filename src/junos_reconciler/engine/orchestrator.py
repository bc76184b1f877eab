"""Reconciliation Orchestrator.

Runs create, update and delete as lock-scoped transactions:

    open session -> config_lock -> prechecks -> config_set -> commit_conf
    -> post-commit verification -> close session

Any failure before the commit completes discards the candidate
configuration with ``config_clear``. Leaving the session context always
releases the lock, whatever the outcome.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from ..errors import (
    ReconcileError,
    DeviceError,
    ConsistencyError,
    NotFoundError,
    PreconditionError,
    TransactionAbortError,
    Phase,
)
from ..utils.audit_log import ChangeTracker
from ..utils.logging_config import timed_section
from .builder import StatementBuilder
from .identity import exists
from .parser import StatementParser, statement_lines
from .resource import ResourceType

logger = logging.getLogger(__name__)


@dataclass
class EngineContext:
    """Collaborators shared by every operation.

    ``session_factory`` returns a new, unopened session per operation.
    ``read_lock`` serializes reads within the process.
    """
    session_factory: Callable[[], Any]
    read_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    builder: StatementBuilder = field(default_factory=StatementBuilder)
    parser: StatementParser = field(default_factory=StatementParser)
    tracker: Optional[ChangeTracker] = None
    device_id: str = "junos"


@dataclass
class ApplyResult:
    """Outcome of a committed transaction."""
    operation: str
    resource_type: str
    resource_id: str
    statements: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    state: Any = None

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "statements": self.statements,
            "warnings": self.warnings,
        }


class Reconciler:
    """Apply and read resources through an ``EngineContext``."""

    def __init__(self, context: EngineContext):
        self.context = context

    # === Planning ===

    def plan(self, rtype: ResourceType, options: Any) -> list[str]:
        """Statements a create would send, without touching the device."""
        try:
            return rtype.set_statements(options, self.context.builder)
        except ReconcileError as e:
            raise e.with_context(rtype.name, self._name(rtype, options), Phase.VALIDATE)

    def plan_update(self, rtype: ResourceType, state: Any, desired: Any) -> list[str]:
        """Statements an update would send: deletes first, then sets."""
        try:
            deletes = rtype.delete_statements(state)
        except ReconcileError as e:
            raise e.with_context(rtype.name, self._name(rtype, state), Phase.VALIDATE)
        return deletes + self.plan(rtype, desired)

    # === Write operations ===

    async def create(self, rtype: ResourceType, options: Any) -> ApplyResult:
        """
        Create a resource.

        Referenced objects must exist and the resource must not. The
        identifier is only assigned once the resource is visible after
        the commit.

        Raises:
            ValidationError: Options are invalid (no device I/O happened)
            PreconditionError: A referenced object is missing or the
                resource already exists
            DeviceError: The device rejected a statement or the commit
            ConsistencyError: The commit succeeded but the resource is not
                visible afterwards
            TransactionAbortError: Discarding the candidate failed too
        """
        statements = self.plan(rtype, options)
        name = self._name(rtype, options)
        path = rtype.config_path(options)

        async def prechecks(session: Any) -> None:
            await self._check_references(session, rtype, options)
            if await exists(session, path):
                raise PreconditionError(f"{rtype.describe(options)} already exists")

        async def verify(session: Any) -> Any:
            if not await exists(session, path):
                raise ConsistencyError(
                    f"{rtype.describe(options)} does not exists after commit "
                    "=> check your config"
                )
            return options

        return await self._transaction(
            "create", rtype, name, statements, prechecks, verify,
            resource_id=rtype.identity.compose(options),
        )

    async def update(self, rtype: ResourceType, state: Any, desired: Any) -> ApplyResult:
        """
        Replace a resource with ``desired``.

        The previous configuration is deleted and the full desired state
        set again in the same batch, so unset fields do not survive. The
        result carries the state read back after the commit.
        """
        statements = self.plan_update(rtype, state, desired)
        name = self._name(rtype, desired)
        old_path = rtype.config_path(state)

        async def prechecks(session: Any) -> None:
            if not await exists(session, old_path):
                raise PreconditionError(f"{rtype.describe(state)} doesn't exist")
            await self._check_references(session, rtype, desired)

        async def verify(session: Any) -> Any:
            refreshed = await self._read_with(session, rtype, desired)
            if refreshed is None:
                raise ConsistencyError(
                    f"{rtype.describe(desired)} does not exists after commit "
                    "=> check your config"
                )
            return refreshed

        return await self._transaction(
            "update", rtype, name, statements, prechecks, verify,
            resource_id=rtype.identity.compose(desired),
        )

    async def delete(self, rtype: ResourceType, state: Any) -> ApplyResult:
        """Delete a resource; a committed delete needs no verification."""
        try:
            rtype.validate_identity(state)
        except ReconcileError as e:
            raise e.with_context(rtype.name, self._name(rtype, state), Phase.VALIDATE)
        statements = [f"delete {rtype.config_path(state)}"]
        return await self._transaction(
            "delete", rtype, self._name(rtype, state), statements, None, None,
            resource_id=rtype.identity.compose(state),
        )

    # === Read operations ===

    async def read(self, rtype: ResourceType, options: Any) -> Optional[Any]:
        """
        Read a resource back from the device.

        Args:
            rtype: Resource type
            options: Options carrying at least the identity fields

        Returns:
            The parsed options, or None when the resource is absent
        """
        name = self._name(rtype, options)
        async with self.context.read_lock:
            try:
                async with self.context.session_factory() as session:
                    return await self._read_with(session, rtype, options)
            except ReconcileError as e:
                raise e.with_context(rtype.name, name, Phase.READ)
            except Exception as e:
                raise DeviceError(str(e), rtype.name, name, Phase.READ) from e

    async def exists(self, rtype: ResourceType, options: Any) -> bool:
        name = self._name(rtype, options)
        async with self.context.read_lock:
            try:
                async with self.context.session_factory() as session:
                    return await exists(session, rtype.config_path(options))
            except ReconcileError as e:
                raise e.with_context(rtype.name, name, Phase.READ)
            except Exception as e:
                raise DeviceError(str(e), rtype.name, name, Phase.READ) from e

    async def import_id(self, rtype: ResourceType, resource_id: str) -> Any:
        """
        Resolve an identifier to the current state of the resource.

        The identifier is decomposed before any device call.

        Raises:
            IdentityError: The identifier is malformed
            NotFoundError: Nothing is configured at the resolved path
        """
        try:
            identity = rtype.identity.decompose(resource_id)
        except ReconcileError as e:
            raise e.with_context(rtype.name, resource_id, Phase.IMPORT)

        options = rtype.new_options(**identity)
        state = await self.read(rtype, options)
        if state is None:
            raise NotFoundError(
                f"don't find {rtype.name} with id \"{resource_id}\" "
                f"(id must be {rtype.identity.format})",
                rtype.name, resource_id, Phase.IMPORT,
            )
        return state

    # === Internals ===

    async def _read_with(self, session: Any, rtype: ResourceType, options: Any) -> Optional[Any]:
        path = rtype.config_path(options)
        if not await exists(session, path):
            return None
        output = await session.command(f"show configuration {path} | display set relative")
        seed = rtype.new_options(**rtype.identity_of(options))
        return self.context.parser.parse(
            statement_lines(output), rtype.options, ignore=rtype.ignore, seed=seed
        )

    async def _check_references(self, session: Any, rtype: ResourceType, options: Any) -> None:
        for check in rtype.prechecks:
            path = check.path(options)
            if path is None:
                continue
            if not await exists(session, path):
                raise PreconditionError(check.message(options))

    async def _transaction(
        self,
        operation: str,
        rtype: ResourceType,
        name: str,
        statements: list[str],
        prechecks: Optional[Callable],
        verify: Optional[Callable],
        resource_id: str,
    ) -> ApplyResult:
        result = ApplyResult(operation, rtype.name, resource_id, statements)
        phase = Phase.LOCK
        error: Optional[BaseException] = None
        committed = False

        try:
            async with timed_section(operation, self.context.device_id, resource=rtype.name):
                async with self.context.session_factory() as session:
                    # Nothing to discard until the lock is ours; a clear here
                    # would drop another session's candidate changes.
                    try:
                        await session.config_lock()
                    except BaseException as e:
                        primary = self._contextualize(e, rtype, name, phase)
                        if primary is e:
                            raise
                        raise primary from e

                    try:
                        if prechecks is not None:
                            phase = Phase.PRECHECK
                            await prechecks(session)
                        phase = Phase.SET
                        await session.config_set(statements)
                        phase = Phase.COMMIT
                        result.warnings = await session.commit_conf(
                            f"{operation} resource {rtype.name}"
                        )
                        committed = True
                    except BaseException as e:
                        primary = self._contextualize(e, rtype, name, phase)
                        await self._abort(session, primary, rtype, name)
                        if primary is e:
                            raise
                        raise primary from e

                    for warning in result.warnings:
                        logger.warning(f"{rtype.name} {name}: commit warning: {warning}")

                    if verify is not None:
                        phase = Phase.VERIFY
                        try:
                            result.state = await verify(session)
                        except ConsistencyError as e:
                            raise e.with_context(rtype.name, name, phase)
                        except Exception as e:
                            raise ConsistencyError(
                                f"post-commit verification failed: {e}",
                                rtype.name, name, phase,
                            ) from e
        except ReconcileError as e:
            error = e.with_context(rtype.name, name, phase)
            raise
        except Exception as e:
            error = DeviceError(str(e), rtype.name, name, phase)
            raise error from e
        except BaseException as e:
            error = e
            raise
        finally:
            self._audit(result, committed, error)

        logger.info(f"{operation} {rtype.name} {resource_id}: committed {len(statements)} statement(s)")
        return result

    def _contextualize(self, error: BaseException, rtype: ResourceType, name: str, phase: Phase) -> BaseException:
        if isinstance(error, ReconcileError):
            return error.with_context(rtype.name, name, phase)
        if isinstance(error, Exception):
            return DeviceError(str(error), rtype.name, name, phase)
        # Cancellation and interpreter exits propagate unchanged.
        return error

    async def _abort(self, session: Any, primary: BaseException, rtype: ResourceType, name: str) -> None:
        logger.warning(f"{rtype.name} {name}: aborting transaction: {primary}")
        try:
            await session.config_clear()
        except Exception as cleanup:
            logger.error(f"{rtype.name} {name}: failed to clear candidate configuration: {cleanup}")
            raise TransactionAbortError(
                primary, cleanup, resource_type=rtype.name, name=name, phase=Phase.ABORT
            ) from primary

    def _audit(self, result: ApplyResult, committed: bool, error: Optional[BaseException]) -> None:
        if self.context.tracker is None:
            return
        self.context.tracker.log_change(
            operation=result.operation,
            resource_type=result.resource_type,
            resource_id=result.resource_id,
            success=committed and error is None,
            statements=result.statements,
            warnings=result.warnings,
            error=str(error) if error is not None else None,
        )

    @staticmethod
    def _name(rtype: ResourceType, options: Any) -> str:
        return rtype.identity.compose(options)
