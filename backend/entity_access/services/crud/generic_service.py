"""
Generic entity service.

One code path serves every entity declared in the registry. Each call
composes the clause builder, pagination calculator, row-level security
and field access control with the persistence executor and the audit
sink.

Usage:
    service = GenericEntityService(get_registry(), SessionExecutor(db))

    ctx = service.resolve_context("work_order", role="technician", user_id=7)
    page = service.find_all("work_order", {"page": 2, "filters": {"status": "open"}}, ctx)

    record = service.create("customer", body, role="dispatcher", audit_context=audit)
    service.delete("customer", 42, audit_context=audit)
"""

from typing import Any, Mapping, Sequence

from shared.config.constants import AuditActions, Limits, Operations, UNIVERSAL_IMMUTABLE_FIELDS
from shared.config.logging import get_logger
from shared.utils.exceptions import AppException, ForbiddenError, ValidationError, DependentRecordError
from shared.utils.validators import sanitize_search_term

from entity_access.models.base import DependentSpec, EntityMetadata
from entity_access.models.registry import EntityRegistry
from entity_access.persistence.errors import BackendError, translate_backend_error
from entity_access.persistence.executor import StatementExecutor, StatementResult
from entity_access.persistence.rls_filter import ScopedResult, build_rls_filter
from entity_access.schemas import BatchOperationResult, BatchResult, QueryEnvelope
from entity_access.services.permissions import field_access
from entity_access.services.permissions.rls import RLSContext, RLSResolver, validate_applied
from entity_access.services.permissions.roles import Role, is_missing_role
from entity_access.services.query.clauses import SortClause, build_filter_clause, build_query, combine_where_clauses
from entity_access.services.query.options import QueryOptions
from entity_access.services.query.pagination import PageParams, generate_metadata, validate_params

from .audit import AuditContext, AuditDispatcher, AuditEntry, AuditSink, LoggingAuditSink, build_entry

logger = get_logger(__name__)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class GenericEntityService:
    """
    Metadata-driven CRUD for every registered entity.

    Reads require an RLSContext resolved for the entity's resource.
    Writes require the caller's role for field-level filtering; update and
    delete additionally honour an RLSContext when one is given.
    """

    def __init__(
        self,
        registry: EntityRegistry,
        executor: StatementExecutor,
        *,
        audit_sink: AuditSink | None = None,
        resolver: RLSResolver | None = None,
    ):
        self.registry = registry
        self.executor = executor
        self.audit = AuditDispatcher(audit_sink or LoggingAuditSink())
        self.resolver = resolver or RLSResolver.from_registry(registry)

    # =========================================================================
    # Context helpers
    # =========================================================================

    def resolve_context(self, entity_name: str, role: Any, user_id: int | str | None) -> RLSContext:
        """Resolve the row-level security context for one call."""
        metadata = self.registry.get_metadata(entity_name)
        return self.resolver.build_context(role, metadata.rls_resource, user_id)

    def _require_context(self, metadata: EntityMetadata, rls_context: RLSContext | None, action: str) -> RLSContext:
        if rls_context is None:
            raise ForbiddenError(f"{action} {metadata.rls_resource}", reason="missing RLS context")
        self._check_context_resource(metadata, rls_context, action)
        return rls_context

    def _check_context_resource(self, metadata: EntityMetadata, rls_context: RLSContext, action: str) -> None:
        if rls_context.resource != metadata.rls_resource:
            raise ForbiddenError(
                f"{action} {metadata.rls_resource}",
                reason="RLS context resolved for another resource",
                context_resource=rls_context.resource,
            )

    def _require_role(self, metadata: EntityMetadata, role: Any, action: str) -> Role:
        if is_missing_role(role):
            raise ForbiddenError(f"{action} {metadata.rls_resource}", reason="missing role")
        return Role.parse(role)

    # =========================================================================
    # Execution helpers
    # =========================================================================

    def _execute(
        self,
        metadata: EntityMetadata,
        operation: str,
        statement: str,
        params: Sequence[Any] = (),
        record_id: Any = None,
    ) -> StatementResult:
        try:
            return self.executor.execute(statement, list(params))
        except BackendError as exc:
            raise translate_backend_error(exc, metadata, operation, record_id) from exc

    def _scoped_where(
        self,
        metadata: EntityMetadata,
        context: RLSContext | None,
        conditions: Sequence[str],
        params: Sequence[Any],
    ):
        """Append the RLS predicate; returns (where_sql, params, rls_filter)."""
        rls = build_rls_filter(context, metadata, len(params))
        where = combine_where_clauses([*conditions, rls.clause])
        where_sql = f" WHERE {where}" if where else ""
        return where_sql, [*params, *rls.params], rls

    def _scoped_select(
        self,
        metadata: EntityMetadata,
        context: RLSContext | None,
        conditions: Sequence[str],
        params: Sequence[Any],
        *,
        order_by: SortClause | None = None,
        page: PageParams | None = None,
        columns: str = "*",
        operation: str = "read",
    ) -> ScopedResult:
        """
        SELECT with the row-level predicate spliced in.

        The result reports the policy whose predicate went into the
        statement, which validate_applied checks against the context.
        """
        where_sql, all_params, rls = self._scoped_where(metadata, context, conditions, params)
        statement = f"SELECT {columns} FROM {metadata.table_name}{where_sql}"
        if order_by is not None:
            statement += f" ORDER BY {order_by.sql}"
        if page is not None:
            next_index = len(all_params) + 1
            statement += f" LIMIT ${next_index} OFFSET ${next_index + 1}"
            all_params += [page.limit, page.offset]

        result = self._execute(metadata, operation, statement, all_params)
        return ScopedResult(
            rows=result.rows,
            row_count=result.row_count,
            rls_policy=rls.policy,
            rls_restricted=rls.restricts,
        )

    def _fetch_one(self, metadata: EntityMetadata, record_id: Any, context: RLSContext | None) -> dict | None:
        result = self._scoped_select(metadata, context, [f"{metadata.primary_key} = $1"], [record_id])
        if context is not None:
            validate_applied(context, result)
        return result.rows[0] if result.rows else None

    def _active_condition(
        self,
        metadata: EntityMetadata,
        include_inactive: bool,
        offset: int,
        applied_filters: Mapping[str, Any] | None = None,
    ):
        # An explicit is_active filter from the caller replaces the implicit one
        if include_inactive or not metadata.has_active_flag or "is_active" in (applied_filters or {}):
            return None, None
        return f"is_active = ${offset + 1}", True

    def _emit_audit(self, entries: Sequence[AuditEntry]) -> None:
        for entry in entries:
            self.audit.emit(entry)

    def _audit_entry(
        self,
        metadata: EntityMetadata,
        action: str,
        record_id: Any,
        old_values: dict | None,
        new_values: dict | None,
        audit_context: AuditContext | None,
    ) -> AuditEntry | None:
        if not metadata.audited:
            return None
        return build_entry(
            action=action,
            resource_type=metadata.table_name,
            resource_id=record_id,
            old_values=old_values,
            new_values=new_values,
            context=audit_context,
        )

    # =========================================================================
    # Read operations
    # =========================================================================

    def find_all(
        self,
        entity_name: str,
        options: QueryOptions | Mapping[str, Any] | None = None,
        rls_context: RLSContext | None = None,
    ) -> QueryEnvelope:
        """
        Paginated, filtered, sorted list of records visible to the caller.

        Options: page, limit, search, filters, sort_by, sort_order,
        include_inactive. Unusable options are ignored, never rejected.
        """
        metadata = self.registry.get_metadata(entity_name)
        context = self._require_context(metadata, rls_context, "read")

        if not isinstance(options, QueryOptions):
            options = QueryOptions.from_mapping(options)
        options = options.model_copy(
            update={"search": sanitize_search_term(options.search, Limits.MAX_SEARCH_TERM_LENGTH)}
        )

        page = validate_params({"page": options.page, "limit": options.limit})
        parts = build_query(options, metadata)

        conditions = [parts.where]
        params = list(parts.params)
        active, active_value = self._active_condition(
            metadata, options.include_inactive, parts.param_offset, parts.applied_filters
        )
        if active:
            conditions.append(active)
            params.append(active_value)

        count = self._scoped_select(metadata, context, conditions, params, columns="COUNT(*) AS total")
        validate_applied(context, count)
        total = int(count.rows[0]["total"]) if count.rows else 0

        result = self._scoped_select(
            metadata,
            context,
            conditions,
            params,
            order_by=parts.order_by,
            page=page,
        )
        validate_applied(context, result)

        logger.debug(
            "Entity list query",
            entity=metadata.name,
            role=context.role.name,
            total=total,
            returned=len(result.rows),
            rls_policy=context.policy,
        )

        return QueryEnvelope(
            data=field_access.filter_by_role(result.rows, metadata, context.role),
            pagination=generate_metadata(page.page, page.limit, total),
            applied_filters=dict(parts.applied_filters),
            rls_applied=result.rls_restricted,
        )

    def find_by_id(self, entity_name: str, record_id: Any, rls_context: RLSContext | None = None) -> dict | None:
        """Single record by primary key, or None when absent or not visible."""
        metadata = self.registry.get_metadata(entity_name)
        context = self._require_context(metadata, rls_context, "read")
        record = self._fetch_one(metadata, record_id, context)
        return field_access.filter_by_role(record, metadata, context.role)

    def find_by_field(
        self,
        entity_name: str,
        field_name: str,
        value: Any,
        rls_context: RLSContext | None = None,
    ) -> dict | None:
        """First visible record whose filterable ``field_name`` equals ``value``."""
        metadata = self.registry.get_metadata(entity_name)
        context = self._require_context(metadata, rls_context, "read")
        if field_name not in metadata.filterable_fields:
            raise ValidationError(f"Cannot look up {metadata.label} by '{field_name}'", entity=metadata.name)

        condition = f"{field_name} IS NULL" if value is None else f"{field_name} = $1"
        params = [] if value is None else [value]
        result = self._scoped_select(
            metadata,
            context,
            [condition],
            params,
            order_by=SortClause(metadata.primary_key, "ASC"),
            page=PageParams(page=1, limit=1, offset=0),
        )
        validate_applied(context, result)
        if not result.rows:
            return None
        return field_access.filter_by_role(result.rows[0], metadata, context.role)

    def count(
        self,
        entity_name: str,
        filters: Mapping[str, Any] | None = None,
        rls_context: RLSContext | None = None,
        include_inactive: bool = False,
    ) -> int:
        """Number of visible records matching ``filters``."""
        metadata = self.registry.get_metadata(entity_name)
        context = self._require_context(metadata, rls_context, "read")

        filter_clause = build_filter_clause(filters, metadata.filterable_fields)
        conditions = [filter_clause.clause]
        params = list(filter_clause.params)
        active, active_value = self._active_condition(
            metadata, include_inactive, filter_clause.param_offset, filter_clause.applied
        )
        if active:
            conditions.append(active)
            params.append(active_value)

        result = self._scoped_select(metadata, context, conditions, params, columns="COUNT(*) AS total")
        validate_applied(context, result)
        return int(result.rows[0]["total"]) if result.rows else 0

    # =========================================================================
    # Write operations
    # =========================================================================

    def _prepare_write(
        self,
        metadata: EntityMetadata,
        data: Any,
        role: Role,
        operation: str,
        strict: bool,
    ) -> dict[str, Any]:
        """
        Validate and narrow a write payload.

        Unknown fields, and immutable fields on update, are hard errors.
        Fields outside the role's write set are stripped (or rejected when
        ``strict``).
        """
        if not isinstance(data, Mapping):
            raise ValidationError("Request body must be an object", entity=metadata.name)

        unknown = [key for key in data if key not in metadata.field_access]
        if unknown:
            raise ValidationError(
                f"Unknown fields for {metadata.label}: {', '.join(unknown)}",
                entity=metadata.name,
                fields=unknown,
            )

        if operation == Operations.UPDATE:
            immutable = [
                key for key in data if key in metadata.immutable_fields or key in UNIVERSAL_IMMUTABLE_FIELDS
            ]
            if immutable:
                raise ValidationError(
                    f"Cannot modify immutable fields: {', '.join(immutable)}",
                    entity=metadata.name,
                    fields=immutable,
                )

        if strict:
            field_access.validate_access(data, metadata, role, operation)
            return dict(data)
        return field_access.filter_writable(data, metadata, role, operation)

    def _create(self, metadata: EntityMetadata, data: Any, role: Role, strict: bool) -> dict:
        payload = self._prepare_write(metadata, data, role, Operations.CREATE, strict)

        missing = [name for name in sorted(metadata.required_fields) if _is_blank(payload.get(name))]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                entity=metadata.name,
                fields=missing,
            )
        if not payload:
            raise ValidationError(f"No writable fields supplied for {metadata.label}", entity=metadata.name)

        columns = list(payload)
        placeholders = ", ".join(f"${index}" for index in range(1, len(columns) + 1))
        statement = (
            f"INSERT INTO {metadata.table_name} ({', '.join(columns)}) "
            f"VALUES ({placeholders}) RETURNING *"
        )
        result = self._execute(metadata, Operations.CREATE, statement, [payload[name] for name in columns])
        return result.rows[0]

    def _update(
        self,
        metadata: EntityMetadata,
        record_id: Any,
        data: Any,
        role: Role,
        context: RLSContext | None,
        strict: bool,
    ) -> tuple[dict | None, dict | None]:
        payload = self._prepare_write(metadata, data, role, Operations.UPDATE, strict)
        if not payload:
            raise ValidationError(f"No updatable fields supplied for {metadata.label}", entity=metadata.name)
        blanked = [name for name in sorted(metadata.required_fields) if name in payload and _is_blank(payload[name])]
        if blanked:
            raise ValidationError(
                f"Required fields cannot be empty: {', '.join(blanked)}",
                entity=metadata.name,
                fields=blanked,
            )

        before = self._fetch_one(metadata, record_id, context)
        if before is None:
            return None, None

        columns = list(payload)
        assignments = [f"{name} = ${index}" for index, name in enumerate(columns, start=1)]
        if "updated_at" in metadata.field_access and "updated_at" not in payload:
            assignments.append("updated_at = CURRENT_TIMESTAMP")
        params = [payload[name] for name in columns]

        where_sql, all_params, _ = self._scoped_where(
            metadata,
            context,
            [f"{metadata.primary_key} = ${len(params) + 1}"],
            [*params, record_id],
        )
        statement = f"UPDATE {metadata.table_name} SET {', '.join(assignments)}{where_sql} RETURNING *"
        result = self._execute(metadata, Operations.UPDATE, statement, all_params, record_id)
        if not result.rows:
            return None, None
        return before, result.rows[0]

    def _count_dependents(self, metadata: EntityMetadata, dependent: DependentSpec, record_id: Any) -> int:
        conditions = [f"{dependent.foreign_key} = $1"]
        params: list[Any] = [record_id]
        if dependent.polymorphic_column:
            conditions.append(f"{dependent.polymorphic_column} = $2")
            params.append(dependent.polymorphic_value)
        statement = f"SELECT COUNT(*) AS total FROM {dependent.table} WHERE {' AND '.join(conditions)}"
        result = self._execute(metadata, Operations.DELETE, statement, params, record_id)
        return int(result.rows[0]["total"]) if result.rows else 0

    def _delete(self, metadata: EntityMetadata, record_id: Any, context: RLSContext | None) -> dict | None:
        before = self._fetch_one(metadata, record_id, context)
        if before is None:
            return None

        for dependent in metadata.dependents:
            references = self._count_dependents(metadata, dependent, record_id)
            if references:
                raise DependentRecordError(metadata.label, record_id, dependent=dependent.name, count=references)

        where_sql, params, _ = self._scoped_where(
            metadata, context, [f"{metadata.primary_key} = $1"], [record_id]
        )
        result = self._execute(
            metadata,
            Operations.DELETE,
            f"DELETE FROM {metadata.table_name}{where_sql}",
            params,
            record_id,
        )
        return before if result.row_count else None

    def create(
        self,
        entity_name: str,
        data: Mapping[str, Any],
        *,
        role: Any,
        audit_context: AuditContext | None = None,
        strict: bool = False,
    ) -> dict:
        """
        Insert one record.

        Fields the role may not set are stripped (``strict`` rejects them
        instead). The returned record is filtered for the role's read access.
        """
        metadata = self.registry.get_metadata(entity_name)
        caller = self._require_role(metadata, role, Operations.CREATE)

        with self.executor.transaction():
            record = self._create(metadata, data, caller, strict)

        record_id = record.get(metadata.primary_key)
        logger.info("Entity created", entity=metadata.name, record_id=record_id, role=caller.name)
        entry = self._audit_entry(metadata, AuditActions.CREATE, record_id, None, record, audit_context)
        if entry:
            self._emit_audit([entry])
        return field_access.filter_by_role(record, metadata, caller)

    def update(
        self,
        entity_name: str,
        record_id: Any,
        data: Mapping[str, Any],
        *,
        role: Any,
        audit_context: AuditContext | None = None,
        rls_context: RLSContext | None = None,
        strict: bool = False,
    ) -> dict | None:
        """Partial update. Returns None when the record is absent or not visible."""
        metadata = self.registry.get_metadata(entity_name)
        caller = self._require_role(metadata, role, Operations.UPDATE)
        if rls_context is not None:
            self._check_context_resource(metadata, rls_context, Operations.UPDATE)

        with self.executor.transaction():
            before, record = self._update(metadata, record_id, data, caller, rls_context, strict)

        if record is None:
            return None

        logger.info("Entity updated", entity=metadata.name, record_id=record_id, role=caller.name)
        entry = self._audit_entry(metadata, AuditActions.UPDATE, record_id, before, record, audit_context)
        if entry:
            self._emit_audit([entry])
        return field_access.filter_by_role(record, metadata, caller)

    def delete(
        self,
        entity_name: str,
        record_id: Any,
        *,
        audit_context: AuditContext | None = None,
        rls_context: RLSContext | None = None,
    ) -> bool:
        """
        Delete one record.

        The dependent check and the delete share one transaction; any
        referencing row raises DependentRecordError and nothing is removed.
        """
        metadata = self.registry.get_metadata(entity_name)
        if rls_context is not None:
            self._check_context_resource(metadata, rls_context, Operations.DELETE)

        with self.executor.transaction():
            before = self._delete(metadata, record_id, rls_context)

        if before is None:
            return False

        logger.info("Entity deleted", entity=metadata.name, record_id=record_id)
        entry = self._audit_entry(metadata, AuditActions.DELETE, record_id, before, None, audit_context)
        if entry:
            self._emit_audit([entry])
        return True

    # =========================================================================
    # Batch
    # =========================================================================

    def _run_batch_operation(
        self,
        metadata: EntityMetadata,
        index: int,
        operation: Any,
        caller: Role,
        audit_context: AuditContext | None,
        context: RLSContext | None = None,
    ) -> tuple[BatchOperationResult, AuditEntry | None]:
        if not isinstance(operation, Mapping):
            raise ValidationError(f"Batch operation {index} must be an object", entity=metadata.name)

        kind = operation.get("operation")
        record_id = operation.get("id")
        data = operation.get("data")

        if kind == Operations.CREATE:
            record = self._create(metadata, data, caller, strict=False)
            new_id = record.get(metadata.primary_key)
            entry = self._audit_entry(metadata, AuditActions.CREATE, new_id, None, record, audit_context)
            visible = field_access.filter_by_role(record, metadata, caller)
            return BatchOperationResult(index=index, operation=kind, success=True, record=visible), entry

        if kind not in (Operations.UPDATE, Operations.DELETE):
            raise ValidationError(f"Unsupported batch operation: {kind!r}", entity=metadata.name)
        if record_id is None:
            raise ValidationError(f"Batch operation {index} requires an id", entity=metadata.name)

        if kind == Operations.UPDATE:
            before, record = self._update(metadata, record_id, data, caller, context, strict=False)
            if record is None:
                return BatchOperationResult(index=index, operation=kind, success=False, error="Not found", status_code=404), None
            entry = self._audit_entry(metadata, AuditActions.UPDATE, record_id, before, record, audit_context)
            visible = field_access.filter_by_role(record, metadata, caller)
            return BatchOperationResult(index=index, operation=kind, success=True, record=visible), entry

        before = self._delete(metadata, record_id, context)
        if before is None:
            return BatchOperationResult(index=index, operation=kind, success=False, deleted=False, error="Not found", status_code=404), None
        entry = self._audit_entry(metadata, AuditActions.DELETE, record_id, before, None, audit_context)
        return BatchOperationResult(index=index, operation=kind, success=True, deleted=True), entry

    def batch(
        self,
        entity_name: str,
        operations: Sequence[Mapping[str, Any]],
        *,
        role: Any,
        audit_context: AuditContext | None = None,
        rls_context: RLSContext | None = None,
        continue_on_error: bool = False,
    ) -> BatchResult:
        """
        Run several create/update/delete operations in order.

        Each operation is {"operation": "create"|"update"|"delete", "id": ..., "data": {...}}.
        By default the whole batch is one transaction and the first failure
        rolls everything back and propagates. With ``continue_on_error``
        each operation commits on its own and failures are reported per item.
        Updates and deletes are row-restricted when ``rls_context`` is given.
        """
        metadata = self.registry.get_metadata(entity_name)
        caller = self._require_role(metadata, role, "batch")
        if rls_context is not None:
            self._check_context_resource(metadata, rls_context, "batch")

        if not isinstance(operations, Sequence) or isinstance(operations, (str, bytes)):
            raise ValidationError("Batch operations must be a list", entity=metadata.name)
        if len(operations) > Limits.MAX_BATCH_SIZE:
            raise ValidationError(
                f"Batch exceeds maximum of {Limits.MAX_BATCH_SIZE} operations",
                entity=metadata.name,
                size=len(operations),
            )

        results: list[BatchOperationResult] = []
        entries: list[AuditEntry] = []

        if not continue_on_error:
            with self.executor.transaction():
                for index, operation in enumerate(operations):
                    outcome, entry = self._run_batch_operation(
                        metadata, index, operation, caller, audit_context, rls_context
                    )
                    results.append(outcome)
                    if entry:
                        entries.append(entry)
            self._emit_audit(entries)
            succeeded = sum(1 for outcome in results if outcome.success)
            return BatchResult(results=results, succeeded=succeeded, failed=len(results) - succeeded, committed=True)

        for index, operation in enumerate(operations):
            try:
                with self.executor.transaction():
                    outcome, entry = self._run_batch_operation(
                        metadata, index, operation, caller, audit_context, rls_context
                    )
            except AppException as exc:
                kind = operation.get("operation") if isinstance(operation, Mapping) else None
                results.append(
                    BatchOperationResult(
                        index=index,
                        operation=str(kind),
                        success=False,
                        error=exc.detail,
                        status_code=exc.status_code,
                    )
                )
                continue
            results.append(outcome)
            if entry:
                self._emit_audit([entry])

        succeeded = sum(1 for outcome in results if outcome.success)
        logger.info(
            "Batch completed",
            entity=metadata.name,
            succeeded=succeeded,
            failed=len(results) - succeeded,
        )
        return BatchResult(results=results, succeeded=succeeded, failed=len(results) - succeeded, committed=True)
