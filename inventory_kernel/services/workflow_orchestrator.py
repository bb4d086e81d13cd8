"""
WorkflowOrchestrator -- the single entry point for workflow operations.

Responsibility:
    Owns the transaction boundary of every Supply and Distribution
    operation and composes the kernel services inside it:

        create        NumberAllocator -> insert -> AuditTrailRecorder
        transition    decide_transition -> [StockLedgerMutator + lock]
                      -> AuditTrailRecorder
        edit          edit_result_status -> field changes -> AuditTrailRecorder
        delete        decide_delete -> delete row -> AuditTrailRecorder
        force_unlock  LockEnforcer.force_unlock -> AuditTrailRecorder

Architecture position:
    Kernel > Services -- imperative shell.  Opens one session per
    operation from the injected session factory, commits on success and
    rolls back on any error.  Pure decisions are delegated to
    domain.workflow and domain.policy; reads to the selectors.

Invariants enforced:
    - Single transition per unit: the item row is loaded FOR UPDATE before
      any decision, so two concurrent actors serialize on it and the
      second one re-reads the committed status.
    - At-most-once stock effect: the stock movement, the ledger entry, the
      status change to ApprovedFinal and the lock are written in the same
      unit.  A later approval sees ``locked`` and fails.
    - Audit completeness: every successful operation writes exactly one
      audit entry in its unit; failed operations write none.
    - Lock order: item, then product, then the audit sequence counter.

Failure modes:
    - Every InventoryKernelError subclass; the unit is rolled back and the
      error re-raised unchanged.
    - SequenceConflictError after ``sequence_retry_attempts`` number
      collisions on create.

Audit relevance:
    Operations run under LogContext(actor_id, item_id) and log one
    structured record on success.  Rollbacks log ``transaction_rolled_back``
    with the error code.
"""

from __future__ import annotations

import time
from collections.abc import Generator
from contextlib import contextmanager
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from inventory_config.schema import InventoryConfig
from inventory_kernel.db.engine import READ_ONLY_OPTION
from inventory_kernel.db.immutability import register_immutability_listeners
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.collaborators import ActorResolver
from inventory_kernel.domain.dtos import (
    ActorInfo,
    AuditEntry,
    DeleteAck,
    ItemPatch,
    ItemPayload,
    LedgerEntry,
    ListFilters,
    WorkflowItem,
)
from inventory_kernel.domain.policy import decide_delete, edit_result_status, visible_statuses
from inventory_kernel.domain.validation import (
    describe_changes,
    diff_fields,
    validate_patch,
    validate_payload,
)
from inventory_kernel.domain.workflow import (
    CREATOR_ROLES,
    ItemKind,
    ItemStatus,
    Role,
    WorkflowAction,
    decide_transition,
    has_comment,
)
from inventory_kernel.exceptions import (
    ActorNotApprovedError,
    ActorNotFoundError,
    ActorRoleMismatchError,
    InsufficientStockError,
    InvalidPayloadError,
    ItemNotFoundError,
    OutOfScopeError,
    SequenceConflictError,
    TransitionDeniedError,
    UnreadCommentError,
)
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.models.workflow_item import WorkflowItemModel
from inventory_kernel.selectors.audit_selector import AuditSelector
from inventory_kernel.selectors.ledger_selector import LedgerSelector
from inventory_kernel.selectors.workflow_selector import WorkflowSelector
from inventory_kernel.services.audit_trail import AuditTrailRecorder
from inventory_kernel.services.lock_enforcer import LockEnforcer
from inventory_kernel.services.number_allocator import NumberAllocator, scope_for
from inventory_kernel.services.product_catalog import ProductCatalog
from inventory_kernel.services.stock_ledger import StockLedgerMutator

logger = get_logger("services.workflow_orchestrator")


def _coerce(enum_cls, value, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidPayloadError(field_name, f"unknown value {value!r}") from None


class WorkflowOrchestrator:
    """
    Facade over the approval workflow.

    Contract:
        Each public method runs in its own unit of work and returns frozen
        DTOs.  Errors leave the store exactly as it was before the call.

    Guarantees:
        - Write units lock the item row before reading its status.
        - Read operations (get, history, list_for, ...) never take write
          locks.

    Non-goals:
        - Does NOT authenticate actors; an optional ActorResolver supplies
          role, unit and approval status.
        - Does NOT send notifications; it only exposes unread-comment state.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        config: InventoryConfig | None = None,
        clock: Clock | None = None,
        actor_resolver: ActorResolver | None = None,
    ):
        self._session_factory = session_factory
        self._config = config or InventoryConfig()
        self._clock = clock or SystemClock()
        self._actor_resolver = actor_resolver
        self._locks = LockEnforcer()
        register_immutability_listeners()

    @property
    def config(self) -> InventoryConfig:
        return self._config

    # ------------------------------------------------------------------
    # Unit-of-work plumbing
    # ------------------------------------------------------------------

    @contextmanager
    def _unit_of_work(self, operation: str) -> Generator[Session, None, None]:
        session = self._session_factory()
        t0 = time.monotonic()
        try:
            yield session
            session.commit()
        except Exception as exc:
            session.rollback()
            logger.warning(
                "transaction_rolled_back",
                extra={
                    "operation": operation,
                    "error_code": getattr(exc, "code", type(exc).__name__),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
                exc_info=True,
            )
            raise
        finally:
            session.close()

    @contextmanager
    def _read_scope(self) -> Generator[Session, None, None]:
        session = self._session_factory()
        try:
            session.connection(execution_options={READ_ONLY_OPTION: True})
            yield session
        finally:
            session.close()

    def _load_for_update(self, session: Session, item_id: UUID) -> WorkflowItemModel:
        item = session.execute(
            select(WorkflowItemModel)
            .where(WorkflowItemModel.id == item_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if item is None:
            raise ItemNotFoundError(str(item_id))
        return item

    # ------------------------------------------------------------------
    # Actor checks
    # ------------------------------------------------------------------

    def _authorize_actor(self, actor_id: UUID, role: Role) -> ActorInfo | None:
        """Resolve the actor when a resolver is configured."""
        if self._actor_resolver is None:
            return None
        info = self._actor_resolver.resolve(actor_id)
        if info is None:
            raise ActorNotFoundError(str(actor_id))
        if not info.approved:
            raise ActorNotApprovedError(str(actor_id))
        if info.role != role:
            raise ActorRoleMismatchError(str(actor_id), role.value, info.role.value)
        return info

    def _check_scope(
        self,
        info: ActorInfo | None,
        action: WorkflowAction,
        status: ItemStatus,
        unit_id: UUID,
        parent_unit_id: UUID | None,
    ) -> None:
        if info is None or info.role == Role.ADMIN:
            return
        if info.organizational_unit_id is not None and info.organizational_unit_id in (
            unit_id,
            parent_unit_id,
        ):
            return
        raise OutOfScopeError(
            action.value,
            info.role.value,
            status.value,
            str(info.organizational_unit_id) if info.organizational_unit_id else None,
            str(unit_id),
            status.label,
        )

    def _require_read_comments(self, session: Session, item: WorkflowItemModel, role: Role) -> None:
        if not self._config.workflow.require_comment_acknowledgement:
            return
        if AuditSelector(session).has_unread_comment(item.id, role):
            logger.info(
                "unread_comment_blocked",
                extra={"item_number": item.number, "role": role.value},
            )
            raise UnreadCommentError(str(item.id), role.value)

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------

    def create(
        self,
        kind: ItemKind | str,
        payload: ItemPayload,
        actor_id: UUID,
        actor_role: Role | str,
    ) -> WorkflowItem:
        """
        Create a Supply or Distribution request in Pending.

        Raises:
            TransitionDeniedError: role may not create requests.
            InvalidPayloadError: malformed payload.
            UnitNotFoundError / ProductNotFoundError: catalog mismatch.
            InsufficientStockError: Distribution above on-hand stock (when
                ``check_stock_on_create`` is enabled).
            SequenceConflictError: number allocation kept colliding.
        """
        kind = _coerce(ItemKind, kind, "kind")
        role = _coerce(Role, actor_role, "actor_role")

        if role not in CREATOR_ROLES:
            status = ItemStatus.PENDING
            raise TransitionDeniedError(
                WorkflowAction.CREATE.value, role.value, status.value, status.label,
                reason="role may not create requests",
            )

        payload = validate_payload(kind, payload)
        info = self._authorize_actor(actor_id, role)

        with LogContext.bind(actor_id=actor_id), self._unit_of_work("create") as session:
            catalog = ProductCatalog(session)
            parent_unit_id = catalog.resolve_parent_unit(
                payload.organizational_unit_id, payload.parent_unit_id,
            )
            self._check_scope(
                info, WorkflowAction.CREATE, ItemStatus.PENDING,
                payload.organizational_unit_id, parent_unit_id,
            )
            product = catalog.get_product(
                payload.product_id, organizational_unit_id=payload.organizational_unit_id,
            )

            if kind == ItemKind.DISTRIBUTION and self._config.workflow.check_stock_on_create:
                if payload.quantity > product.quantity:
                    logger.info(
                        "insufficient_stock",
                        extra={
                            "product_id": str(product.id),
                            "available": product.quantity,
                            "requested": payload.quantity,
                        },
                    )
                    raise InsufficientStockError(str(product.id), product.quantity, payload.quantity)

            now = self._clock.now()
            item = self._insert_with_number(session, kind, payload, parent_unit_id, actor_id, now)

            entry = AuditTrailRecorder(session, self._clock).record(
                item,
                WorkflowAction.CREATE,
                from_status=None,
                to_status=ItemStatus.PENDING,
                actor_id=actor_id,
                actor_role=role,
                payload={"kind": kind.value, "quantity": item.quantity},
            )

            logger.info(
                "workflow_item_created",
                extra={
                    "item_number": item.number,
                    "kind": kind.value,
                    "quantity": item.quantity,
                    "audit_seq": entry.seq,
                },
            )
            return item.to_dto()

    def _insert_with_number(
        self,
        session: Session,
        kind: ItemKind,
        payload: ItemPayload,
        parent_unit_id: UUID | None,
        actor_id: UUID,
        now,
    ) -> WorkflowItemModel:
        """
        Allocate a number and insert the item, retrying on number collisions.

        The counter advance happens outside the savepoint, so a collided
        value is never handed out again.
        """
        allocator = NumberAllocator(session, self._config.numbering)
        scope = scope_for(kind, now.year, payload.organizational_unit_id)
        attempts = max(1, self._config.workflow.sequence_retry_attempts)

        for attempt in range(1, attempts + 1):
            number = allocator.next_number(scope)
            item = WorkflowItemModel(
                number=number,
                kind=kind.value,
                status=ItemStatus.PENDING.value,
                year=now.year,
                product_id=payload.product_id,
                organizational_unit_id=payload.organizational_unit_id,
                parent_unit_id=parent_unit_id,
                quantity=payload.quantity,
                unit_price=payload.unit_price,
                counterparty_name=payload.counterparty_name,
                counterparty_tax_id=payload.counterparty_tax_id,
                counterparty_phone=payload.counterparty_phone,
                reason=payload.reason,
                reference=payload.reference,
                locked=False,
                comment=None,
                created_at=now,
                updated_at=now,
                created_by_id=actor_id,
            )
            try:
                with session.begin_nested():
                    session.add(item)
                    session.flush()
                return item
            except IntegrityError:
                taken = session.execute(
                    select(WorkflowItemModel.id).where(WorkflowItemModel.number == number)
                ).first()
                if taken is None:
                    raise
                logger.warning(
                    "number_collision_retry",
                    extra={"number": number, "attempt": attempt, "scope": scope.counter_name},
                )

        raise SequenceConflictError(scope.counter_name, attempts)

    # ------------------------------------------------------------------
    # transition
    # ------------------------------------------------------------------

    def transition(
        self,
        item_id: UUID,
        action: WorkflowAction | str,
        actor_id: UUID,
        actor_role: Role | str,
        comment: str | None = None,
    ) -> WorkflowItem:
        """
        Apply request_revision, approve or reject.

        The final approval applies the stock movement and locks the item
        in the same unit.

        Raises:
            ItemNotFoundError, ItemLockedError, TransitionDeniedError,
            MissingCommentError, UnreadCommentError, InsufficientStockError.
        """
        action = _coerce(WorkflowAction, action, "action")
        role = _coerce(Role, actor_role, "actor_role")
        info = self._authorize_actor(actor_id, role)

        with LogContext.bind(actor_id=actor_id, item_id=item_id), \
                self._unit_of_work("transition") as session:
            item = self._load_for_update(session, item_id)
            from_status = ItemStatus(item.status)
            self._check_scope(
                info, action, from_status, item.organizational_unit_id, item.parent_unit_id,
            )
            self._locks.ensure_unlocked(item, action)
            row = decide_transition(role, action, from_status, comment)
            self._require_read_comments(session, item, role)

            now = self._clock.now()
            data: dict[str, Any] = {}
            if row.terminal:
                ledger = StockLedgerMutator(session, self._clock).apply_terminal(item, actor_id)
                data["ledger"] = {
                    "movement": ledger.kind.value,
                    "quantity": ledger.quantity,
                    "quantity_before": ledger.quantity_before,
                    "quantity_after": ledger.quantity_after,
                }
                self._locks.lock(item, actor_id, now)

            item.status = row.to_status.value
            item.comment = comment.strip() if has_comment(comment) else None
            item.updated_at = now
            item.updated_by_id = actor_id
            session.flush()

            AuditTrailRecorder(session, self._clock).record(
                item,
                action,
                from_status=from_status,
                to_status=row.to_status,
                actor_id=actor_id,
                actor_role=role,
                comment=item.comment,
                payload=data,
            )

            logger.info(
                "workflow_transition_applied",
                extra={
                    "item_number": item.number,
                    "action": action.value,
                    "from_status": from_status.value,
                    "to_status": row.to_status.value,
                    "terminal": row.terminal,
                },
            )
            return item.to_dto()

    # ------------------------------------------------------------------
    # edit
    # ------------------------------------------------------------------

    def edit(
        self,
        item_id: UUID,
        patch: ItemPatch,
        actor_id: UUID,
        actor_role: Role | str,
    ) -> WorkflowItem:
        """
        Modify an unlocked item's fields; the resulting status follows the
        edit table in domain.policy.  The field changes become the audit
        comment.
        """
        role = _coerce(Role, actor_role, "actor_role")
        info = self._authorize_actor(actor_id, role)

        with LogContext.bind(actor_id=actor_id, item_id=item_id), \
                self._unit_of_work("edit") as session:
            item = self._load_for_update(session, item_id)
            from_status = ItemStatus(item.status)
            kind = ItemKind(item.kind)
            self._check_scope(
                info, WorkflowAction.EDIT, from_status,
                item.organizational_unit_id, item.parent_unit_id,
            )
            self._locks.ensure_unlocked(item, WorkflowAction.EDIT)
            to_status = edit_result_status(role, from_status, item.locked, str(item.id))
            self._require_read_comments(session, item, role)

            proposed = validate_patch(kind, patch)
            changes = diff_fields(item.field_values(), proposed)

            if "product_id" in changes or "quantity" in changes:
                self._check_edit_stock(session, item, kind, proposed)

            for name, change in changes.items():
                setattr(item, name, change["to"])

            now = self._clock.now()
            item.status = to_status.value
            item.updated_at = now
            item.updated_by_id = actor_id
            session.flush()

            AuditTrailRecorder(session, self._clock).record(
                item,
                WorkflowAction.EDIT,
                from_status=from_status,
                to_status=to_status,
                actor_id=actor_id,
                actor_role=role,
                comment=describe_changes(changes),
                payload={"changes": changes},
            )

            logger.info(
                "workflow_item_edited",
                extra={
                    "item_number": item.number,
                    "fields": sorted(changes),
                    "from_status": from_status.value,
                    "to_status": to_status.value,
                },
            )
            return item.to_dto()

    def _check_edit_stock(
        self,
        session: Session,
        item: WorkflowItemModel,
        kind: ItemKind,
        proposed: dict[str, Any],
    ) -> None:
        catalog = ProductCatalog(session)
        product_id = proposed.get("product_id", item.product_id)
        # Distribution edits serialize on the product row so two reservations
        # cannot both read the same availability.
        product = catalog.get_product(
            product_id,
            organizational_unit_id=item.organizational_unit_id,
            for_update=kind == ItemKind.DISTRIBUTION,
        )
        if kind != ItemKind.DISTRIBUTION:
            return

        quantity: Decimal = proposed.get("quantity", item.quantity)
        reserved = catalog.reserved_quantity(product.id, exclude_item_id=item.id)
        available = product.quantity - reserved
        if quantity > available:
            logger.info(
                "insufficient_stock",
                extra={
                    "item_number": item.number,
                    "product_id": str(product.id),
                    "available": available,
                    "requested": quantity,
                },
            )
            raise InsufficientStockError(str(product.id), available, quantity)

    # ------------------------------------------------------------------
    # delete / force_unlock
    # ------------------------------------------------------------------

    def delete(
        self,
        item_id: UUID,
        actor_id: UUID,
        actor_role: Role | str,
        override: bool = False,
    ) -> DeleteAck:
        """
        Remove an item.  Stock is never touched; the audit trail and any
        ledger entry stay behind.

        ``override`` is the Admin path for a force-unlocked ApprovedFinal
        item; it is audited as ``admin_override_delete``.
        """
        role = _coerce(Role, actor_role, "actor_role")
        info = self._authorize_actor(actor_id, role)

        with LogContext.bind(actor_id=actor_id, item_id=item_id), \
                self._unit_of_work("delete") as session:
            item = self._load_for_update(session, item_id)
            status = ItemStatus(item.status)
            self._check_scope(
                info, WorkflowAction.DELETE, status,
                item.organizational_unit_id, item.parent_unit_id,
            )
            self._locks.ensure_unlocked(item, WorkflowAction.DELETE)
            decision = decide_delete(role, status, item.locked, override, str(item.id))

            snapshot = {
                "kind": item.kind,
                "product_id": item.product_id,
                "organizational_unit_id": item.organizational_unit_id,
                "quantity": item.quantity,
                "counterparty_name": item.counterparty_name,
            }
            number = item.number
            session.delete(item)
            session.flush()

            entry = AuditTrailRecorder(session, self._clock).record(
                item,
                decision.action,
                from_status=status,
                to_status=None,
                actor_id=actor_id,
                actor_role=role,
                payload=snapshot,
            )

            log = logger.warning if decision.override else logger.info
            log(
                "workflow_item_deleted",
                extra={
                    "item_number": number,
                    "status": status.value,
                    "action": decision.action.value,
                },
            )
            return DeleteAck(
                item_id=item_id,
                number=number,
                action=decision.action,
                deleted_at=entry.created_at,
                audit_seq=entry.seq,
            )

    def force_unlock(
        self,
        item_id: UUID,
        actor_id: UUID,
        actor_role: Role | str,
        comment: str | None,
    ) -> WorkflowItem:
        """Admin-only unlock of an ApprovedFinal item.  Stock is not reversed."""
        role = _coerce(Role, actor_role, "actor_role")
        self._authorize_actor(actor_id, role)

        with LogContext.bind(actor_id=actor_id, item_id=item_id), \
                self._unit_of_work("force_unlock") as session:
            item = self._load_for_update(session, item_id)
            status = ItemStatus(item.status)
            self._locks.force_unlock(item, actor_id, role, comment, self._clock.now())
            session.flush()

            AuditTrailRecorder(session, self._clock).record(
                item,
                WorkflowAction.ADMIN_FORCE_UNLOCK,
                from_status=status,
                to_status=status,
                actor_id=actor_id,
                actor_role=role,
                comment=comment.strip(),
            )
            return item.to_dto()

    # ------------------------------------------------------------------
    # Comment acknowledgement
    # ------------------------------------------------------------------

    def acknowledge_comments(
        self,
        item_id: UUID,
        actor_id: UUID,
        actor_role: Role | str,
    ) -> bool:
        """
        Record that ``actor_role`` has read the pending comments.

        Returns:
            True when an acknowledgement was written, False when there was
            nothing unread.
        """
        role = _coerce(Role, actor_role, "actor_role")
        info = self._authorize_actor(actor_id, role)

        with LogContext.bind(actor_id=actor_id, item_id=item_id), \
                self._unit_of_work("acknowledge_comments") as session:
            item = self._load_for_update(session, item_id)
            status = ItemStatus(item.status)
            self._check_scope(
                info, WorkflowAction.ACKNOWLEDGE_COMMENTS, status,
                item.organizational_unit_id, item.parent_unit_id,
            )
            unread = AuditSelector(session).unread_comments(item.id, role)
            if not unread:
                return False

            AuditTrailRecorder(session, self._clock).record(
                item,
                WorkflowAction.ACKNOWLEDGE_COMMENTS,
                from_status=status,
                to_status=status,
                actor_id=actor_id,
                actor_role=role,
                payload={"acknowledged_seqs": [entry.seq for entry in unread]},
            )
            logger.info(
                "comments_acknowledged",
                extra={"item_number": item.number, "role": role.value, "count": len(unread)},
            )
            return True

    def has_unread_comment(self, item_id: UUID, actor_role: Role | str) -> bool:
        role = _coerce(Role, actor_role, "actor_role")
        with self._read_scope() as session:
            return AuditSelector(session).has_unread_comment(item_id, role)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, item_id: UUID) -> WorkflowItem:
        with self._read_scope() as session:
            return WorkflowSelector(session).get(item_id)

    def history(self, item_id: UUID) -> tuple[AuditEntry, ...]:
        """Audit entries of an item in sequence order, deleted items included."""
        with self._read_scope() as session:
            entries = AuditSelector(session).history(item_id)
        if not entries:
            raise ItemNotFoundError(str(item_id))
        return entries

    def ledger_for(self, item_id: UUID) -> LedgerEntry | None:
        with self._read_scope() as session:
            return LedgerSelector(session).for_item(item_id)

    def verify_audit_chain(self, item_id: UUID) -> bool:
        with self._read_scope() as session:
            return AuditTrailRecorder(session, self._clock).validate_chain(item_id)

    def list_for(
        self,
        actor_id: UUID,
        actor_role: Role | str,
        filters: ListFilters | None = None,
    ) -> tuple[WorkflowItem, ...]:
        """Items the role acts on or monitors, newest first."""
        role = _coerce(Role, actor_role, "actor_role")
        info = self._authorize_actor(actor_id, role)

        unit_scope = None
        if info is not None and info.role != Role.ADMIN:
            if info.organizational_unit_id is None:
                return ()
            unit_scope = (info.organizational_unit_id,)

        with self._read_scope() as session:
            return WorkflowSelector(session).list_items(
                visible_statuses(role), filters, unit_scope,
            )
