"""
Tests for the order/task workflow engine.

Tests:
- Accepted transitions and their single event
- Design approval and upload cascades onto the order
- Rejection handling
- Permission and transition-table enforcement, swept over every status pair
- Re-assignment
"""

import pytest
from pydantic import ValidationError

from domain.events import EventType
from domain.value_objects import EntityType, OrderStatus, TaskStatus
from workflow.engine import TransitionResult
from workflow.exceptions import EntityNotFound, InvalidTransition
from workflow.states import VALID_ORDER_TRANSITIONS, VALID_TASK_TRANSITIONS


class TestUploadSubmitsTask:
    """Tests for the implicit submit-on-upload transition."""

    def test_upload_on_pending_task_submits_and_advances_order(
        self, engine, orders, tasks, order, design_task, designer, published_events
    ):
        """Designer upload moves task to submitted and order to design_review."""
        result = engine.upload_file(design_task.id, designer.id, "files/jersey-v1.png")

        assert result.task.status == TaskStatus.SUBMITTED
        assert result.order.status == OrderStatus.DESIGN_REVIEW
        assert tasks.get(design_task.id).files == ["files/jersey-v1.png"]
        assert orders.get(order.id).status == OrderStatus.DESIGN_REVIEW

        assert len(published_events) == 1
        event = published_events[0]
        assert event.event_type == EventType.DESIGN_SUBMITTED
        assert event.order_id == order.id
        assert event.task_id == design_task.id
        assert event.actor_id == designer.id
        assert event.detail["order_advanced"] is True
        assert event.detail["trigger"] == "upload"

    def test_emitted_event_is_immutable(self, engine, design_task, designer, published_events):
        engine.upload_file(design_task.id, designer.id, "v1.png")

        with pytest.raises(ValidationError):
            published_events[0].notes = "edited"

    def test_upload_on_submitted_task_only_attaches(
        self, engine, tasks, design_task, designer, published_events
    ):
        """A second upload attaches the file without another transition."""
        engine.upload_file(design_task.id, designer.id, "v1.png")
        result = engine.upload_file(design_task.id, designer.id, "v2.png")

        assert result.event is None
        assert result.task.status == TaskStatus.SUBMITTED
        assert tasks.get(design_task.id).files == ["v1.png", "v2.png"]
        assert len(published_events) == 1

    def test_production_upload_does_not_touch_order(
        self, engine, orders, order, production_task, manufacturer, published_events
    ):
        """Production uploads submit the task but never cascade."""
        result = engine.upload_file(production_task.id, manufacturer.id, "qc/photo.jpg")

        assert result.task.status == TaskStatus.SUBMITTED
        assert orders.get(order.id).status == OrderStatus.PENDING_DESIGN
        assert published_events[0].event_type == EventType.PRODUCTION_SUBMITTED

    def test_upload_by_non_assignee_rejected(
        self, engine, tasks, design_task, salesperson, published_events
    ):
        """Only the assignee may upload."""
        with pytest.raises(InvalidTransition):
            engine.upload_file(design_task.id, salesperson.id, "x.png")

        assert tasks.get(design_task.id).status == TaskStatus.PENDING
        assert published_events == []

    def test_upload_on_terminal_task_rejected(
        self, engine, tasks, design_task, designer, published_events
    ):
        """Terminal tasks accept no uploads."""
        tasks.update(design_task.id, {"status": TaskStatus.COMPLETED})

        with pytest.raises(InvalidTransition):
            engine.upload_file(design_task.id, designer.id, "late.png")

        assert tasks.get(design_task.id).files == []
        assert published_events == []

    def test_upload_requires_file_ref(self, engine, design_task, designer):
        """Empty file references are refused."""
        with pytest.raises(InvalidTransition):
            engine.upload_file(design_task.id, designer.id, "")


class TestTaskReview:
    """Tests for approval and rejection of submitted tasks."""

    @pytest.fixture
    def submitted(self, engine, design_task, designer, published_events):
        engine.upload_file(design_task.id, designer.id, "v1.png")
        published_events.clear()
        return design_task

    def test_design_approval_advances_order(
        self, engine, orders, order, submitted, salesperson, published_events
    ):
        """Approving a design in review moves the order to design_approved."""
        result = engine.request_transition("task", submitted.id, "approved", salesperson.id)

        assert isinstance(result, TransitionResult)
        assert result.status == "approved"
        assert result.order.status == OrderStatus.DESIGN_APPROVED
        assert orders.get(order.id).status == OrderStatus.DESIGN_APPROVED

        assert len(published_events) == 1
        assert published_events[0].event_type == EventType.DESIGN_APPROVED
        assert published_events[0].order_status == "design_approved"

    def test_admin_may_approve(self, engine, submitted, admin):
        """Admins review like salespeople."""
        result = engine.request_transition(EntityType.TASK, submitted.id, TaskStatus.APPROVED, admin.id)
        assert result.task.status == TaskStatus.APPROVED

    def test_rejection_returns_task_to_in_progress(
        self, engine, orders, order, tasks, submitted, salesperson, published_events
    ):
        """Rejection stores in_progress with notes and leaves the order alone."""
        result = engine.request_transition(
            "task", submitted.id, "rejected", salesperson.id, notes="wrong colors",
        )

        stored = tasks.get(submitted.id)
        assert stored.status == TaskStatus.IN_PROGRESS
        assert stored.rejection_notes == "wrong colors"
        assert result.status == "in_progress"
        assert orders.get(order.id).status == OrderStatus.DESIGN_REVIEW

        event = published_events[0]
        assert event.event_type == EventType.DESIGN_REJECTED
        assert event.notes == "wrong colors"
        assert event.detail["stored_status"] == "in_progress"

    def test_designer_cannot_approve_own_work(
        self, engine, tasks, submitted, designer, published_events
    ):
        """Assignees cannot review."""
        with pytest.raises(InvalidTransition):
            engine.request_transition("task", submitted.id, "approved", designer.id)

        assert tasks.get(submitted.id).status == TaskStatus.SUBMITTED
        assert published_events == []

    def test_resubmission_after_rejection(
        self, engine, tasks, submitted, designer, salesperson
    ):
        """A rejected task can be uploaded to again."""
        engine.request_transition("task", submitted.id, "rejected", salesperson.id, notes="redo")
        result = engine.upload_file(submitted.id, designer.id, "v2.png")

        assert result.task.status == TaskStatus.SUBMITTED
        assert tasks.get(submitted.id).files == ["v1.png", "v2.png"]

    def test_completion_after_approval(self, engine, submitted, salesperson, published_events):
        """approved -> completed emits a generic task status event."""
        engine.request_transition("task", submitted.id, "approved", salesperson.id)
        published_events.clear()

        result = engine.request_transition("task", submitted.id, "completed", salesperson.id)

        assert result.task.status == TaskStatus.COMPLETED
        assert published_events[0].event_type == EventType.TASK_STATUS_CHANGED


class TestExplicitTaskTransitions:
    """Tests for assignee-driven task transitions."""

    def test_assignee_starts_task(self, engine, design_task, designer, published_events):
        result = engine.request_transition("task", design_task.id, "in_progress", designer.id)

        assert result.task.status == TaskStatus.IN_PROGRESS
        assert published_events[0].event_type == EventType.TASK_STATUS_CHANGED
        assert published_events[0].from_status == "pending"
        assert published_events[0].to_status == "in_progress"

    def test_other_designer_cannot_start_task(self, engine, directory, design_task, published_events):
        """Holding the designer role is not enough; the task must be yours."""
        from domain.aggregates import User
        from rbac.roles import Role

        other = directory.add(User(id="designer-2", role=Role.DESIGNER, email="other@threadcraft.test"))

        with pytest.raises(InvalidTransition):
            engine.request_transition("task", design_task.id, "in_progress", other.id)
        assert published_events == []

    def test_skipping_states_rejected(self, engine, tasks, design_task, salesperson):
        """pending -> approved is not in the table."""
        with pytest.raises(InvalidTransition) as exc_info:
            engine.request_transition("task", design_task.id, "approved", salesperson.id)

        assert exc_info.value.current_status == "pending"
        assert exc_info.value.target_status == "approved"
        assert tasks.get(design_task.id).status == TaskStatus.PENDING

    def test_cancel_is_reviewer_only(self, engine, design_task, designer, salesperson):
        with pytest.raises(InvalidTransition):
            engine.request_transition("task", design_task.id, "cancelled", designer.id)

        result = engine.request_transition("task", design_task.id, "cancelled", salesperson.id)
        assert result.task.status == TaskStatus.CANCELLED

    def test_unknown_status_rejected(self, engine, design_task, designer):
        with pytest.raises(InvalidTransition):
            engine.request_transition("task", design_task.id, "shipped", designer.id)


class TestOrderTransitions:
    """Tests for explicit order transitions."""

    def test_designer_moves_order_into_design(self, engine, order, designer, published_events):
        result = engine.request_transition("order", order.id, "design_in_progress", designer.id)

        assert result.order.status == OrderStatus.DESIGN_IN_PROGRESS
        assert published_events[0].event_type == EventType.ORDER_STATUS_CHANGED
        assert published_events[0].order_status == "design_in_progress"

    def test_customer_cannot_move_order(self, engine, orders, order, customer, published_events):
        with pytest.raises(InvalidTransition):
            engine.request_transition("order", order.id, "design_in_progress", customer.id)

        assert orders.get(order.id).status == OrderStatus.PENDING_DESIGN
        assert published_events == []

    def test_design_approved_requires_approved_design(
        self, engine, orders, order, design_task, salesperson
    ):
        """The order cannot jump to design_approved without an approved design task."""
        orders.update(order.id, {"status": OrderStatus.DESIGN_REVIEW})

        with pytest.raises(InvalidTransition):
            engine.request_transition("order", order.id, "design_approved", salesperson.id)

    def test_manufacturer_completes_order(self, engine, orders, order, manufacturer):
        orders.update(order.id, {"status": OrderStatus.IN_PRODUCTION})

        result = engine.request_transition("order", order.id, "completed", manufacturer.id)

        assert result.order.status == OrderStatus.COMPLETED

    def test_terminal_order_cannot_move(self, engine, orders, order, admin):
        orders.update(order.id, {"status": OrderStatus.CANCELLED})

        with pytest.raises(InvalidTransition):
            engine.request_transition("order", order.id, "pending_design", admin.id)


INVALID_ORDER_PAIRS = [
    (current, target)
    for current in OrderStatus
    for target in OrderStatus
    if target not in VALID_ORDER_TRANSITIONS[current]
]

INVALID_TASK_PAIRS = [
    (current, target)
    for current in TaskStatus
    for target in TaskStatus
    if target not in VALID_TASK_TRANSITIONS[current]
]


class TestTransitionTables:
    """Every pair outside the tables is refused with no side effects."""

    @pytest.mark.parametrize(
        "current,target", INVALID_ORDER_PAIRS, ids=lambda s: s.value,
    )
    def test_invalid_order_transition(
        self, engine, orders, order, admin, published_events, current, target
    ):
        orders.update(order.id, {"status": current})

        with pytest.raises(InvalidTransition):
            engine.request_transition("order", order.id, target.value, admin.id)

        assert published_events == []
        assert orders.get(order.id).status == current

    @pytest.mark.parametrize(
        "current,target", INVALID_TASK_PAIRS, ids=lambda s: s.value,
    )
    def test_invalid_task_transition(
        self, engine, orders, tasks, order, design_task, admin, published_events, current, target
    ):
        tasks.update(design_task.id, {"status": current})

        with pytest.raises(InvalidTransition):
            engine.request_transition("task", design_task.id, target.value, admin.id)

        assert published_events == []
        assert tasks.get(design_task.id).status == current
        assert orders.get(order.id).status == OrderStatus.PENDING_DESIGN

    @pytest.mark.parametrize(
        "current", [s for s in OrderStatus if not s.is_terminal], ids=lambda s: s.value,
    )
    def test_order_cancel_from_any_non_terminal_state(
        self, engine, orders, order, salesperson, published_events, current
    ):
        orders.update(order.id, {"status": current})

        result = engine.request_transition("order", order.id, "cancelled", salesperson.id)

        assert result.order.status == OrderStatus.CANCELLED
        assert orders.get(order.id).status == OrderStatus.CANCELLED
        assert len(published_events) == 1

    @pytest.mark.parametrize(
        "current", [s for s in TaskStatus if not s.is_terminal], ids=lambda s: s.value,
    )
    def test_task_cancel_from_any_non_terminal_state(
        self, engine, tasks, design_task, salesperson, published_events, current
    ):
        tasks.update(design_task.id, {"status": current})

        result = engine.request_transition("task", design_task.id, "cancelled", salesperson.id)

        assert result.task.status == TaskStatus.CANCELLED
        assert tasks.get(design_task.id).status == TaskStatus.CANCELLED
        assert len(published_events) == 1


class TestLookupErrors:
    """Tests for unknown ids and entity types."""

    def test_missing_order(self, engine, admin):
        with pytest.raises(EntityNotFound):
            engine.request_transition("order", "nope", "cancelled", admin.id)

    def test_missing_task(self, engine, admin):
        with pytest.raises(EntityNotFound):
            engine.request_transition("task", "nope", "cancelled", admin.id)

    def test_unknown_actor(self, engine, order):
        with pytest.raises(InvalidTransition):
            engine.request_transition("order", order.id, "cancelled", "ghost")

    def test_unknown_entity_type(self, engine, order, admin):
        with pytest.raises(InvalidTransition):
            engine.request_transition("invoice", order.id, "cancelled", admin.id)


class TestAssignment:
    """Tests for re-assignment (no status change, no event)."""

    def test_salesperson_reassigns_designer(
        self, engine, directory, order, salesperson, published_events
    ):
        from domain.aggregates import User
        from rbac.roles import Role

        directory.add(User(id="designer-2", role=Role.DESIGNER, email="d2@threadcraft.test"))

        updated = engine.assign_order(order.id, salesperson.id, designer_id="designer-2")

        assert updated.designer_id == "designer-2"
        assert updated.status == OrderStatus.PENDING_DESIGN
        assert published_events == []

    def test_assignee_role_must_match(self, engine, order, salesperson, customer):
        with pytest.raises(InvalidTransition):
            engine.assign_order(order.id, salesperson.id, designer_id=customer.id)

    def test_designer_cannot_reassign(self, engine, order, designer, manufacturer):
        with pytest.raises(InvalidTransition):
            engine.assign_order(order.id, designer.id, manufacturer_id=manufacturer.id)

    def test_assign_task(self, engine, directory, design_task, admin):
        from domain.aggregates import User
        from rbac.roles import Role

        directory.add(User(id="designer-3", role=Role.DESIGNER, email="d3@threadcraft.test"))

        updated = engine.assign_task(design_task.id, admin.id, "designer-3")

        assert updated.assignee_id == "designer-3"
