"""
Tests for the notification composer.

Tests:
- Recipient selection per event type
- Message templates (rejection notes verbatim, default feedback text)
- Skipping unknown/unset recipients and de-duplication
"""

import pytest

from domain.events import EventType, WorkflowEvent
from domain.memory import InMemoryUserDirectory
from domain.value_objects import OrderStatus
from notifications.composer import NO_FEEDBACK, NotificationComposer
from notifications.models import NotificationKind


def _event(event_type, order, task=None, notes=None, **detail):
    return WorkflowEvent(
        event_type=event_type,
        order_id=order.id,
        task_id=task.id if task else None,
        actor_id="sales-1",
        notes=notes,
        detail=detail,
    )


@pytest.fixture
def composer():
    return NotificationComposer(link_base="https://app.threadcraft.test/")


class TestRecipients:
    """Tests for who receives each event."""

    def test_design_submitted_goes_to_salesperson_and_customer(
        self, composer, directory, order, design_task
    ):
        event = _event(EventType.DESIGN_SUBMITTED, order, design_task)

        pairs = composer.compose(event, order, design_task, directory)

        assert [rid for rid, _ in pairs] == ["sales-1", "customer-1"]
        for recipient_id, notification in pairs:
            assert notification.recipient_id == recipient_id
            assert notification.kind == NotificationKind.NOTIFICATION
            assert notification.event_type == "design_submitted"
            assert "ready for your review" in notification.message
            assert notification.link == "https://app.threadcraft.test/orders/order-1"

    def test_design_approved_goes_to_task_designer(self, composer, directory, order, design_task):
        pairs = composer.compose(
            _event(EventType.DESIGN_APPROVED, order, design_task), order, design_task, directory,
        )

        assert [rid for rid, _ in pairs] == ["designer-1"]
        assert "approved" in pairs[0][1].message

    def test_order_status_goes_to_customer(self, composer, directory, orders, order):
        updated = orders.update(order.id, {"status": OrderStatus.DESIGN_APPROVED})
        event = _event(EventType.ORDER_STATUS_CHANGED, updated, order_status="design_approved")

        pairs = composer.compose(event, updated, None, directory)

        assert [rid for rid, _ in pairs] == ["customer-1"]
        assert pairs[0][1].message == "Order #1001 status is now Design Approved"
        assert pairs[0][1].task_id is None

    def test_production_submitted_goes_to_salesperson(
        self, composer, directory, order, production_task
    ):
        pairs = composer.compose(
            _event(EventType.PRODUCTION_SUBMITTED, order, production_task),
            order, production_task, directory,
        )
        assert [rid for rid, _ in pairs] == ["sales-1"]

    def test_production_rejected_goes_to_manufacturer(
        self, composer, directory, order, production_task
    ):
        pairs = composer.compose(
            _event(EventType.PRODUCTION_REJECTED, order, production_task, notes="seams loose"),
            order, production_task, directory,
        )
        assert [rid for rid, _ in pairs] == ["maker-1"]
        assert "seams loose" in pairs[0][1].message


class TestRejectionTemplates:
    """Tests for rejection feedback text."""

    def test_notes_included_verbatim(self, composer, directory, order, design_task):
        event = _event(EventType.DESIGN_REJECTED, order, design_task, notes="wrong colors")

        pairs = composer.compose(event, order, design_task, directory)

        assert [rid for rid, _ in pairs] == ["designer-1"]
        notification = pairs[0][1]
        assert "wrong colors" in notification.message
        assert notification.detail["notes"] == "wrong colors"

    @pytest.mark.parametrize("notes", [None, ""])
    def test_missing_notes_use_default_text(self, composer, directory, order, design_task, notes):
        event = _event(EventType.DESIGN_REJECTED, order, design_task, notes=notes)

        pairs = composer.compose(event, order, design_task, directory)

        assert NO_FEEDBACK in pairs[0][1].message


class TestRecipientFiltering:
    """Tests for skipped and collapsed recipients."""

    def test_unset_salesperson_skipped(self, composer, directory, orders, order, design_task):
        unassigned = orders.update(order.id, {"salesperson_id": None})
        event = _event(EventType.DESIGN_SUBMITTED, unassigned, design_task)

        pairs = composer.compose(event, unassigned, design_task, directory)

        assert [rid for rid, _ in pairs] == ["customer-1"]

    def test_unknown_recipient_skipped(self, composer, order, design_task, customer):
        directory = InMemoryUserDirectory()
        directory.add(customer)
        event = _event(EventType.DESIGN_SUBMITTED, order, design_task)

        pairs = composer.compose(event, order, design_task, directory)

        assert [rid for rid, _ in pairs] == ["customer-1"]

    def test_duplicate_recipient_collapsed(self, composer, directory, orders, order, design_task):
        """A salesperson who is also the customer gets one notification."""
        same = orders.update(order.id, {"customer_id": "sales-1"})
        event = _event(EventType.DESIGN_SUBMITTED, same, design_task)

        pairs = composer.compose(event, same, design_task, directory)

        assert [rid for rid, _ in pairs] == ["sales-1"]

    def test_compose_has_no_side_effects(self, composer, directory, orders, order, design_task):
        event = _event(EventType.DESIGN_SUBMITTED, order, design_task)

        composer.compose(event, order, design_task, directory)

        assert orders.get(order.id) == order
