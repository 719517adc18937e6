"""
Tests for the application services.

Tests:
- Transition -> compose -> route end to end
- Direct messages: live delivery vs. email fallback
- Delivery failures never reach the caller
"""

from unittest.mock import AsyncMock

import pytest

from domain.value_objects import MessageStatus, OrderStatus, TaskStatus
from realtime.connection_manager import ConnectionInfo
from realtime.event_router import DeliveryOutcome
from workflow.exceptions import EntityNotFound, InvalidTransition

from fakes import FakeWebSocket


async def _connect(services, user_id):
    ws = FakeWebSocket()
    await services.connections.register(user_id, ConnectionInfo(websocket=ws, user_id=user_id))
    return ws


class TestWorkflowService:
    """Tests for WorkflowService."""

    @pytest.mark.asyncio
    async def test_upload_notifies_salesperson_and_customer(
        self, services, email_provider, order, design_task, designer
    ):
        """Salesperson is online and gets a push; the offline customer gets an email."""
        sales_ws = await _connect(services, "sales-1")

        result = await services.workflow.upload_file(design_task.id, designer.id, "v1.png")

        assert result.task.status == TaskStatus.SUBMITTED
        assert result.order.status == OrderStatus.DESIGN_REVIEW
        assert sales_ws.types() == ["notification"]
        assert sales_ws.sent[0]["payload"]["event_type"] == "design_submitted"
        assert [email.to for email in email_provider.sent] == ["casey@example.com"]

    @pytest.mark.asyncio
    async def test_rejection_reaches_designer_with_notes(
        self, services, email_provider, design_task, designer, salesperson
    ):
        await services.workflow.upload_file(design_task.id, designer.id, "v1.png")
        designer_ws = await _connect(services, "designer-1")

        result = await services.workflow.request_transition(
            "task", design_task.id, "rejected", salesperson.id, notes="wrong colors",
        )

        assert result.task.status == TaskStatus.IN_PROGRESS
        assert result.order.status == OrderStatus.DESIGN_REVIEW
        payload = designer_ws.sent[0]["payload"]
        assert payload["event_type"] == "design_rejected"
        assert "wrong colors" in payload["message"]

    @pytest.mark.asyncio
    async def test_invalid_transition_sends_nothing(
        self, services, email_provider, design_task, customer
    ):
        with pytest.raises(InvalidTransition):
            await services.workflow.request_transition("task", design_task.id, "approved", customer.id)

        assert email_provider.sent == []

    @pytest.mark.asyncio
    async def test_delivery_error_not_raised(self, services, design_task, designer):
        services.workflow.router.route_many = AsyncMock(side_effect=RuntimeError("boom"))

        result = await services.workflow.upload_file(design_task.id, designer.id, "v1.png")

        assert result.task.status == TaskStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_attach_only_upload_sends_nothing(
        self, services, email_provider, design_task, designer
    ):
        await services.workflow.upload_file(design_task.id, designer.id, "v1.png")
        sent_before = len(email_provider.sent)

        result = await services.workflow.upload_file(design_task.id, designer.id, "v2.png")

        assert result.event is None
        assert len(email_provider.sent) == sent_before
        assert await services.workflow.deliver(result) == []


class TestMessagingService:
    """Tests for MessagingService."""

    @pytest.mark.asyncio
    async def test_online_receiver_gets_push(self, services, email_provider, salesperson, customer):
        ws = await _connect(services, customer.id)

        message = await services.messaging.send_message(
            salesperson.id, customer.id, "Proof attached", order_id="order-1",
        )

        assert message.status == MessageStatus.DELIVERED
        assert message.email_fallback_used is False
        assert ws.types() == ["new_message"]
        assert ws.sent[0]["payload"]["content"] == "Proof attached"
        assert ws.sent[0]["payload"]["sender_name"] == "Sam Seller"
        assert email_provider.sent == []

    @pytest.mark.asyncio
    async def test_offline_receiver_gets_one_email(
        self, services, email_provider, message_store, salesperson, customer
    ):
        message = await services.messaging.send_message(salesperson.id, customer.id, "Call me")

        assert message.status == MessageStatus.SENT
        assert message.email_fallback_used is True
        assert message_store.get(message.id).email_fallback_used is True
        assert len(email_provider.sent) == 1
        assert email_provider.sent[0].subject == "New message from Sam Seller"

    @pytest.mark.asyncio
    async def test_rerouting_does_not_email_twice(
        self, services, email_provider, message_store, salesperson, customer
    ):
        message = await services.messaging.send_message(salesperson.id, customer.id, "Call me")
        notification = services.messaging._notification_for(message, salesperson)

        outcome = await services.router.route(customer.id, notification)

        assert outcome == DeliveryOutcome.FALLBACK
        assert len(email_provider.sent) == 1

    @pytest.mark.asyncio
    async def test_unknown_receiver(self, services, salesperson):
        with pytest.raises(EntityNotFound):
            await services.messaging.send_message(salesperson.id, "ghost", "hello")

    @pytest.mark.asyncio
    async def test_empty_content_rejected(self, services, salesperson, customer):
        with pytest.raises(ValueError):
            await services.messaging.send_message(salesperson.id, customer.id, "   ")

    @pytest.mark.asyncio
    async def test_mark_read(self, services, salesperson, customer):
        message = await services.messaging.send_message(salesperson.id, customer.id, "hi")

        read = services.messaging.mark_read(message.id, customer.id)

        assert read.status == MessageStatus.READ
        assert read.read_at is not None
        assert read.email_fallback_used is True

    @pytest.mark.asyncio
    async def test_only_receiver_marks_read(self, services, salesperson, customer):
        message = await services.messaging.send_message(salesperson.id, customer.id, "hi")

        with pytest.raises(InvalidTransition):
            services.messaging.mark_read(message.id, salesperson.id)

    def test_mark_read_unknown_message(self, services, customer):
        with pytest.raises(EntityNotFound):
            services.messaging.mark_read("missing", customer.id)
