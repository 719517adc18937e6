"""
Workflow Service - Application service for order/task transitions.

Runs a transition through the engine, then composes and routes the
resulting notifications. Delivery is best-effort: once the engine has
accepted a transition, nothing on the delivery path is raised back to
the caller.
"""

import logging
from typing import List, Optional, Tuple

from domain.aggregates import Order, Task
from domain.repositories import IUserDirectory
from notifications.composer import NotificationComposer
from realtime.event_router import DeliveryOutcome, EventRouter
from workflow.engine import TransitionResult, WorkflowEngine

logger = logging.getLogger(__name__)


class WorkflowService:
    """
    Orchestrates:
    - Transition validation and persistence (WorkflowEngine)
    - Recipient resolution (NotificationComposer)
    - Live push or fallback email (EventRouter)
    """

    def __init__(
        self,
        engine: WorkflowEngine,
        composer: NotificationComposer,
        router: EventRouter,
        directory: IUserDirectory,
    ):
        self.engine = engine
        self.composer = composer
        self.router = router
        self.directory = directory

    async def request_transition(
        self,
        entity_type: str,
        entity_id: str,
        target_status: str,
        actor_id: str,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        result = self.engine.request_transition(entity_type, entity_id, target_status, actor_id, notes)
        await self.deliver(result)
        return result

    async def upload_file(
        self,
        task_id: str,
        actor_id: str,
        file_ref: str,
        notes: Optional[str] = None,
    ) -> TransitionResult:
        result = self.engine.upload_file(task_id, actor_id, file_ref, notes)
        await self.deliver(result)
        return result

    def assign_order(self, order_id: str, actor_id: str, **assignees: Optional[str]) -> Order:
        return self.engine.assign_order(order_id, actor_id, **assignees)

    def assign_task(self, task_id: str, actor_id: str, assignee_id: str) -> Task:
        return self.engine.assign_task(task_id, actor_id, assignee_id)

    async def deliver(self, result: TransitionResult) -> List[Tuple[str, DeliveryOutcome]]:
        """Compose and route notifications for the result's event, if any."""
        if result.event is None:
            return []

        try:
            pairs = self.composer.compose(result.event, result.order, result.task, self.directory)
            outcomes = await self.router.route_many(pairs)
        except Exception as e:
            logger.error(
                f"Notification delivery failed for {result.event.event_type.value} "
                f"(event={result.event.event_id}): {e}",
                exc_info=True,
            )
            return []

        logger.info(
            f"Delivered {result.event.event_type.value}: "
            + (", ".join(f"{rid}={outcome.value}" for rid, outcome in outcomes) or "no recipients")
        )
        return outcomes
