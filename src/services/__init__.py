"""
Services Module - Application services for the ThreadCraft workflow.

Application Services (orchestration):
- WorkflowService: transitions, uploads and re-assignment, plus notification delivery
- MessagingService: direct messages with live push or email fallback

Wiring:
- build_services(): one container per app
"""

from .workflow_service import WorkflowService
from .messaging_service import MessagingService
from .container import ServiceContainer, build_services

__all__ = [
    "WorkflowService",
    "MessagingService",
    "ServiceContainer",
    "build_services",
]
