# ============================================================================
# SERVICES MODULE
# ============================================================================
# EPOCH: 1 - PRE-FLIGHT GATE
# STATUS: Core - Collaborators of the failure handler
# PURPOSE: Alert delivery, buffer video deployment and incident logging
# CREATED: 17 OCT 2026
# ============================================================================
"""
Services Module

Collaborators the gate calls when something fails.
The gate itself (services.preflight) is imported directly.

Usage:
    from services import AlertDispatcher, DiscordNotifier, EmailNotifier

    dispatcher = AlertDispatcher(DiscordNotifier(), EmailNotifier(secrets))
    await dispatcher.dispatch(alert, discord=True, email=True)
"""

from .buffer import BufferDeploymentService, BufferExhaustedError
from .incidents import IncidentService
from .notifier import AlertDispatcher, DiscordNotifier, EmailNotifier

__all__ = [
    "BufferDeploymentService",
    "BufferExhaustedError",
    "IncidentService",
    "AlertDispatcher",
    "DiscordNotifier",
    "EmailNotifier",
]
