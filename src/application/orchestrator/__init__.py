"""Chat turn orchestration."""

from application.orchestrator.chat_orchestrator import ChatOrchestrator, ChatTurn, OrchestratorState, tool_status_message
from application.orchestrator.followup import DEFAULT_FOLLOWUP_TEMPLATE, FollowupTemplate, build_followup_messages
from application.orchestrator.tool_dispatcher import ToolDispatcher

__all__ = [
    "ChatOrchestrator",
    "ChatTurn",
    "OrchestratorState",
    "tool_status_message",
    "DEFAULT_FOLLOWUP_TEMPLATE",
    "FollowupTemplate",
    "build_followup_messages",
    "ToolDispatcher",
]
