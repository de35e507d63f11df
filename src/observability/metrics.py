"""Business metrics for Mail Agent service.

Defines OpenTelemetry metrics for:
- Chat: Requests, stream duration, cancellations
- LLM: Request latency and tool calls per provider
- Tools: Execution count, latency and failures
- Voice: Agent creation
"""

from opentelemetry import metrics

meter = metrics.get_meter("mail_agent")

# =============================================================================
# CHAT METRICS
# =============================================================================

chat_requests = meter.create_counter(
    name="mail_agent.chat.requests",
    description="Total chat requests received",
    unit="1",
)

chat_stream_duration = meter.create_histogram(
    name="mail_agent.chat.stream_duration",
    description="Duration of chat streams (from request to terminal event)",
    unit="ms",
)

chat_requests_cancelled = meter.create_counter(
    name="mail_agent.chat.requests_cancelled",
    description="Chat requests cancelled by the client",
    unit="1",
)

# =============================================================================
# LLM METRICS
# =============================================================================

llm_request_count = meter.create_counter(
    name="mail_agent.llm.request_count",
    description="Total LLM requests made",
    unit="1",
)

llm_request_time = meter.create_histogram(
    name="mail_agent.llm.request_time",
    description="Time for LLM streaming requests (request to last frame)",
    unit="ms",
)

llm_tool_calls = meter.create_counter(
    name="mail_agent.llm.tool_calls",
    description="Total tool calls made by LLM",
    unit="1",
)

# =============================================================================
# TOOL METRICS
# =============================================================================

tool_execution_count = meter.create_counter(
    name="mail_agent.tools.execution_count",
    description="Total tool executions",
    unit="1",
)

tool_execution_time = meter.create_histogram(
    name="mail_agent.tools.execution_time",
    description="Time to execute tools",
    unit="ms",
)

tool_execution_errors = meter.create_counter(
    name="mail_agent.tools.execution_errors",
    description="Total failed tool executions",
    unit="1",
)

# =============================================================================
# VOICE METRICS
# =============================================================================

voice_agents_created = meter.create_counter(
    name="mail_agent.voice.agents_created",
    description="Voice agents created on ElevenLabs",
    unit="1",
)
