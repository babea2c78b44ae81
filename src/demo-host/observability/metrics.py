"""Business metrics for the demo host.

Defines OpenTelemetry metrics for:
- Turns: Agent turn lifecycle and duration
- LLM: Request latency, token usage, tool calls
- Tools: Workspace tool execution
"""

from opentelemetry import metrics

meter = metrics.get_meter("demo_host")

# =============================================================================
# TURN METRICS
# =============================================================================

turns_started = meter.create_counter(
    name="demo_host.turns.started",
    description="Total agent turns started",
    unit="1",
)

turns_completed = meter.create_counter(
    name="demo_host.turns.completed",
    description="Total agent turns that ended with a complete event",
    unit="1",
)

turns_failed = meter.create_counter(
    name="demo_host.turns.failed",
    description="Total agent turns that ended with an error event",
    unit="1",
)

turn_duration = meter.create_histogram(
    name="demo_host.turns.duration",
    description="Duration of agent turns (request to terminal event)",
    unit="ms",
)

turn_rounds = meter.create_histogram(
    name="demo_host.turns.rounds",
    description="Number of model requests per agent turn",
    unit="1",
)

# =============================================================================
# LLM METRICS
# =============================================================================

llm_request_count = meter.create_counter(
    name="demo_host.llm.request_count",
    description="Total LLM requests made",
    unit="1",
)

llm_request_time = meter.create_histogram(
    name="demo_host.llm.request_time",
    description="Time for LLM requests (first byte to last byte)",
    unit="ms",
)

llm_token_count = meter.create_histogram(
    name="demo_host.llm.token_count",
    description="Number of tokens in LLM responses",
    unit="1",
)

llm_tool_calls = meter.create_counter(
    name="demo_host.llm.tool_calls",
    description="Total tool calls requested by the LLM",
    unit="1",
)

llm_errors = meter.create_counter(
    name="demo_host.llm.errors",
    description="Total failed LLM requests",
    unit="1",
)

# =============================================================================
# TOOL METRICS
# =============================================================================

tool_execution_count = meter.create_counter(
    name="demo_host.tools.execution_count",
    description="Total tool executions",
    unit="1",
)

tool_execution_time = meter.create_histogram(
    name="demo_host.tools.execution_time",
    description="Time to execute workspace tools",
    unit="ms",
)

tool_execution_errors = meter.create_counter(
    name="demo_host.tools.execution_errors",
    description="Total tool execution errors",
    unit="1",
)
