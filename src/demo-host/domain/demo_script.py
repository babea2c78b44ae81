"""The scripted sales demo.

Ten steps alternating between live agent actions and simulated prospect
replies. Prompt text is kept short; the agent is asked to answer in a
To/Subject/--- body --- layout so the client can render an email card.
"""

from dataclasses import dataclass
from typing import Optional

from domain.models.demo_step import AgentContext, DemoStep, SimulatedContent, SimulatedContentType, StepType


@dataclass(frozen=True)
class Person:
    name: str
    title: str
    company: str
    email: str


PROSPECT = Person(
    name="Marcus Chen",
    title="VP of Operations",
    company="Acme Corp",
    email="marcus.chen@acmecorp.example",
)

SENDER = Person(
    name="Jordan Lee",
    title="Account Executive",
    company="InventoryAI",
    email="jordan.lee@inventoryai.example",
)

PROSPECT_PAIN_POINTS = [
    "manual inventory reconciliation",
    "stockouts on fast-moving SKUs",
    "three disconnected inventory systems",
]

EMAIL_FORMAT_INSTRUCTION = """

Format your response EXACTLY as follows:
To: [recipient email]
Subject: [email subject line]

---
[email body - write the complete email here]
---"""

SIMULATED_EMAILS = {
    "interested": {
        "id": "email-interested",
        "from": PROSPECT.email,
        "fromName": PROSPECT.name,
        "to": SENDER.email,
        "subject": "Re: Cutting reconciliation time at Acme",
        "body": (
            "Hi Jordan,\n\nTiming is good - our CFO is pushing hard on Q2 inventory costs. "
            "Happy to hear more. What does your availability look like?\n\nMarcus"
        ),
    },
    "picks_time": {
        "id": "email-picks-time",
        "from": PROSPECT.email,
        "fromName": PROSPECT.name,
        "to": SENDER.email,
        "subject": "Re: Times for a quick call",
        "body": "Thursday at 10am PT works. Talk then.\n\nMarcus",
    },
    "requests_pricing": {
        "id": "email-requests-pricing",
        "from": PROSPECT.email,
        "fromName": PROSPECT.name,
        "to": SENDER.email,
        "subject": "Pricing for Monday's leadership meeting",
        "body": (
            "Jordan,\n\nThe demo landed well. Can you send a formal proposal by Friday? "
            "12,000 SKUs, 2 warehouses, 15 users to start, NetSuite integration required. "
            "I've looped in Sarah, our CFO.\n\nMarcus"
        ),
    },
}

CALL_TRANSCRIPT = {
    "callId": "call-discovery-1",
    "title": "InventoryAI <> Acme Corp - Discovery Call",
    "duration": "31:42",
    "participants": [
        {"name": PROSPECT.name, "role": PROSPECT.title, "company": PROSPECT.company},
        {"name": SENDER.name, "role": SENDER.title, "company": SENDER.company},
    ],
    "transcript": (
        "Marcus: We spend about two hours a day reconciling inventory across three systems.\n"
        "Jordan: What does that cost you when counts drift?\n"
        "Marcus: Last quarter we lost around fifty thousand dollars to stockouts.\n"
        "Jordan: Would a NetSuite integration be a requirement?\n"
        "Marcus: Absolutely. Also, Jamie at Distribution Pro speaks highly of you."
    ),
    "keyMoments": [
        {"timestamp": "04:12", "type": "pain_point", "note": "2 hours/day on reconciliation"},
        {"timestamp": "09:30", "type": "pain_point", "note": "$50K stockout losses last quarter"},
        {"timestamp": "15:05", "type": "requirement", "note": "NetSuite integration required"},
    ],
}


def _sender_block() -> str:
    return f"Your sender identity:\n- Name: {SENDER.name}\n- Title: {SENDER.title}\n- Company: {SENDER.company}"


def _send_to(recipient: str) -> str:
    return f"\n\nIMPORTANT: Send the email to exactly this address: {recipient}{EMAIL_FORMAT_INSTRUCTION}"


def build_demo_steps(recipient: Optional[str] = None) -> list[DemoStep]:
    """Build the demo steps.

    Args:
        recipient: Address that agent emails are actually sent to. Defaults to
            the prospect's address; point it at your own inbox when testing.
    """
    to = recipient or PROSPECT.email
    prospect_line = f"{PROSPECT.name}, {PROSPECT.title} at {PROSPECT.company}"

    return [
        DemoStep(
            id="send-outreach",
            number=1,
            title="Send Outreach Email",
            description="Agent researches prospect and crafts personalized outreach",
            type=StepType.AGENT_ACTION,
            tools=("send_email",),
            agent_context=AgentContext(
                system_prompt=(
                    "You are a sales development AI assistant. Craft and send a personalized outreach email.\n\n"
                    f"Target prospect: {prospect_line}\n"
                    f"Known pain points: {', '.join(PROSPECT_PAIN_POINTS)}\n\n"
                    f"{_sender_block()}\n\n"
                    "Keep it under 150 words with a clear, low-friction call to action." + _send_to(to)
                ),
                task=f"Draft and send the initial outreach email to {PROSPECT.name}. Send it to: {to}",
            ),
        ),
        DemoStep(
            id="customer-interested",
            number=2,
            title="Customer Responds",
            description=f"{PROSPECT.name.split()[0]} expresses interest in learning more",
            type=StepType.SIMULATED_RESPONSE,
            simulated_content=SimulatedContent(SimulatedContentType.EMAIL, SIMULATED_EMAILS["interested"]),
        ),
        DemoStep(
            id="send-availability",
            number=3,
            title="Reply with Availability",
            description="Agent checks calendar and offers meeting times",
            type=StepType.AGENT_ACTION,
            tools=("get_calendar_availability", "send_email"),
            agent_context=AgentContext(
                system_prompt=(
                    f"You are responding to {prospect_line}, who wants to learn more and mentioned Q2 pressure "
                    "from their CFO.\n\n"
                    f"{_sender_block()}\n\n"
                    "Check the calendar, then offer 3-4 specific slots over the next week "
                    "(Tuesday-Thursday mornings PT). Keep it brief." + _send_to(to)
                ),
                task=f"Reply to {PROSPECT.name} with available meeting times. Send it to: {to}",
            ),
        ),
        DemoStep(
            id="customer-picks-time",
            number=4,
            title="Customer Picks Time",
            description="Prospect confirms Thursday at 10am PT",
            type=StepType.SIMULATED_RESPONSE,
            simulated_content=SimulatedContent(SimulatedContentType.EMAIL, SIMULATED_EMAILS["picks_time"]),
        ),
        DemoStep(
            id="book-meeting",
            number=5,
            title="Book Meeting",
            description="Agent creates calendar invite and confirms",
            type=StepType.AGENT_ACTION,
            tools=("create_calendar_event", "send_email"),
            agent_context=AgentContext(
                system_prompt=(
                    f"You are booking a 30 minute discovery call with {prospect_line} on Thursday at 10:00 AM PT.\n\n"
                    f"{_sender_block()}\n\n"
                    'Create a calendar invite titled "InventoryAI <> Acme Corp - Discovery Call" with a brief agenda, '
                    f"add {to} as attendee, then send a short confirmation email." + _send_to(to)
                ),
                task=f"Create the calendar invite for Thursday 10am PT and confirm with {PROSPECT.name}. Send to: {to}",
            ),
        ),
        DemoStep(
            id="load-transcript",
            number=6,
            title="Load Call Transcript",
            description="The discovery call happened - loading transcript",
            type=StepType.SIMULATED_RESPONSE,
            simulated_content=SimulatedContent(SimulatedContentType.TRANSCRIPT, CALL_TRANSCRIPT),
        ),
        DemoStep(
            id="analyze-and-followup",
            number=7,
            title="Analyze & Send Follow-up",
            description="Agent extracts insights, finds docs, sends follow-up",
            type=StepType.AGENT_ACTION,
            tools=("search_drive", "send_email"),
            agent_context=AgentContext(
                system_prompt=(
                    f"You are following up on a discovery call with {prospect_line}.\n\n"
                    "Key points: 2 hours/day on reconciliation, $50K lost to stockouts last quarter, "
                    "NetSuite integration required, knows Jamie at Distribution Pro.\n\n"
                    f"{_sender_block()}\n\n"
                    "Find the Distribution Pro case study and NetSuite integration specs in Drive, then send a "
                    "concise follow-up summarizing 2-3 takeaways and confirming Thursday's demo." + _send_to(to)
                ),
                task=f"Send a follow-up email to {PROSPECT.name} with the promised materials. Send it to: {to}",
            ),
        ),
        DemoStep(
            id="customer-requests-pricing",
            number=8,
            title="Customer Requests Pricing",
            description="Prospect asks for a formal proposal",
            type=StepType.SIMULATED_RESPONSE,
            simulated_content=SimulatedContent(SimulatedContentType.EMAIL, SIMULATED_EMAILS["requests_pricing"]),
        ),
        DemoStep(
            id="generate-proposal",
            number=9,
            title="Generate Proposal",
            description="Agent creates pricing proposal (requires approval)",
            type=StepType.AGENT_ACTION,
            requires_approval=True,
            tools=("search_drive", "send_email"),
            agent_context=AgentContext(
                system_prompt=(
                    f"You are preparing a pricing proposal for {prospect_line}.\n\n"
                    "Pricing (use these EXACT numbers): base platform $2,500/month; $500/month per warehouse "
                    "(2 warehouses); $50/user/month (15 users); NetSuite integration $1,000 setup + $200/month; "
                    "implementation $5,000 one-time. Total monthly: $4,450. Total one-time: $6,000.\n\n"
                    f"{_sender_block()}\n\n"
                    "This email is reviewed by a human before sending. Do not send it; draft it only."
                    f"{EMAIL_FORMAT_INSTRUCTION}"
                ),
                task=f"Generate a pricing proposal for {PROSPECT.name}. When approved, it goes to: {to}",
            ),
        ),
        DemoStep(
            id="send-proposal",
            number=10,
            title="Send Proposal",
            description="Approved proposal is sent to prospect",
            type=StepType.AGENT_ACTION,
            tools=("send_email",),
            agent_context=AgentContext(
                system_prompt=(
                    f"The proposal for {prospect_line} was reviewed and approved. "
                    "Send it and output a brief confirmation." + _send_to(to)
                ),
                task=f"Send the approved proposal to {PROSPECT.name}. Send it to: {to}",
            ),
        ),
    ]


class DemoScript:
    """Read-only catalog of demo steps."""

    def __init__(self, steps: list[DemoStep]) -> None:
        self._steps = list(steps)
        self._by_id = {step.id: step for step in self._steps}

    @property
    def steps(self) -> list[DemoStep]:
        return list(self._steps)

    def find(self, step_id: str) -> Optional[DemoStep]:
        return self._by_id.get(step_id)

    def agent_steps(self) -> list[DemoStep]:
        return [step for step in self._steps if step.is_agent_action]

    def __len__(self) -> int:
        return len(self._steps)
