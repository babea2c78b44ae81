"""Terminal client: stream consumer, output parser and CLI."""

from client.output_parser import ParsedEmail, ParsedProposal, ProposalPricing, parse_email_from_output, parse_proposal_from_output
from client.stream_consumer import AgentStreamConsumer, SseFrameParser, StreamResult, StreamState

__all__ = [
    "AgentStreamConsumer",
    "ParsedEmail",
    "ParsedProposal",
    "ProposalPricing",
    "SseFrameParser",
    "StreamResult",
    "StreamState",
    "parse_email_from_output",
    "parse_proposal_from_output",
]
