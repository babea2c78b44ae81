"""Extract structured email content from an agent's final output.

The agent is asked to answer as::

    To: <address>
    Subject: <subject>

    ---
    <body>
    ---

but the model only loosely follows that layout, so parsing falls back
through progressively weaker heuristics and returns None when nothing fits.
The caller then shows the raw text.
"""

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from domain.demo_script import PROSPECT, SENDER

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = "Re: InventoryAI - Streamlining Your Operations"

_TO_RE = re.compile(r"To:\s*(.+?)(?:\n|$)", re.IGNORECASE)
_SUBJECT_RE = re.compile(r"Subject:\s*(.+?)(?:\n|$)", re.IGNORECASE)
_DELIMITED_BODY_RE = re.compile(r"---\s*\n(.+?)\n---", re.DOTALL)
_BODY_LABEL_RE = re.compile(r"^Body:\s*", re.IGNORECASE)
_GREETING_RE = re.compile(r"(Hi|Hello|Hey|Dear)\s+\w+", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedEmail:
    to: str
    subject: str
    body: str
    to_name: str = PROSPECT.name
    from_address: str = SENDER.email
    from_name: str = SENDER.name

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ProposalPricing:
    """Fixed price breakdown quoted in the proposal step (USD)."""

    base_platform: int = 2500
    per_warehouse: int = 500
    warehouse_count: int = 2
    user_licenses: int = 50
    user_count: int = 15
    integration_setup: int = 1000
    integration_monthly: int = 200
    implementation: int = 5000
    total_monthly: int = 4450
    total_one_time: int = 6000

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class ParsedProposal:
    email: ParsedEmail
    pricing: ProposalPricing = field(default_factory=ProposalPricing)

    @property
    def to(self) -> str:
        return self.email.to

    @property
    def subject(self) -> str:
        return self.email.subject

    @property
    def body(self) -> str:
        return self.email.body

    def to_dict(self) -> dict[str, Any]:
        return {**self.email.to_dict(), "pricing": self.pricing.to_dict()}


def parse_email_from_output(
    text: str,
    default_to: str = PROSPECT.email,
    default_subject: str = DEFAULT_SUBJECT,
) -> Optional[ParsedEmail]:
    """Parse an email from agent output.

    Strategies, first match wins:
    1. `Subject:` line plus a body between `---` lines (recipient from `To:` or the default)
    2. `Subject:` line, everything after it is the body (minus a leading `Body:` label)
    3. Text opening with a greeting is taken whole as the body
    """
    if not text:
        return None

    to_match = _TO_RE.search(text)
    to = to_match.group(1).strip() if to_match and to_match.group(1).strip() else default_to
    subject_match = _SUBJECT_RE.search(text)

    if subject_match:
        body_match = _DELIMITED_BODY_RE.search(text)
        if body_match:
            return ParsedEmail(to=to, subject=subject_match.group(1).strip(), body=body_match.group(1).strip())

        after_subject = text[subject_match.end() :].strip()
        body = _BODY_LABEL_RE.sub("", after_subject, count=1).strip()
        if body:
            return ParsedEmail(to=to, subject=subject_match.group(1).strip(), body=body)

    if _GREETING_RE.match(text.lstrip()):
        return ParsedEmail(to=default_to, subject=default_subject, body=text.strip())

    logger.debug("No email structure found in agent output")
    return None


def parse_proposal_from_output(
    text: str,
    default_to: str = PROSPECT.email,
    default_subject: str = DEFAULT_SUBJECT,
) -> Optional[ParsedProposal]:
    """Parse the proposal email and attach the fixed pricing breakdown."""
    email = parse_email_from_output(text, default_to=default_to, default_subject=default_subject)
    if email is None:
        return None
    return ParsedProposal(email=email)
