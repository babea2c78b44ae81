"""Terminal client for the demo host.

Lists the demo steps, runs single agent steps with the model's reasoning and
output rendered live, and plays the whole script including the simulated
prospect emails and call transcript.

    demo-client steps
    demo-client run send-outreach
    demo-client run generate-proposal
    demo-client play --from load-transcript
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Optional

import httpx
from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table
from rich.text import Text

from client.output_parser import ParsedEmail, ParsedProposal, parse_email_from_output, parse_proposal_from_output
from client.stream_consumer import AgentStreamConsumer, StreamResult, StreamState
from domain.models.demo_step import SimulatedContentType, StepType

logger = logging.getLogger(__name__)

console = Console()

THINKING_TAIL_CHARS = 1500
STEPS_PATH = "/api/agent/steps"

# Steps whose output is a pricing proposal rather than a plain email
PROPOSAL_STEP_IDS = frozenset({"generate-proposal"})

EXIT_CANCELLED = 130
EXIT_UNKNOWN_STEP = 2


def _tail(text: str, limit: int) -> str:
    if len(text) > limit:
        return "…" + text[-limit:]
    return text


def render_state(step_id: str, state: StreamState) -> Group:
    """Build the live view for the current stream state."""
    title = f"[bold cyan]{step_id}[/bold cyan]"
    if state.is_streaming:
        title += " [dim](running)[/dim]"

    thinking = Panel(
        Text(_tail(state.thinking, THINKING_TAIL_CHARS) or "…", style="dim italic"),
        title="[magenta]Thinking[/magenta]",
        border_style="magenta",
    )
    output = Panel(Text(state.output or ""), title="[blue]Output[/blue]", border_style="blue")
    parts = [Text.from_markup(title), thinking, output]
    if state.error:
        parts.append(Panel(Text(state.error, style="bold red"), title="[red]Error[/red]", border_style="red"))
    return Group(*parts)


def render_email(email: ParsedEmail) -> Panel:
    header = Table.grid(padding=(0, 1))
    header.add_row("[dim]From:[/dim]", f"{email.from_name} <{email.from_address}>")
    header.add_row("[dim]To:[/dim]", f"{email.to_name} <{email.to}>")
    header.add_row("[dim]Subject:[/dim]", f"[bold]{email.subject}[/bold]")
    return Panel(Group(header, Text(""), Text(email.body)), title="[green]Email[/green]", border_style="green")


def render_proposal(proposal: ParsedProposal) -> Group:
    pricing = proposal.pricing
    table = Table(title="Pricing", show_header=True, header_style="bold")
    table.add_column("Item")
    table.add_column("Amount", justify="right")
    table.add_row("Base platform", f"${pricing.base_platform:,}/mo")
    table.add_row(f"Warehouses ({pricing.warehouse_count})", f"${pricing.per_warehouse * pricing.warehouse_count:,}/mo")
    table.add_row(f"User licenses ({pricing.user_count})", f"${pricing.user_licenses * pricing.user_count:,}/mo")
    table.add_row("NetSuite integration", f"${pricing.integration_monthly:,}/mo + ${pricing.integration_setup:,} setup")
    table.add_row("Implementation", f"${pricing.implementation:,} one-time")
    table.add_row("[bold]Total monthly[/bold]", f"[bold]${pricing.total_monthly:,}[/bold]")
    table.add_row("[bold]Total one-time[/bold]", f"[bold]${pricing.total_one_time:,}[/bold]")
    return Group(render_email(proposal.email), table)


def render_received_email(data: dict[str, Any]) -> Panel:
    """Card for an inbound email from the prospect."""
    header = Table.grid(padding=(0, 1))
    header.add_row("[dim]From:[/dim]", f"{data.get('fromName', '')} <{data.get('from', '')}>")
    header.add_row("[dim]To:[/dim]", data.get("to", ""))
    header.add_row("[dim]Subject:[/dim]", f"[bold]{data.get('subject', '')}[/bold]")
    return Panel(Group(header, Text(""), Text(data.get("body", ""))), title="[yellow]Received email[/yellow]", border_style="yellow")


def render_transcript(data: dict[str, Any]) -> Panel:
    """Card for a recorded call: participants, key moments and the dialogue."""
    participants = Table(title="Participants", show_header=True, header_style="bold", expand=True)
    participants.add_column("Name", style="cyan")
    participants.add_column("Role")
    participants.add_column("Company")
    for person in data.get("participants", []):
        participants.add_row(person.get("name", ""), person.get("role", ""), person.get("company", ""))

    moments = Table(title="Key moments", show_header=True, header_style="bold", expand=True)
    moments.add_column("Time", justify="right", style="dim")
    moments.add_column("Type", style="magenta")
    moments.add_column("Note")
    for moment in data.get("keyMoments", []):
        moments.add_row(moment.get("timestamp", ""), moment.get("type", "").replace("_", " "), moment.get("note", ""))

    dialogue = Text()
    for line in data.get("transcript", "").splitlines():
        speaker, sep, said = line.partition(":")
        if sep:
            dialogue.append(speaker, style="bold cyan")
            dialogue.append(f":{said}\n")
        else:
            dialogue.append(f"{line}\n")

    title = f"[blue]{data.get('title', 'Call transcript')}[/blue] [dim]({data.get('duration', '?')})[/dim]"
    return Panel(Group(participants, moments, Text(""), dialogue), title=title, border_style="blue")


def render_simulated(step: dict[str, Any]) -> Optional[RenderableType]:
    """Card for a simulated step's canned content, or None when it has none."""
    content = step.get("simulated_content") or {}
    data = content.get("data") or {}
    if content.get("type") == SimulatedContentType.EMAIL:
        return render_received_email(data)
    if content.get("type") == SimulatedContentType.TRANSCRIPT:
        return render_transcript(data)
    return None


def render_result(step_id: str, final_output: str, proposal: bool = False) -> RenderableType:
    """Card for an agent step's final output.

    Proposal steps get the pricing view, all others the email card; text the
    parser cannot read is shown as is.
    """
    if proposal or step_id in PROPOSAL_STEP_IDS:
        parsed_proposal = parse_proposal_from_output(final_output)
        if parsed_proposal is not None:
            return render_proposal(parsed_proposal)
    else:
        parsed = parse_email_from_output(final_output)
        if parsed is not None:
            return render_email(parsed)
    return Panel(Text(final_output), title="Final output")


async def fetch_steps(client: httpx.AsyncClient) -> list[dict[str, Any]]:
    response = await client.get(STEPS_PATH)
    response.raise_for_status()
    return response.json()


async def stream_step(step_id: str, base_url: str, client: Optional[httpx.AsyncClient] = None) -> tuple[Optional[StreamResult], StreamState]:
    """Run one agent step under a live view and return its result and final state."""
    with Live(render_state(step_id, StreamState(is_streaming=True)), console=console, refresh_per_second=12) as live:
        consumer = AgentStreamConsumer(client=client, base_url=base_url, on_update=lambda state: live.update(render_state(step_id, state)))
        try:
            result = await consumer.execute_step(step_id)
        finally:
            await consumer.close()
        return result, consumer.state


def _report_unfinished(state: StreamState) -> int:
    if state.error:
        console.print(f"[bold red]Step failed:[/bold red] {state.error}")
        return 1
    console.print("[yellow]Cancelled[/yellow]")
    return EXIT_CANCELLED


async def list_steps(base_url: str, agent_only: bool = False) -> int:
    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        try:
            steps = await fetch_steps(client)
        except httpx.HTTPError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            return 1

    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Id", style="cyan")
    table.add_column("Title")
    table.add_column("Type")
    table.add_column("Tools", style="green")
    for step in steps:
        if agent_only and step.get("type") != StepType.AGENT_ACTION:
            continue
        step_type = step.get("type", "")
        if step.get("requires_approval"):
            step_type += " [yellow](approval)[/yellow]"
        table.add_row(str(step.get("number", "")), step.get("id", ""), step.get("title", ""), step_type, ", ".join(step.get("tools", [])))
    console.print(table)
    return 0


async def run_step(base_url: str, step_id: str, proposal: bool = False, raw: bool = False) -> int:
    """Run one agent step with a live view. Ctrl+C cancels the request."""
    result, state = await stream_step(step_id, base_url)
    if result is None:
        return _report_unfinished(state)

    if raw:
        console.print(result.final_output)
    else:
        console.print(render_result(step_id, result.final_output, proposal=proposal))
    return 0


async def play_demo(
    base_url: str,
    start_step: Optional[str] = None,
    auto_approve: bool = False,
    delay: float = 0.5,
    client: Optional[httpx.AsyncClient] = None,
) -> int:
    """Play the demo script in order, from `start_step` if given.

    Simulated steps show their canned email or transcript. Agent steps run
    live; a step that requires approval asks before the demo moves on.
    """
    if client is None:
        async with httpx.AsyncClient(base_url=base_url, timeout=300.0) as owned:
            return await play_demo(base_url, start_step, auto_approve, delay, client=owned)

    try:
        steps = await fetch_steps(client)
    except httpx.HTTPError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1

    if start_step is not None:
        ids = [step.get("id") for step in steps]
        if start_step not in ids:
            console.print(f"[bold red]Unknown step:[/bold red] {start_step}")
            return EXIT_UNKNOWN_STEP
        steps = steps[ids.index(start_step) :]

    for step in steps:
        step_id = step.get("id", "")
        title = step.get("title", step_id)
        console.rule(f"[bold]Step {step.get('number', '?')}: {title}[/bold]")

        if step.get("type") == StepType.SIMULATED_RESPONSE:
            console.print("[dim]Simulating customer response...[/dim]")
            await asyncio.sleep(delay)
            card = render_simulated(step)
            if card is not None:
                console.print(card)
            continue

        result, state = await stream_step(step_id, base_url, client=client)
        if result is None:
            return _report_unfinished(state)
        console.print(render_result(step_id, result.final_output))

        if step.get("requires_approval") and not auto_approve:
            if not Confirm.ask(f"Approve '{title}' and continue?", console=console, default=True):
                console.print("[yellow]Not approved. Demo stopped.[/yellow]")
                return 0
            logger.info(f"Step '{step_id}' approved")

    console.print("[bold green]Demo complete[/bold green]")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="demo-client", description="Run the scripted sales demo from a terminal.")
    parser.add_argument("--base-url", default="http://localhost:8060", help="Demo host URL")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    commands = parser.add_subparsers(dest="command", required=True)

    steps = commands.add_parser("steps", help="List the demo steps")
    steps.add_argument("--agent-only", action="store_true", help="Only list steps the agent executes")

    run = commands.add_parser("run", help="Run an agent step")
    run.add_argument("step_id", help="Step id, e.g. send-outreach")
    run.add_argument("--proposal", action="store_true", help="Render the output as a pricing proposal")
    run.add_argument("--raw", action="store_true", help="Print the final output without parsing")

    play = commands.add_parser("play", help="Play the whole demo script")
    play.add_argument("--from", dest="start_step", help="Start at this step id")
    play.add_argument("--yes", dest="auto_approve", action="store_true", help="Approve every step without asking")
    play.add_argument("--delay", type=float, default=0.5, help="Seconds to pause on simulated steps")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "steps":
        coro = list_steps(args.base_url, agent_only=args.agent_only)
    elif args.command == "play":
        coro = play_demo(args.base_url, start_step=args.start_step, auto_approve=args.auto_approve, delay=args.delay)
    else:
        coro = run_step(args.base_url, args.step_id, proposal=args.proposal, raw=args.raw)

    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("[yellow]Cancelled[/yellow]")
        return EXIT_CANCELLED


if __name__ == "__main__":
    sys.exit(main())
