"""Close commands for perpclose CLI.

Handles previewing a close (quote) and handing a validated close to the
submitter (submit).
"""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()


def _load_snapshot(position_file: Path, orders_file: Optional[Path]):
    """Load a position snapshot and, optionally, the trader's orders."""
    from pydantic import TypeAdapter

    from perpclose.models import ConditionalOrder, Position

    position = Position.model_validate_json(position_file.read_text())
    orders: list[ConditionalOrder] = []
    if orders_file is not None:
        orders = TypeAdapter(list[ConditionalOrder]).validate_json(orders_file.read_text())
    return position, orders


def _build_input(
    position,
    settings,
    amount: Optional[str],
    close_max: bool,
    trigger_price: Optional[str],
    keep_leverage: Optional[bool],
    accept_forfeit: bool,
):
    """Turn command-line values into a CloseInput."""
    from perpclose.engine.fixed import USD_DECIMALS, parse_value
    from perpclose.models import CloseInput, OrderType

    size = position.size if close_max else parse_value(amount, USD_DECIMALS)
    trigger = parse_value(trigger_price, USD_DECIMALS)
    return CloseInput(
        amount=size,
        order_type=OrderType.TRIGGER if trigger_price is not None else OrderType.MARKET,
        trigger_price=trigger,
        keep_leverage=settings.keep_leverage if keep_leverage is None else keep_leverage,
        accept_forfeit=accept_forfeit,
    )


def _prepare(
    position_file: Path,
    orders_file: Optional[Path],
    config_file: Optional[Path],
    amount: Optional[str],
    close_max: bool,
    trigger_price: Optional[str],
    keep_leverage: Optional[bool],
    accept_forfeit: bool,
    at: Optional[float],
) -> dict:
    """Load inputs, compute the plan and validate it."""
    from perpclose.config import load_settings
    from perpclose.engine import calculate_close_plan, find_existing_order, validate_close

    settings = load_settings(config_file)
    position, orders = _load_snapshot(position_file, orders_file)
    close_input = _build_input(
        position, settings, amount, close_max, trigger_price, keep_leverage, accept_forfeit
    )
    plan = calculate_close_plan(position, close_input, settings, now=at)
    return {
        "settings": settings,
        "position": position,
        "close_input": close_input,
        "plan": plan,
        "rejection": validate_close(position, plan, close_input, settings),
        "existing_order": find_existing_order(position, orders, close_input, settings),
    }


def _fail(title: str, message: str) -> None:
    console.print(Panel(
        f"[red]{title}[/red]\n\n{message}",
        title="[bold red]Error[/bold red]",
        border_style="red",
    ))
    raise SystemExit(1)


def _usd(amount: Optional[int], decimals: int = 2) -> str:
    from perpclose.engine.fixed import USD_DECIMALS, format_amount

    if amount is None:
        return "-"
    return f"${format_amount(amount, USD_DECIMALS, decimals, True)}"


def _leverage(bps: Optional[int]) -> str:
    from perpclose.engine.fixed import format_amount

    if bps is None:
        return "-"
    return f"{format_amount(bps, 4, 2)}x"


def _transition(before: str, after: Optional[str]) -> str:
    if after is None:
        return before
    return f"[dim]{before} →[/dim] {after}"


def _render_plan(data: dict) -> None:
    """Print the close preview table."""
    from perpclose.engine.conflicts import trigger_prefix
    from perpclose.engine.fixed import format_amount

    position = data["position"]
    close_input = data["close_input"]
    plan = data["plan"]
    collateral_token = position.collateral_token
    is_trigger = plan.execution_fee is not None

    table = Table(title=position.title, show_header=False, title_style="bold cyan")
    table.add_column("Field", style="bold")
    table.add_column("Value", justify="right")

    if is_trigger:
        trigger = "-"
        if plan.reference_price:
            prefix = trigger_prefix(plan.reference_price > position.mark_price)
            trigger = f"{prefix} {_usd(plan.reference_price)}"
        table.add_row("Trigger Price", trigger)
    table.add_row("Mark Price", _usd(position.mark_price))
    table.add_row("Entry Price", _usd(position.average_price))

    if plan.is_full_close and not is_trigger:
        table.add_row("Liq. Price", "-")
    else:
        next_liq = _usd(plan.next_liquidation_price) if plan.next_liquidation_price else None
        table.add_row("Liq. Price", _transition(_usd(plan.liquidation_price), next_liq))

    next_size = None
    if plan.size_delta:
        next_size = _usd(position.size - plan.size_delta)
    table.add_row("Size", _transition(_usd(position.size), next_size))

    next_collateral = _usd(plan.next_collateral) if plan.next_collateral is not None else None
    table.add_row("Collateral", _transition(_usd(position.collateral), next_collateral))

    if not close_input.keep_leverage:
        if plan.is_full_close:
            table.add_row("Leverage", "-")
        else:
            next_leverage = _leverage(plan.next_leverage) if plan.next_leverage else None
            table.add_row("Leverage", _transition(_leverage(plan.leverage), next_leverage))

    if plan.reference_price:
        sign = "+" if plan.has_profit else "-"
        color = "green" if plan.has_profit else "red"
        pnl = (
            f"[{color}]{sign}{_usd(plan.pending_delta)} "
            f"({sign}{format_amount(plan.pending_delta_percentage, 2, 2)}%)[/{color}]"
        )
    else:
        pnl = "-"
    table.add_row("PnL", pnl)

    table.add_row("Borrow Fee", _usd(plan.funding_fee))
    table.add_row("Closing Fee", _usd(plan.position_fee) if plan.position_fee else "-")
    received = format_amount(plan.converted_receive_amount, collateral_token.decimals, 4, True)
    table.add_row("Receive", f"{received} {collateral_token.symbol} ({_usd(plan.receive_amount)})")
    if is_trigger:
        table.add_row("Execution Fees", f"{format_amount(plan.execution_fee, 18, 4)} ETH")

    console.print(table)
    if close_input.keep_leverage:
        console.print(f"[dim]Keeping leverage at {_leverage(plan.leverage)}[/dim]")


def _render_warnings(data: dict, at: Optional[float]) -> None:
    from perpclose.engine import describe_existing_order, min_profit_warning

    warning = min_profit_warning(
        data["position"], data["plan"], data["close_input"], data["settings"], now=at
    )
    if warning:
        console.print(Panel(warning, title="[bold yellow]Warning[/bold yellow]", border_style="yellow"))

    existing = data["existing_order"]
    if existing is not None:
        console.print(Panel(
            describe_existing_order(existing, data["position"].index_token),
            title="[bold yellow]Existing Order[/bold yellow]",
            border_style="yellow",
        ))


_SNAPSHOT_ARGUMENTS = [
    click.argument("position_file", type=click.Path(exists=True, dir_okay=False, path_type=Path)),
    click.option("-a", "--amount", default=None, help="Close size in USD."),
    click.option("--max", "close_max", is_flag=True, default=False, help="Close the full position."),
    click.option(
        "-t", "--trigger-price",
        default=None,
        help="Create a trigger order at this price instead of closing at market.",
    ),
    click.option(
        "--keep-leverage/--no-keep-leverage",
        default=None,
        help="Release collateral proportionally. Defaults to the config setting.",
    ),
    click.option(
        "--accept-forfeit",
        is_flag=True,
        default=False,
        help="Acknowledge forfeiting pending profit under the minimum-profit rule.",
    ),
    click.option(
        "-o", "--orders",
        "orders_file",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        default=None,
        help="JSON list of the trader's existing orders.",
    ),
    click.option(
        "-c", "--config",
        "config_file",
        type=click.Path(dir_okay=False, path_type=Path),
        default=None,
        help="Config file (default ~/.config/perpclose/config.toml).",
    ),
    click.option("--at", type=float, default=None, hidden=True, help="Evaluate at this unix time."),
]


def snapshot_options(func):
    for decorator in reversed(_SNAPSHOT_ARGUMENTS):
        func = decorator(func)
    return func


def _prepare_or_fail(**kwargs) -> dict:
    from pydantic import ValidationError

    from perpclose.config import ConfigError
    from perpclose.engine import ArithmeticOverflow

    try:
        return _prepare(**kwargs)
    except ConfigError as e:
        _fail("Configuration error", str(e))
    except ValidationError as e:
        _fail("Invalid snapshot", str(e))
    except ArithmeticOverflow as e:
        _fail("Snapshot values out of range", str(e))


@click.command()
@snapshot_options
def quote(
    position_file: Path,
    amount: Optional[str],
    close_max: bool,
    trigger_price: Optional[str],
    keep_leverage: Optional[bool],
    accept_forfeit: bool,
    orders_file: Optional[Path],
    config_file: Optional[Path],
    at: Optional[float],
) -> None:
    """Preview closing (part of) a position.

    POSITION_FILE is a JSON position snapshot with fixed-point integers
    (USD values in 30 decimals).

    \b
    Examples:
      perpclose quote eth-long.json --amount 500
      perpclose quote eth-long.json --max
      perpclose quote eth-long.json -a 500 -t 2100 --no-keep-leverage
    """
    from perpclose.engine import primary_action_text

    data = _prepare_or_fail(
        position_file=position_file,
        orders_file=orders_file,
        config_file=config_file,
        amount=amount,
        close_max=close_max,
        trigger_price=trigger_price,
        keep_leverage=keep_leverage,
        accept_forfeit=accept_forfeit,
        at=at,
    )

    _render_plan(data)
    _render_warnings(data, at)

    text = primary_action_text(data["close_input"], data["plan"], data["rejection"], data["settings"])
    if data["rejection"] is None:
        console.print(f"\n[bold green]✓ {text}[/bold green]")
    else:
        console.print(f"\n[bold red]✗ {text}[/bold red]")


@click.command()
@snapshot_options
@click.option("--account", required=True, help="Account receiving the payout.")
def submit(
    position_file: Path,
    amount: Optional[str],
    close_max: bool,
    trigger_price: Optional[str],
    keep_leverage: Optional[bool],
    accept_forfeit: bool,
    orders_file: Optional[Path],
    config_file: Optional[Path],
    at: Optional[float],
    account: str,
) -> None:
    """Validate a close and hand it to the paper submitter.

    Prints the request that would be broadcast and the submission result
    as JSON.

    \b
    Examples:
      perpclose submit eth-long.json --max --account 0xabc
      perpclose submit eth-long.json -a 500 -t 1800 --account 0xabc
    """
    import json

    from perpclose.engine import CloseNotAllowed, build_decrease_order, build_decrease_position
    from perpclose.engine.calculator import effective_order_type
    from perpclose.models import OrderType
    from perpclose.submitters import PaperSubmitter

    data = _prepare_or_fail(
        position_file=position_file,
        orders_file=orders_file,
        config_file=config_file,
        amount=amount,
        close_max=close_max,
        trigger_price=trigger_price,
        keep_leverage=keep_leverage,
        accept_forfeit=accept_forfeit,
        at=at,
    )
    position = data["position"]
    plan = data["plan"]
    close_input = data["close_input"]
    settings = data["settings"]
    submitter = PaperSubmitter()

    try:
        if effective_order_type(close_input, settings) == OrderType.TRIGGER:
            request = build_decrease_order(position, plan, close_input, settings, data["rejection"])
            result = submitter.create_decrease_order(request)
        else:
            request = build_decrease_position(position, plan, settings, account, data["rejection"])
            result = submitter.decrease_position(request)
    except CloseNotAllowed as e:
        _fail("Close not allowed", str(e))

    console.print_json(json.dumps({
        "request": request.model_dump(mode="json"),
        "result": result.model_dump(mode="json"),
    }))
    if result.status != "SUBMITTED":
        raise SystemExit(1)
