"""
Valuation CLI Display

Rich table formatting for terminal output.
"""
from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from valuation_engine.models import (
    SensitivityGrid,
    TornadoResult,
    ValuationInputs,
    ValuationResult,
)


console = Console()

UNIT_MULTIPLIERS = {"k": 1e3, "M": 1e6, "B": 1e9}


def format_amount(value: float, unit: str = "M", currency: str | None = None) -> str:
    """Format a money amount in display units (k, M or B)."""
    if unit not in UNIT_MULTIPLIERS:
        raise ValueError(f"Unknown display unit: {unit}")
    text = f"{value / UNIT_MULTIPLIERS[unit]:,.2f}{unit}"
    return f"{text} {currency}" if currency else text


def display_header(title: str) -> None:
    """Display a section header."""
    console.print()
    console.print(Panel(Text(title, style="bold white"), style="blue"))


def display_inputs_summary(inputs: ValuationInputs, result: ValuationResult, unit: str = "M") -> None:
    """Display inputs/assumptions summary."""
    display_header("📊 Inputs Summary")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Parameter", style="dim")
    table.add_column("Value", justify="right")

    table.add_row("Base Revenue", format_amount(inputs.revenue0, unit, inputs.currency))
    table.add_row("Horizon", f"{inputs.horizon} years")
    table.add_row("Working Capital Policy", inputs.wc_policy.value)
    table.add_row("Tax Rate", f"{inputs.tax_rate_norm / 100:.2%}")
    table.add_row("Terminal Value Method", inputs.terminal_method.value)

    if result.terminal_growth_used is not None:
        table.add_row("Terminal Growth Rate", f"{result.terminal_growth_used:.2%}")
    if inputs.exit_multiple_ebitda is not None:
        table.add_row("Exit Multiple (EBITDA)", f"{inputs.exit_multiple_ebitda:.2f}x")

    table.add_row("Shares Outstanding", f"{inputs.shares_out:,.0f}")
    console.print(table)


def display_cost_of_capital(result: ValuationResult) -> None:
    """Display discount rate and its CAPM decomposition."""
    display_header("📊 Cost of Capital")

    detail = result.cost_of_capital
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim")
    table.add_column("Value", justify="right")

    if detail.used_direct_wacc:
        table.add_row("Source", "direct")
    else:
        components = detail.premium_components
        table.add_row("Source", "CAPM")
        table.add_row("Risk-Free Rate", f"{components.risk_free:.2%}")
        table.add_row("Market Premium", f"{components.market:.2%}")
        if components.country is not None:
            table.add_row("Country Risk Premium", f"{components.country:.2%}")
        if components.small_cap is not None:
            table.add_row("Small-Cap Premium", f"{components.small_cap:.2%}")
        table.add_row("Beta (unlevered → levered)", f"{detail.beta_unlevered:.2f} → {detail.beta_levered:.2f}")
        table.add_row("Leverage D/(D+E)", f"{detail.leverage:.2%}")
        table.add_row("Cost of Equity", f"{detail.cost_of_equity:.2%}")
        table.add_row("Cost of Debt (after tax)", f"{detail.cost_of_debt_after_tax:.2%}")

    table.add_row("[bold]Discount Rate[/bold]", f"[bold yellow]{detail.discount_rate:.2%}[/bold yellow]")
    console.print(table)


def display_schedule(result: ValuationResult, unit: str = "M") -> None:
    """Display forecast and discounting schedule."""
    display_header("📈 Forecast Schedule")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Year", justify="center")
    table.add_column("Revenue", justify="right")
    table.add_column("EBIT", justify="right")
    table.add_column("+ D&A", justify="right")
    table.add_column("NOPAT", justify="right")
    table.add_column("- Capex", justify="right")
    table.add_column("- ΔNWC", justify="right")
    table.add_column("= FCF", justify="right", style="bold green")
    table.add_column("DF", justify="right")
    table.add_column("PV(FCF)", justify="right", style="green")

    for r in result.rows:
        table.add_row(
            str(r.year),
            format_amount(r.revenue, unit),
            format_amount(r.ebit, unit),
            format_amount(r.da, unit),
            format_amount(r.nopat, unit),
            format_amount(r.capex, unit),
            format_amount(r.delta_nwc, unit),
            format_amount(r.fcf, unit),
            f"{r.discount_factor:.4f}",
            format_amount(r.pv_fcf, unit),
        )

    table.add_row(
        "[bold]Total[/bold]", "", "", "", "", "", "", "", "",
        f"[bold]{format_amount(result.pv_explicit, unit)}[/bold]",
    )
    console.print(table)


def display_terminal_value(result: ValuationResult, unit: str = "M") -> None:
    """Display terminal value and EV composition."""
    display_header("🎯 Terminal Value")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim")
    table.add_column("Value", justify="right")

    table.add_row("Terminal Value", format_amount(result.terminal_value, unit))
    table.add_row("PV(Terminal Value)", format_amount(result.pv_terminal_value, unit))
    table.add_row("PV(Explicit Period)", format_amount(result.pv_explicit, unit))
    table.add_row("", "")
    table.add_row("[bold]Enterprise Value[/bold]", f"[bold]{format_amount(result.enterprise_value, unit)}[/bold]")
    table.add_row("TV share of EV", f"{result.terminal_value_share:.1%}")
    table.add_row("Explicit share of EV", f"{result.explicit_share:.1%}")
    console.print(table)


def display_bridge(result: ValuationResult, unit: str = "M") -> None:
    """Display the EV -> Equity bridge."""
    display_header("🌉 EV → Equity Bridge")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim")
    table.add_column("Value", justify="right")

    for item in result.bridge:
        label = item.label if item.active else f"[dim]{item.label}[/dim]"
        table.add_row(label, format_amount(item.value, unit))

    table.add_row("", "")
    table.add_row(
        "[bold green]Equity Value[/bold green]",
        f"[bold green]{format_amount(result.equity_value, unit)}[/bold green]",
    )
    table.add_row("[bold green]Price per Share[/bold green]", f"[bold green]{result.price:,.2f}[/bold green]")
    console.print(table)


def display_bands(result: ValuationResult) -> None:
    """Display football-field bands."""
    if not result.bands:
        return
    display_header("🏈 Football Field")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Method", style="dim")
    table.add_column("Low", justify="right")
    table.add_column("High", justify="right")

    for band in result.bands:
        table.add_row(band.method, f"{band.low:,.2f}", f"{band.high:,.2f}")
    console.print(table)


def display_notes(result: ValuationResult) -> None:
    if not result.notes:
        return
    console.print()
    for note in result.notes:
        console.print(f"  [yellow]•[/yellow] {note.message}")


def display_grid(grid: SensitivityGrid, base_price: float | None = None) -> None:
    """Display the price grid (rows: discount rate, columns: terminal growth)."""
    display_header("🧮 Price Sensitivity: Discount Rate × Terminal Growth")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Rate \\ g", justify="center", style="dim")
    for g in grid.growth_values:
        table.add_column(f"{g:.2f}%", justify="right")

    for rate, row in zip(grid.rate_values, grid.grid):
        cells = []
        for price in row:
            if base_price is not None and abs(price - base_price) < 1e-9:
                cells.append(f"[bold]{price:,.2f}[/bold]")
            else:
                cells.append(f"{price:,.2f}")
        table.add_row(f"{rate:.2f}%", *cells)
    console.print(table)


def display_tornado(result: TornadoResult) -> None:
    """Display tornado rows, widest spread first."""
    display_header("🌪 Tornado (price per share)")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Input", style="dim")
    table.add_column("Low", justify="right")
    table.add_column("Base", justify="right")
    table.add_column("High", justify="right")
    table.add_column("Spread", justify="right", style="bold")

    for row in sorted(result.rows, key=lambda r: r.spread, reverse=True):
        table.add_row(
            row.field,
            f"{row.low:,.2f}",
            f"{row.base:,.2f}",
            f"{row.high:,.2f}",
            f"{row.spread:,.2f}",
        )
    console.print(table)


def display_all(inputs: ValuationInputs, result: ValuationResult, unit: str = "M") -> None:
    """Display all valuation outputs."""
    display_inputs_summary(inputs, result, unit)
    display_cost_of_capital(result)
    display_schedule(result, unit)
    display_terminal_value(result, unit)
    display_bridge(result, unit)
    display_bands(result)
    display_notes(result)

    console.print()
    console.print("[bold green]✓ Valuation Complete[/bold green]")
