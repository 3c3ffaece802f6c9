"""
Valuation CLI Application

Typer-based command-line interface for the DCF valuation engine.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from valuation_engine.discount_rates import resolve_cost_of_capital
from valuation_engine.engine import valuate
from valuation_engine.sensitivities import SensitivityRunner
from valuation_io.readers import inputs_section, parse_input_dict, read_request_file
from valuation_io.requests import parse_tornado_specs
from valuation_io.writers import export_csv, export_grid_csv, export_tornado_csv, export_xlsx
from valuation_cli.display import (
    UNIT_MULTIPLIERS,
    display_all,
    display_grid,
    display_tornado,
)
from valuation_cli.charts import save_charts


app = typer.Typer(
    name="dcf",
    help="DCF valuation calculator",
    add_completion=False,
)

console = Console()

# Default grid axes around the base case: rate ±2 points, growth ±1 point
GRID_RATE_STEPS = [-2.0, -1.0, 0.0, 1.0, 2.0]
GRID_GROWTH_STEPS = [-1.0, -0.5, 0.0, 0.5, 1.0]


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable debug logging",
    ),
) -> None:
    """DCF valuation calculator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _resolve_input_file(input_file: Optional[Path]) -> Path:
    if input_file is None:
        raise typer.BadParameter("Missing input file.")
    if not input_file.exists():
        raise typer.BadParameter(f"Input file not found: {input_file}")
    if not input_file.is_file():
        raise typer.BadParameter(f"Input path is not a file: {input_file}")
    return input_file


def _check_unit(unit: str) -> str:
    if unit not in UNIT_MULTIPLIERS:
        raise typer.BadParameter(f"Unit must be one of: {', '.join(UNIT_MULTIPLIERS)}")
    return unit


def _parse_values(text: str) -> list[float]:
    """Parse a comma-separated list of numbers, e.g. '8,9,10'."""
    try:
        return [float(v) for v in text.split(",") if v.strip()]
    except ValueError as e:
        raise typer.BadParameter(f"Not a comma-separated list of numbers: {text}") from e


def _default_axes(runner: SensitivityRunner) -> tuple[list[float], list[float]]:
    """Five-step axes centred on the base rate and terminal growth."""
    detail = runner.base.cost_of_capital
    rate = runner.inputs.wacc if detail.used_direct_wacc else detail.discount_rate * 100
    growth = runner.inputs.g_term if runner.inputs.g_term is not None else 0.0
    return (
        [round(rate + step, 4) for step in GRID_RATE_STEPS],
        [round(growth + step, 4) for step in GRID_GROWTH_STEPS],
    )


@app.command()
def run(
    input_file: Optional[Path] = typer.Argument(
        None,
        help="Path to input file (YAML or JSON)",
    ),
    unit: str = typer.Option(
        "M",
        "--unit", "-u",
        help="Display unit for amounts: k, M or B",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Output Excel file path",
    ),
    csv_dir: Optional[Path] = typer.Option(
        None,
        "--csv-dir",
        help="Directory to export CSV files",
    ),
    charts_dir: Optional[Path] = typer.Option(
        None,
        "--charts-dir",
        help="Directory to save chart files",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet", "-q",
        help="Suppress table output",
    ),
) -> None:
    """
    Run a DCF valuation on an input file.

    Reads a YAML or JSON input file, values the company and displays the
    results as rich tables. Optionally exports to Excel/CSV and saves charts.
    """
    try:
        input_file = _resolve_input_file(input_file)
        unit = _check_unit(unit)

        console.print(f"[dim]Reading input file: {input_file}[/dim]")
        inputs = parse_input_dict(inputs_section(read_request_file(input_file)))

        console.print("[dim]Running valuation...[/dim]")
        result = valuate(inputs)

        if not quiet:
            display_all(inputs, result, unit)

        if output:
            console.print(f"\n[dim]Exporting to Excel: {output}[/dim]")
            export_xlsx(inputs, result, output)
            console.print(f"[green]✓ Exported to {output}[/green]")

        if csv_dir:
            console.print(f"\n[dim]Exporting CSVs to: {csv_dir}[/dim]")
            files = export_csv(inputs, result, csv_dir)
            console.print(f"[green]✓ Exported {len(files)} CSV files[/green]")

        if charts_dir:
            console.print(f"\n[dim]Saving charts to: {charts_dir}[/dim]")
            files = save_charts(result, charts_dir)
            console.print(f"[green]✓ Saved {len(files)} chart files[/green]")

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def grid(
    input_file: Optional[Path] = typer.Argument(
        None,
        help="Path to input file (YAML or JSON)",
    ),
    rates: Optional[str] = typer.Option(
        None,
        "--rates",
        help="Discount rates in percent, comma-separated (e.g. 8,9,10)",
    ),
    growths: Optional[str] = typer.Option(
        None,
        "--growths",
        help="Terminal growth rates in percent, comma-separated (e.g. 1.5,2,2.5)",
    ),
    csv_path: Optional[Path] = typer.Option(
        None,
        "--csv",
        help="Write the grid to a CSV file",
    ),
    charts_dir: Optional[Path] = typer.Option(
        None,
        "--charts-dir",
        help="Directory to save chart files",
    ),
) -> None:
    """
    Price per share over a discount rate x terminal growth grid.

    Axes come from the options, else from 'rateValues' / 'growthValues' in
    the input file, else five steps around the base case.
    """
    try:
        input_file = _resolve_input_file(input_file)
        request = read_request_file(input_file)
        inputs = parse_input_dict(inputs_section(request))
        runner = SensitivityRunner(inputs)

        default_rates, default_growths = _default_axes(runner)
        rate_values = _parse_values(rates) if rates else request.get("rateValues", default_rates)
        growth_values = _parse_values(growths) if growths else request.get("growthValues", default_growths)

        result = runner.grid(rate_values, growth_values)
        display_grid(result, runner.base.price)

        if csv_path:
            export_grid_csv(result, csv_path)
            console.print(f"[green]✓ Exported grid to {csv_path}[/green]")

        if charts_dir:
            files = save_charts(runner.base, charts_dir, grid=result)
            console.print(f"[green]✓ Saved {len(files)} chart files[/green]")

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def tornado(
    input_file: Optional[Path] = typer.Argument(
        None,
        help="Path to input file (YAML or JSON)",
    ),
    csv_path: Optional[Path] = typer.Option(
        None,
        "--csv",
        help="Write tornado rows to a CSV file (field;low;high)",
    ),
    charts_dir: Optional[Path] = typer.Option(
        None,
        "--charts-dir",
        help="Directory to save chart files",
    ),
) -> None:
    """
    One-at-a-time price impact of each perturbed input.

    Perturbations come from 'perturbations' in the input file, else the
    default set (wacc, gTerm, ebitMargin, growth, capexPct).
    """
    try:
        input_file = _resolve_input_file(input_file)
        request = read_request_file(input_file)
        inputs = parse_input_dict(inputs_section(request))

        specs = None
        if "perturbations" in request:
            specs = parse_tornado_specs(request["perturbations"])

        runner = SensitivityRunner(inputs)
        result = runner.tornado(specs)
        display_tornado(result)

        if csv_path:
            export_tornado_csv(result, csv_path)
            console.print(f"[green]✓ Exported tornado to {csv_path}[/green]")

        if charts_dir:
            files = save_charts(runner.base, charts_dir, tornado=result)
            console.print(f"[green]✓ Saved {len(files)} chart files[/green]")

    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def validate(
    input_file: Optional[Path] = typer.Argument(
        None,
        help="Path to input file (YAML or JSON)",
    ),
) -> None:
    """
    Validate an input file without running the full valuation.

    Checks that required fields are present and that the cost of capital
    resolves to a positive rate.
    """
    try:
        input_file = _resolve_input_file(input_file)
        console.print(f"[dim]Validating: {input_file}[/dim]")
        inputs = parse_input_dict(inputs_section(read_request_file(input_file)))
        detail = resolve_cost_of_capital(inputs)

        console.print("[green]✓ Input file is valid[/green]")

        console.print(f"\n  Horizon: {inputs.horizon} years")
        console.print(f"  Working capital policy: {inputs.wc_policy.value}")
        console.print(f"  Terminal value method: {inputs.terminal_method.value}")
        console.print(f"  Discount rate: {detail.discount_rate:.2%} ({'direct' if detail.used_direct_wacc else 'CAPM'})")

    except Exception as e:
        console.print(f"[red]Validation failed: {e}[/red]")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
