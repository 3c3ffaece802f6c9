"""
Valuation I/O Writers

Export to XLSX and CSV formats.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils.dataframe import dataframe_to_rows

from valuation_engine.models import (
    SensitivityGrid,
    TornadoResult,
    ValuationInputs,
    ValuationResult,
)


def _create_inputs_summary(inputs: ValuationInputs, result: ValuationResult) -> pd.DataFrame:
    """Create inputs/assumptions summary table."""
    data = [
        ["Currency", inputs.currency or ""],
        ["Base Revenue", inputs.revenue0],
        ["Horizon (years)", inputs.horizon],
        ["Working Capital Policy", inputs.wc_policy.value],
        ["Tax Rate", inputs.tax_rate_norm / 100],
        ["Discount Rate", result.cost_of_capital.discount_rate],
        ["Terminal Value Method", inputs.terminal_method.value],
    ]

    if result.terminal_growth_used is not None:
        data.append(["Terminal Growth Rate", result.terminal_growth_used])
    if inputs.exit_multiple_ebitda is not None:
        data.append(["Exit Multiple (EBITDA)", inputs.exit_multiple_ebitda])

    data.append(["Shares Outstanding", inputs.shares_out])
    return pd.DataFrame(data, columns=["Parameter", "Value"])


def _create_schedule_table(result: ValuationResult) -> pd.DataFrame:
    """Create forecast and discounting schedule table."""
    rows = []
    for r in result.rows:
        rows.append({
            "Year": r.year,
            "Revenue": r.revenue,
            "EBIT": r.ebit,
            "D&A": r.da,
            "EBITDA": r.ebitda,
            "NOPAT": r.nopat,
            "Capex": r.capex,
            "ΔNWC": r.delta_nwc,
            "FCF": r.fcf,
            "Discount Factor": r.discount_factor,
            "PV(FCF)": r.pv_fcf,
        })
    return pd.DataFrame(rows)


def _create_cost_of_capital_table(result: ValuationResult) -> pd.DataFrame:
    """Create cost of capital table."""
    detail = result.cost_of_capital
    data = [
        ["Source", "direct" if detail.used_direct_wacc else "CAPM"],
        ["Discount Rate", detail.discount_rate],
    ]
    if not detail.used_direct_wacc:
        components = detail.premium_components
        data.extend([
            ["Risk-Free Rate", components.risk_free],
            ["Market Premium", components.market],
            ["Country Risk Premium", components.country or 0.0],
            ["Small-Cap Premium", components.small_cap or 0.0],
            ["Beta (unlevered)", detail.beta_unlevered],
            ["Beta (levered)", detail.beta_levered],
            ["Leverage D/(D+E)", detail.leverage],
            ["D/E", detail.debt_to_equity],
            ["Cost of Equity", detail.cost_of_equity],
            ["Cost of Debt (pre-tax)", detail.cost_of_debt_pre_tax],
            ["Cost of Debt (after tax)", detail.cost_of_debt_after_tax],
        ])
    return pd.DataFrame(data, columns=["Item", "Value"])


def _create_valuation_table(result: ValuationResult) -> pd.DataFrame:
    """Create valuation summary table."""
    data = [
        ["PV(Explicit Period)", result.pv_explicit],
        ["Terminal Value", result.terminal_value],
        ["PV(Terminal Value)", result.pv_terminal_value],
        ["Enterprise Value", result.enterprise_value],
        ["Equity Value", result.equity_value],
        ["Price per Share", result.price],
        ["Terminal Value Share of EV", result.terminal_value_share],
        ["Explicit Period Share of EV", result.explicit_share],
    ]
    return pd.DataFrame(data, columns=["Item", "Value"])


def _create_bridge_table(result: ValuationResult) -> pd.DataFrame:
    """Create EV -> Equity bridge table."""
    rows = [{"Item": b.label, "Value": b.value, "Active": b.active} for b in result.bridge]
    rows.append({"Item": "= Equity", "Value": result.equity_value, "Active": True})
    return pd.DataFrame(rows)


def _create_bands_table(result: ValuationResult) -> pd.DataFrame:
    """Create football-field bands table."""
    rows = [{"Method": b.method, "Low": b.low, "High": b.high} for b in result.bands]
    return pd.DataFrame(rows, columns=["Method", "Low", "High"])


def _create_notes_table(result: ValuationResult) -> pd.DataFrame:
    rows = [{"Kind": n.kind.value, "Note": n.message} for n in result.notes]
    return pd.DataFrame(rows, columns=["Kind", "Note"])


def format_tables(inputs: ValuationInputs, result: ValuationResult) -> dict[str, pd.DataFrame]:
    """
    Convert a valuation result to display-ready DataFrames.

    Returns:
        Dict mapping table name to DataFrame
    """
    return {
        "1_Inputs_Summary": _create_inputs_summary(inputs, result),
        "2_Forecast_Schedule": _create_schedule_table(result),
        "3_Cost_of_Capital": _create_cost_of_capital_table(result),
        "4_Valuation": _create_valuation_table(result),
        "5_EV_Equity_Bridge": _create_bridge_table(result),
        "6_Football_Field": _create_bands_table(result),
        "7_Notes": _create_notes_table(result),
    }


def grid_table(grid: SensitivityGrid) -> pd.DataFrame:
    """Sensitivity grid as a DataFrame (rows: rates, columns: growth)."""
    return pd.DataFrame(
        grid.grid,
        index=pd.Index(grid.rate_values, name="Rate (%)"),
        columns=[f"g={g}" for g in grid.growth_values],
    )


def tornado_table(result: TornadoResult) -> pd.DataFrame:
    """Tornado rows as a DataFrame, in input order."""
    rows = [
        {"Field": r.field, "Low": r.low, "High": r.high, "Base": r.base, "Spread": r.spread}
        for r in result.rows
    ]
    return pd.DataFrame(rows, columns=["Field", "Low", "High", "Base", "Spread"])


def _style_xlsx_sheet(ws) -> None:
    """Apply styling to Excel worksheet."""
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill(start_color="2E75B6", end_color="2E75B6", fill_type="solid")
    thin_border = Border(
        left=Side(style="thin"),
        right=Side(style="thin"),
        top=Side(style="thin"),
        bottom=Side(style="thin"),
    )

    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
        cell.border = thin_border
        cell.alignment = Alignment(horizontal="center")

    for row in ws.iter_rows(min_row=2, max_row=ws.max_row, max_col=ws.max_column):
        for cell in row:
            cell.border = thin_border
            if isinstance(cell.value, float):
                cell.number_format = "#,##0.00"
            elif isinstance(cell.value, int) and not isinstance(cell.value, bool):
                cell.number_format = "#,##0"

    for column in ws.columns:
        max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
        ws.column_dimensions[column[0].column_letter].width = min(max_length + 2, 40)


def export_xlsx(
    inputs: ValuationInputs,
    result: ValuationResult,
    path: str | Path,
    grid: Optional[SensitivityGrid] = None,
    tornado: Optional[TornadoResult] = None,
) -> None:
    """
    Export a valuation to an Excel file, one styled sheet per table.

    Args:
        inputs: Valuation inputs
        result: Valuation result to export
        path: Output file path
        grid: Optional sensitivity grid sheet
        tornado: Optional tornado sheet
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    tables = format_tables(inputs, result)
    if grid is not None:
        tables["8_Sensitivity_Grid"] = grid_table(grid).reset_index()
    if tornado is not None:
        tables["9_Tornado"] = tornado_table(tornado)

    wb = Workbook()
    wb.remove(wb.active)
    for sheet_name, df in tables.items():
        ws = wb.create_sheet(title=sheet_name[:31])
        for r in dataframe_to_rows(df, index=False, header=True):
            ws.append(r)
        _style_xlsx_sheet(ws)
    wb.save(path)


def export_csv(inputs: ValuationInputs, result: ValuationResult, output_dir: str | Path) -> list[Path]:
    """
    Export a valuation to CSV files (one per table).

    Returns:
        List of created file paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    created_files = []
    for table_name, df in format_tables(inputs, result).items():
        file_path = output_dir / f"{table_name}.csv"
        df.to_csv(file_path, index=False)
        created_files.append(file_path)

    return created_files


def export_grid_csv(grid: SensitivityGrid, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    grid_table(grid).to_csv(path)
    return path


def export_tornado_csv(result: TornadoResult, path: str | Path) -> Path:
    """Write tornado rows as 'field;low;high' lines."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tornado_table(result)[["Field", "Low", "High"]].to_csv(path, sep=";", index=False)
    return path
