"""
Valuation Visualizations

Plotly charts for DCF analysis.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import plotly.graph_objects as go
from plotly.subplots import make_subplots

from valuation_engine.models import SensitivityGrid, TornadoResult, ValuationResult


def create_waterfall_chart(result: ValuationResult) -> go.Figure:
    """
    Create EV -> Equity waterfall chart.

    Shows: PV(Flows) + PV(TV) → EV → bridge adjustments → Equity
    """
    labels = ["PV(Explicit Period)", "PV(Terminal Value)", "Enterprise Value"]
    values = [result.pv_explicit, result.pv_terminal_value, 0]
    measure = ["relative", "relative", "total"]

    # Bridge items after "EV" already carry their sign
    for item in result.bridge[1:]:
        if not item.active:
            continue
        labels.append(item.label)
        values.append(item.value)
        measure.append("relative")

    labels.append("Equity Value")
    values.append(0)
    measure.append("total")

    fig = go.Figure(go.Waterfall(
        name="Valuation Bridge",
        orientation="v",
        measure=measure,
        x=labels,
        textposition="outside",
        text=[f"{v:,.0f}" if v != 0 else "" for v in values],
        y=values,
        connector={"line": {"color": "rgb(63, 63, 63)"}},
        increasing={"marker": {"color": "#2E86AB"}},
        decreasing={"marker": {"color": "#E94F37"}},
        totals={"marker": {"color": "#44AF69"}},
    ))

    fig.update_layout(
        title="EV → Equity Waterfall",
        showlegend=False,
        yaxis_title="Value",
        template="plotly_white",
        height=500,
    )

    return fig


def create_tv_share_donut(result: ValuationResult) -> go.Figure:
    """
    Create donut chart showing the explicit vs terminal share of EV.
    """
    labels = ["PV(Explicit Period)", "PV(Terminal Value)"]
    values = [result.pv_explicit, result.pv_terminal_value]

    fig = go.Figure(data=[go.Pie(
        labels=labels,
        values=values,
        hole=0.4,
        marker_colors=["#2E86AB", "#44AF69"],
        textinfo="percent+label",
        textposition="outside",
    )])

    fig.update_layout(
        title="Enterprise Value Composition",
        template="plotly_white",
        height=400,
        annotations=[dict(
            text=f"EV<br>{result.enterprise_value:,.0f}",
            x=0.5, y=0.5,
            font_size=14,
            showarrow=False,
        )],
    )

    return fig


def create_revenue_margin_chart(result: ValuationResult) -> go.Figure:
    """
    Create revenue bars with EBIT margin line on a secondary axis.
    """
    years = [r.year for r in result.rows]
    revenue = [r.revenue for r in result.rows]
    margin = [r.ebit / r.revenue * 100 if r.revenue else 0.0 for r in result.rows]

    fig = make_subplots(specs=[[{"secondary_y": True}]])

    fig.add_trace(go.Bar(
        name="Revenue",
        x=years,
        y=revenue,
        marker_color="#2E86AB",
    ), secondary_y=False)

    fig.add_trace(go.Scatter(
        name="EBIT Margin (%)",
        x=years,
        y=margin,
        mode="lines+markers",
        line=dict(color="#E94F37", width=2),
    ), secondary_y=True)

    fig.update_layout(
        title="Revenue and EBIT Margin",
        xaxis_title="Year",
        template="plotly_white",
        height=400,
        legend=dict(
            orientation="h",
            yanchor="bottom",
            y=1.02,
            xanchor="right",
            x=1
        ),
    )
    fig.update_yaxes(title_text="Revenue", secondary_y=False)
    fig.update_yaxes(title_text="EBIT Margin (%)", secondary_y=True)

    return fig


def create_football_field_chart(result: ValuationResult) -> go.Figure:
    """
    Create horizontal range bars per valuation method, with the DCF price marked.
    """
    methods = [b.method for b in result.bands]

    fig = go.Figure()

    fig.add_trace(go.Bar(
        name="Range",
        y=methods,
        x=[b.high - b.low for b in result.bands],
        base=[b.low for b in result.bands],
        orientation="h",
        marker_color="#2E86AB",
        text=[f"{b.low:,.2f} – {b.high:,.2f}" for b in result.bands],
        textposition="outside",
    ))

    fig.add_vline(
        x=result.price,
        line_dash="dash",
        line_color="#E94F37",
        annotation_text=f"DCF {result.price:,.2f}",
    )

    fig.update_layout(
        title="Football Field (price per share)",
        xaxis_title="Price per Share",
        showlegend=False,
        template="plotly_white",
        height=350,
    )

    return fig


def create_tornado_chart(tornado: TornadoResult) -> go.Figure:
    """
    Create tornado chart, widest spread on top.
    """
    rows = sorted(tornado.rows, key=lambda r: r.spread)
    fields = [r.field for r in rows]

    fig = go.Figure()

    fig.add_trace(go.Bar(
        name="Low",
        y=fields,
        x=[r.low - r.base for r in rows],
        base=[r.base for r in rows],
        orientation="h",
        marker_color="#E94F37",
        hovertemplate="%{y}: %{customdata:,.2f}<extra>Low</extra>",
        customdata=[r.low for r in rows],
    ))

    fig.add_trace(go.Bar(
        name="High",
        y=fields,
        x=[r.high - r.base for r in rows],
        base=[r.base for r in rows],
        orientation="h",
        marker_color="#44AF69",
        hovertemplate="%{y}: %{customdata:,.2f}<extra>High</extra>",
        customdata=[r.high for r in rows],
    ))

    fig.update_layout(
        title="Tornado: Price Impact per Input",
        xaxis_title="Price per Share",
        barmode="overlay",
        template="plotly_white",
        height=400,
    )

    return fig


def create_sensitivity_heatmap(grid: SensitivityGrid) -> go.Figure:
    """
    Create sensitivity heatmap for discount rate vs terminal growth.

    Shows how the price per share changes with both assumptions.
    """
    fig = go.Figure(data=go.Heatmap(
        z=grid.grid,
        x=[f"{g:.2f}%" for g in grid.growth_values],
        y=[f"{r:.2f}%" for r in grid.rate_values],
        colorscale="RdYlGn",
        text=[[f"{v:,.2f}" for v in row] for row in grid.grid],
        texttemplate="%{text}",
        textfont={"size": 10},
        hovertemplate="Rate: %{y}<br>Growth: %{x}<br>Price: %{text}<extra></extra>",
    ))

    fig.update_layout(
        title="Price Sensitivity: Discount Rate vs Terminal Growth",
        xaxis_title="Terminal Growth (g)",
        yaxis_title="Discount Rate",
        template="plotly_white",
        height=400,
    )

    return fig


def _collect_charts(
    result: ValuationResult,
    grid: Optional[SensitivityGrid] = None,
    tornado: Optional[TornadoResult] = None,
) -> dict[str, go.Figure]:
    charts = {
        "waterfall": create_waterfall_chart(result),
        "tv_share": create_tv_share_donut(result),
        "revenue_margin": create_revenue_margin_chart(result),
    }
    if result.bands:
        charts["football_field"] = create_football_field_chart(result)
    if tornado is not None and tornado.rows:
        charts["tornado"] = create_tornado_chart(tornado)
    if grid is not None:
        charts["sensitivity_heatmap"] = create_sensitivity_heatmap(grid)
    return charts


def save_charts(
    result: ValuationResult,
    output_dir: str | Path,
    grid: Optional[SensitivityGrid] = None,
    tornado: Optional[TornadoResult] = None,
    format: str = "html",
) -> list[Path]:
    """
    Generate and save all charts.

    Args:
        result: Valuation result
        output_dir: Directory to save charts
        grid: Optional sensitivity grid (adds the heatmap)
        tornado: Optional tornado result (adds the tornado chart)
        format: Output format ("html", "png", "svg")

    Returns:
        List of created file paths
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    created_files = []
    for name, fig in _collect_charts(result, grid, tornado).items():
        file_path = output_dir / f"{name}.{format}"
        if format == "html":
            fig.write_html(str(file_path))
        else:
            fig.write_image(str(file_path))
        created_files.append(file_path)

    return created_files


def show_charts(
    result: ValuationResult,
    grid: Optional[SensitivityGrid] = None,
    tornado: Optional[TornadoResult] = None,
) -> None:
    """
    Display all charts (opens in browser).
    """
    for chart in _collect_charts(result, grid, tornado).values():
        chart.show()
