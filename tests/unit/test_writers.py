"""
Unit Tests for Table Formatting and Export
"""
import pandas as pd
import pytest
from openpyxl import load_workbook

from valuation_engine.engine import valuate
from valuation_engine.models import TornadoSpec, ValuationInputs
from valuation_engine.sensitivities import sensitivity_grid, tornado
from valuation_io.writers import (
    export_csv,
    export_grid_csv,
    export_tornado_csv,
    export_xlsx,
    format_tables,
    grid_table,
)


@pytest.fixture
def inputs() -> ValuationInputs:
    return ValuationInputs(
        currency="EUR",
        revenue0=100_000_000,
        growth=5,
        ebit_margin=15,
        tax_rate_norm=25,
        capex_pct=4,
        nwc_pct=5,
        years=5,
        g_term=2,
        wacc=9,
        net_debt=50_000_000,
        shares_out=10_000_000,
        pe_min=10,
        pe_max=14,
    )


@pytest.fixture
def result(inputs):
    return valuate(inputs)


class TestFormatTables:
    def test_table_names(self, inputs, result):
        tables = format_tables(inputs, result)
        assert list(tables) == [
            "1_Inputs_Summary",
            "2_Forecast_Schedule",
            "3_Cost_of_Capital",
            "4_Valuation",
            "5_EV_Equity_Bridge",
            "6_Football_Field",
            "7_Notes",
        ]

    def test_schedule_table(self, inputs, result):
        df = format_tables(inputs, result)["2_Forecast_Schedule"]

        assert len(df) == 5
        assert df["Year"].tolist() == [1, 2, 3, 4, 5]
        assert df["FCF"].iloc[0] == pytest.approx(7_362_500)

    def test_bridge_ends_with_equity(self, inputs, result):
        df = format_tables(inputs, result)["5_EV_Equity_Bridge"]

        assert df["Item"].iloc[0] == "EV"
        assert df["Item"].iloc[-1] == "= Equity"
        assert df["Value"].iloc[-1] == pytest.approx(result.equity_value)

    def test_bands_table(self, inputs, result):
        df = format_tables(inputs, result)["6_Football_Field"]
        assert df["Method"].tolist() == ["DCF (sensitivity)", "P/E"]

    def test_grid_table(self, inputs):
        df = grid_table(sensitivity_grid(inputs, [8, 9], [1, 2, 3]))

        assert df.shape == (2, 3)
        assert df.index.name == "Rate (%)"


class TestExport:
    def test_export_csv(self, inputs, result, tmp_path):
        files = export_csv(inputs, result, tmp_path / "csv")

        assert len(files) == 7
        assert all(f.exists() for f in files)
        schedule = pd.read_csv(tmp_path / "csv" / "2_Forecast_Schedule.csv")
        assert len(schedule) == 5

    def test_export_xlsx(self, inputs, result, tmp_path):
        path = tmp_path / "out" / "valuation.xlsx"
        grid = sensitivity_grid(inputs, [8, 9], [2])
        export_xlsx(inputs, result, path, grid=grid)

        wb = load_workbook(path)
        assert "2_Forecast_Schedule" in wb.sheetnames
        assert "8_Sensitivity_Grid" in wb.sheetnames
        assert "9_Tornado" not in wb.sheetnames
        ws = wb["4_Valuation"]
        assert ws["A1"].value == "Item"
        assert ws["A1"].font.bold

    def test_export_grid_csv(self, inputs, tmp_path):
        path = export_grid_csv(sensitivity_grid(inputs, [8, 9], [2]), tmp_path / "grid.csv")

        df = pd.read_csv(path, index_col=0)
        assert df.shape == (2, 1)

    def test_export_tornado_csv(self, inputs, tmp_path):
        result = tornado(inputs, [TornadoSpec(field="wacc", low=-1, high=1)])
        path = export_tornado_csv(result, tmp_path / "tornado.csv")

        lines = path.read_text().splitlines()
        assert lines[0] == "Field;Low;High"
        assert lines[1].startswith("wacc;")
