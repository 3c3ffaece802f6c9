"""
Unit Tests for Input Readers and Request Handlers
"""
import json

import pytest
import yaml

from valuation_io.readers import (
    RequestError,
    parse_input_dict,
    read_input_file,
    read_request_file,
)
from valuation_io.requests import (
    handle_sensitivity,
    handle_tornado,
    handle_valuate,
    parse_grid_request,
    parse_tornado_request,
)
from valuation_engine.models import DeltaMode


@pytest.fixture
def inputs_payload() -> dict:
    return {
        "revenue0": 100_000_000,
        "growth": 5,
        "ebitMargin": 15,
        "taxRateNorm": 25,
        "capexPct": 4,
        "nwcPct": 5,
        "years": 5,
        "gTerm": 2,
        "wacc": 9,
        "netDebt": 50_000_000,
        "sharesOut": 10_000_000,
    }


# ============================================================================
# Input parsing
# ============================================================================

class TestParseInputs:
    def test_legacy_tax_rate(self, inputs_payload):
        del inputs_payload["taxRateNorm"]
        inputs_payload["taxRate"] = 30

        assert parse_input_dict(inputs_payload).tax_rate_norm == 30

    def test_tax_rate_norm_wins_over_legacy(self, inputs_payload):
        inputs_payload["taxRate"] = 30
        assert parse_input_dict(inputs_payload).tax_rate_norm == 25

    def test_validation_error_wrapped(self, inputs_payload):
        inputs_payload["growth"] = "fast"
        with pytest.raises(RequestError, match="Invalid inputs"):
            parse_input_dict(inputs_payload)

    def test_non_mapping_rejected(self):
        with pytest.raises(RequestError):
            parse_input_dict([1, 2, 3])


# ============================================================================
# File readers
# ============================================================================

class TestFileReaders:
    def test_yaml_bare_inputs(self, tmp_path, inputs_payload):
        path = tmp_path / "case.yaml"
        path.write_text(yaml.safe_dump(inputs_payload))

        inputs = read_input_file(path)
        assert inputs.wacc == 9
        assert inputs.ebit_margin == 15

    def test_json_request_with_inputs_section(self, tmp_path, inputs_payload):
        path = tmp_path / "case.json"
        path.write_text(json.dumps({"inputs": inputs_payload, "rateValues": [8, 9]}))

        assert read_input_file(path).shares_out == 10_000_000
        assert read_request_file(path)["rateValues"] == [8, 9]

    def test_unsupported_suffix(self, tmp_path):
        path = tmp_path / "case.txt"
        path.write_text("revenue0: 1")
        with pytest.raises(ValueError, match="Unsupported"):
            read_request_file(path)

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "case.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(RequestError):
            read_request_file(path)


# ============================================================================
# Request handlers
# ============================================================================

class TestRequests:
    def test_valuate_response_is_camel_case(self, inputs_payload):
        response = handle_valuate({"inputs": inputs_payload})

        assert response["price"] == pytest.approx(6.6136, rel=1e-3)
        assert "enterpriseValue" in response
        assert "pvTerminalValue" in response
        assert response["rows"][0]["deltaNwc"] == pytest.approx(250_000)
        assert response["costOfCapital"]["usedDirectWacc"] is True
        assert response["bands"][0]["method"] == "DCF (sensitivity)"

    def test_valuate_accepts_bare_inputs(self, inputs_payload):
        assert handle_valuate(inputs_payload)["price"] == pytest.approx(6.6136, rel=1e-3)

    def test_grid_aliases(self, inputs_payload):
        inputs, rates, growths = parse_grid_request({
            "inputs": inputs_payload, "waccVals": [8, 9], "gVals": [2],
        })
        assert rates == [8.0, 9.0]
        assert growths == [2.0]
        assert inputs.wacc == 9

    def test_grid_missing_axis(self, inputs_payload):
        with pytest.raises(RequestError, match="growthValues"):
            parse_grid_request({"inputs": inputs_payload, "rateValues": [8]})

    def test_grid_rejects_non_numbers(self, inputs_payload):
        with pytest.raises(RequestError):
            parse_grid_request({"inputs": inputs_payload, "rateValues": [8, "x"], "growthValues": [2]})

    def test_grid_missing_inputs(self):
        with pytest.raises(RequestError, match="inputs"):
            parse_grid_request({"rateValues": [8], "growthValues": [2]})

    def test_sensitivity_response(self, inputs_payload):
        response = handle_sensitivity({
            "inputs": inputs_payload, "rateValues": [8, 9, 10], "growthValues": [1, 2],
        })

        assert set(response) == {"grid", "rateValues", "growthValues"}
        assert len(response["grid"]) == 3
        assert response["grid"][1][1] == pytest.approx(6.6136, rel=1e-3)

    def test_tornado_deltas_alias(self, inputs_payload):
        _, specs = parse_tornado_request({
            "inputs": inputs_payload,
            "deltas": [{"field": "wacc", "low": -1, "high": 1, "mode": "percentage"}],
        })
        assert specs[0].mode == DeltaMode.PERCENTAGE

    def test_tornado_requires_list(self, inputs_payload):
        with pytest.raises(RequestError):
            parse_tornado_request({"inputs": inputs_payload, "perturbations": {"field": "wacc"}})

    def test_tornado_invalid_spec(self, inputs_payload):
        with pytest.raises(RequestError, match="Invalid perturbation"):
            parse_tornado_request({"inputs": inputs_payload, "perturbations": [{"field": "wacc"}]})

    def test_tornado_response(self, inputs_payload):
        response = handle_tornado({
            "inputs": inputs_payload,
            "perturbations": [
                {"field": "wacc", "low": -1, "high": 1},
                {"field": "unknown", "low": -1, "high": 1},
            ],
        })

        assert len(response["rows"]) == 1
        row = response["rows"][0]
        assert row["field"] == "wacc"
        assert row["low"] > row["base"] > row["high"]
