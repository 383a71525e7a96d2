# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Tests for core output module."""

import json
from unittest.mock import patch

import pytest
import yaml

from tssc_e2e.core.output import (
    _auto_detect_columns,
    _column_specs,
    _format_field_value,
    format_and_output,
    print_verdict,
)

PIPELINES = [
    {"id": 1, "status": "success", "ref": "main"},
    {"id": 2, "status": "failed", "web_url": None},
]


class TestOutputFormatting:
    """Test output formatting functionality."""

    def test_format_and_output_table(self):
        """Test table output formatting."""
        with patch("tssc_e2e.core.output.console.print") as mock_print:
            format_and_output(PIPELINES, "table", {"title": "Pipelines"})
            mock_print.assert_called_once()

    def test_format_and_output_empty_table(self):
        """Test that an empty result is reported."""
        with patch("tssc_e2e.core.output.console.print") as mock_print:
            format_and_output([], "table")
            assert "No data to display" in mock_print.call_args[0][0]

    def test_format_and_output_json(self, capsys):
        """Test compact JSON output."""
        format_and_output(PIPELINES, "json")

        out = capsys.readouterr().out
        assert json.loads(out) == PIPELINES
        assert "\n" not in out.strip()

    def test_format_and_output_json_pretty(self, capsys):
        """Test pretty JSON output formatting."""
        format_and_output(PIPELINES, "json-pretty")

        assert json.loads(capsys.readouterr().out) == PIPELINES

    def test_format_and_output_yaml(self):
        """Test YAML output formatting."""
        with patch("tssc_e2e.core.output.console.print") as mock_print:
            format_and_output(PIPELINES, "yaml")
            assert yaml.safe_load(mock_print.call_args[0][0]) == PIPELINES

    def test_format_and_output_invalid_format(self):
        """Test handling of invalid output format."""
        with pytest.raises(ValueError, match="Unsupported output format"):
            format_and_output(PIPELINES, "csv")


class TestHelpers:
    """Test output helpers."""

    def test_auto_detect_columns_keeps_first_seen_order(self):
        """Test column detection across heterogeneous rows."""
        assert _auto_detect_columns(PIPELINES) == ["id", "status", "ref", "web_url"]

    def test_column_specs(self):
        """Test plain and mapping column definitions."""
        specs = _column_specs(["web_url", {"name": "ID", "field": "id", "style": "cyan"}])
        assert specs == [("Web Url", "web_url", ""), ("ID", "id", "cyan")]

    @pytest.mark.parametrize(
        "value,expected",
        [(None, ""), ([], "None"), (["a", "b"], "a, b"), (True, "Yes"), (False, "No"), (42, "42")],
    )
    def test_format_field_value(self, value, expected):
        """Test value rendering."""
        assert _format_field_value(value) == expected

    @pytest.mark.parametrize("passed,marker", [(True, "PASS"), (False, "FAIL")])
    def test_print_verdict(self, passed, marker):
        """Test verdict lines."""
        with patch("tssc_e2e.core.output.console.print") as mock_print:
            print_verdict("GitLab pipeline 7", passed, "success")

        line = mock_print.call_args[0][0]
        assert marker in line
        assert line.endswith("GitLab pipeline 7 (success)")
