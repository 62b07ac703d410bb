#!/usr/bin/env python3
"""
Output Formatting Module for the Airdrop CLI

Renders build summaries and audit reports as tables, JSON or YAML.
"""

import json
from typing import Any, Dict, List

import yaml
from tabulate import tabulate


class OutputFormatter:
    """Output formatter for CLI results."""

    FORMATS = ('table', 'json', 'yaml')

    def __init__(self, format_type: str = 'table'):
        """
        Initialize output formatter.

        Args:
            format_type: Output format (table, json, yaml)
        """
        if format_type not in self.FORMATS:
            raise ValueError(f"Unsupported output format: {format_type}")
        self.format_type = format_type

    def format(self, data: Any) -> str:
        """Format data according to the configured format type."""
        if self.format_type == 'json':
            return self.format_json(data)
        elif self.format_type == 'yaml':
            return self.format_yaml(data)
        return self.format_table(data)

    def format_json(self, data: Any) -> str:
        """Format data as JSON."""
        return json.dumps(data, indent=2, default=str)

    def format_yaml(self, data: Any) -> str:
        """Format data as YAML."""
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False).rstrip('\n')

    def format_table(self, data: Any) -> str:
        """Format data as a table."""
        if isinstance(data, dict):
            return self._format_dict_table(data)
        elif isinstance(data, list):
            return self._format_list_table(data)
        return str(data)

    def _format_dict_table(self, data: Dict[str, Any]) -> str:
        """Format dictionary as a key-value table; nested mappings become sub-tables."""
        scalars = [[k, self._format_value(v)] for k, v in data.items() if not isinstance(v, (dict, list))]
        sections = [tabulate(scalars, tablefmt='plain')] if scalars else []

        for key, value in data.items():
            if isinstance(value, dict) and value and all(isinstance(v, dict) for v in value.values()):
                rows = [dict(name=name, **row) for name, row in value.items()]
                sections.append(f"{key}:\n{self._format_list_table(rows)}")
            elif isinstance(value, dict):
                sections.append(f"{key}:\n{self._format_dict_table(value)}")
            elif isinstance(value, list):
                sections.append(f"{key}:\n{self._format_list_table(value)}")

        return '\n\n'.join(sections)

    def _format_list_table(self, data: List[Any]) -> str:
        """Format list as a table."""
        if not data:
            return "(none)"

        if isinstance(data[0], dict):
            headers = []
            for item in data:
                headers.extend(k for k in item if k not in headers)
            rows = [[self._format_value(item.get(h, '')) for h in headers] for item in data]
            return tabulate(rows, headers=headers, tablefmt='grid')

        return '\n'.join(str(item) for item in data)

    def _format_value(self, value: Any) -> str:
        """Format individual value for display."""
        if value is None:
            return 'null'
        elif isinstance(value, bool):
            return 'true' if value else 'false'
        elif isinstance(value, bytes):
            return value.hex()
        return str(value)
