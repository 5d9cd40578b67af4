"""
Helper functions for the Migration Control plane.

This module contains small utility functions used by the CLI and the
configuration loader.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

import yaml


def load_config_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Args:
        file_path: Path to configuration file

    Returns:
        Configuration dictionary
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    with open(file_path, 'r', encoding='utf-8') as f:
        if file_path.suffix.lower() in ['.yaml', '.yml']:
            return yaml.safe_load(f)
        elif file_path.suffix.lower() == '.json':
            return json.load(f)
        else:
            raise ValueError(f"Unsupported configuration file format: {file_path.suffix}")


def split_namespace_list(values: Iterable[str]) -> List[str]:
    """
    Flatten comma-separated namespace option values.

    ``("db1.a,db2.*", "db3.b")`` becomes ``["db1.a", "db2.*", "db3.b"]``.
    Blank items are dropped; items are not validated here.
    """
    result: List[str] = []
    for value in values or ():
        for item in value.split(','):
            item = item.strip()
            if item:
                result.append(item)
    return result
