"""
Deployment Reporting

Address table on the console and a JSON manifest on disk for other tooling
to pick up what was deployed.
"""

import json
import os
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from rich.console import Console
from rich.table import Table

from ..logger import get_logger

logger = get_logger(__name__)


def print_deployment_table(
    deployment: Mapping[str, Any],
    title: str = "Deployment",
    console: Optional[Console] = None,
) -> Table:
    """Print `name → address` rows, one per deployed contract."""
    if hasattr(deployment, "to_dict"):
        deployment = deployment.to_dict()

    table = Table(title=title)
    table.add_column("(index)", style="bold")
    table.add_column("Values", style="cyan")
    for name, address in deployment.items():
        table.add_row(name, str(address))

    (console or Console()).print(table)
    return table


def save_manifest(filename: Union[str, Path], content: Mapping[str, Any]) -> Path:
    """Write `content` as indented JSON, creating parent directories."""
    path = Path(filename)
    if hasattr(content, "to_dict"):
        content = content.to_dict()

    os.makedirs(path.parent, exist_ok=True)
    with open(path, "w") as outfile:
        json.dump(content, outfile, indent=2)

    logger.info(f"Manifest written to {path}")
    return path
