"""Processing flow files.

A flow (``.datahub/flow.yaml``) is a ready-made source spec: it already
maps resource names to URLs and carries its own processing steps. Pushing a
flow only uploads the dataset descriptor.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from datahub_client.core.exceptions import FlowLoadError


DEFAULT_DESCRIPTOR_PATH = Path(".datahub") / "datapackage.json"


def load_flow(path: Path | str) -> dict[str, Any]:
    """Load a flow file.

    Args:
        path: Path to the YAML flow.

    Returns:
        The flow as a dict.

    Raises:
        FlowLoadError: If the file is missing, is not valid YAML, or has no
            inputs.
    """
    flow_path = Path(path)
    try:
        with flow_path.open() as f:
            flow = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise FlowLoadError(
            f'Couldn\'t read "{flow_path.name}". Please, check if it\'s correctly formatted',
            flow_path=flow_path,
            cause=e,
        ) from e

    if not isinstance(flow, dict) or not flow.get("inputs"):
        raise FlowLoadError(
            f'"{flow_path.name}" has no inputs',
            flow_path=flow_path,
        )
    flow.setdefault("meta", {})
    flow["inputs"][0].setdefault("parameters", {})
    return flow


def load_descriptor(path: Path | str) -> dict[str, Any]:
    """Load an existing datapackage.json, or an empty descriptor.

    A missing file yields an empty descriptor. An unreadable one is logged
    and also yields an empty descriptor, so the flow starts from scratch.
    """
    descriptor_path = Path(path)
    if not descriptor_path.exists():
        return {}
    try:
        with descriptor_path.open() as f:
            descriptor = json.load(f)
    except (OSError, ValueError):
        logger.warning(
            "Couldn't load datapackage.json from {}. Creating from the scratch...",
            descriptor_path,
        )
        return {}
    return descriptor if isinstance(descriptor, dict) else {}


def generate_descriptor_for_flow(
    flow: dict[str, Any], descriptor: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Work out the descriptor to push along with a flow.

    Precedence:
        1. ``descriptor`` when it already lists resources.
        2. A non-empty descriptor embedded in the flow's first input.
        3. ``descriptor`` (named after ``meta.dataset`` when empty) with one
           ``data/<name>.csv`` resource per resource-mapping entry.

    Neither argument is modified.
    """
    result = copy.deepcopy(descriptor or {})
    resources = result.get("resources") or []
    if resources:
        return result
    if not result:
        result["name"] = flow.get("meta", {}).get("dataset")

    parameters = flow["inputs"][0].get("parameters") or {}
    flow_descriptor = parameters.get("descriptor")
    if flow_descriptor:
        return copy.deepcopy(flow_descriptor)

    for name in parameters.get("resource-mapping") or {}:
        resources.append({"name": name, "path": f"data/{name}.csv"})
    result["resources"] = resources
    return result
