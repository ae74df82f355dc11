"""Source spec assembly.

The source spec is the job description submitted to the processing API:
who owns the dataset, where its descriptor and files can be fetched, which
processing steps to run and which outputs to produce.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from datahub_client.core.models import Findability, ProcessingStep


SPEC_VERSION = 1


def build_source_spec(
    *,
    owner_id: str | None,
    owner: str | None,
    dataset_name: str,
    findability: Findability,
    descriptor_url: str,
    resource_mapping: Mapping[str, str],
    descriptor: Mapping[str, Any],
    processing: Sequence[ProcessingStep] = (),
    outputs: Sequence[Mapping[str, Any]] = (),
    schedule: str | None = None,
) -> dict[str, Any]:
    """Build the source spec document.

    ``outputs``, ``processing`` and ``schedule`` are left out entirely when
    empty: the processing API treats the presence of a key as work to do.

    Args:
        owner_id: Id of the owner.
        owner: Username of the owner.
        dataset_name: Name of the dataset.
        findability: Visibility of the dataset.
        descriptor_url: Signed URL of the uploaded datapackage.json.
        resource_mapping: Resource path to signed URL of its uploaded file.
        descriptor: The dataset descriptor, echoed for provenance.
        processing: Processing steps.
        outputs: Output declarations (see handle_outputs()).
        schedule: Recurrence string.

    Returns:
        The spec as a JSON-serializable dict.
    """
    spec: dict[str, Any] = {
        "meta": {
            "version": SPEC_VERSION,
            "ownerid": owner_id,
            "owner": owner,
            "dataset": dataset_name,
            "findability": Findability(findability).value,
        },
        "inputs": [
            {
                "kind": "datapackage",
                "url": descriptor_url,
                "parameters": {
                    "resource-mapping": dict(resource_mapping),
                    "descriptor": dict(descriptor),
                },
            }
        ],
    }
    if outputs:
        spec["outputs"] = [dict(output) for output in outputs]
    if processing:
        spec["processing"] = [step.to_dict() for step in processing]
    if schedule:
        spec["schedule"] = schedule
    return spec
