"""Push a dataset from a processing flow.

A flow (.datahub/flow.yaml) already maps resource names to URLs, so only
the descriptor is uploaded. The descriptor is taken from
.datahub/datapackage.json when it exists and generated from the flow
otherwise.
"""

import asyncio

from datahub_client import DataHub, find_project_root, load_config


async def main() -> None:
    flow = find_project_root() / ".datahub" / "flow.yaml"

    async with DataHub.from_config(load_config()) as datahub:
        result = await datahub.push_flow(flow)

    print(f"Submitted flow: {result['id']}")


if __name__ == "__main__":
    asyncio.run(main())
