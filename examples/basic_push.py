"""Push a local data package.

This example loads the data package in the current directory and pushes
it with the credentials from ~/.config/datahub/config.json (or the
DATAHUB_TOKEN, DATAHUB_OWNER_ID and DATAHUB_OWNER environment variables).
"""

import asyncio

from datahub_client import (
    DataHub,
    OutputOptions,
    PushOptions,
    RichProgressReporter,
    load_config,
    load_dataset,
)


async def main() -> None:
    dataset = load_dataset(".")
    options = PushOptions(
        findability="published",
        sheets="all",  # every sheet of every xls/xlsx resource
        outputs=OutputOptions(zip=True),
    )

    async with DataHub.from_config(load_config()) as datahub:
        with RichProgressReporter() as progress:
            result = await datahub.push(dataset, options, progress=progress)

    print(f"Pushed {dataset.name}: {result['id']}")


if __name__ == "__main__":
    asyncio.run(main())
