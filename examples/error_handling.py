"""Error handling patterns with recovery hints.

This example demonstrates how to handle common push errors and use
the recovery_hint property to provide actionable guidance.
"""

import asyncio

from datahub_client import (
    ApiError,
    DataHub,
    # Exceptions
    DatahubError,
    EmptyResourceError,
    PushOptions,
    RemoteResourceUnreachableError,
    SheetSelectionError,
    SubmissionError,
    load_config,
    load_dataset,
)


# Pattern 1: Fix the input and push again
async def push_checked(datahub: DataHub, path: str, sheets: str | None) -> dict | None:
    """Push a dataset, explaining input problems."""
    try:
        return await datahub.push(load_dataset(path), PushOptions(sheets=sheets))
    except EmptyResourceError as e:
        print(f"Empty file: {e.path}")
        print(f"Hint: {e.recovery_hint}")
    except SheetSelectionError as e:
        # recovery_hint lists the sheets found in the workbook
        print(e)
        print(f"Hint: {e.recovery_hint}")
    except RemoteResourceUnreachableError as e:
        print(f"Hint: {e.recovery_hint}")
    return None


# Pattern 2: Retry server-side and network failures
async def push_with_retry(datahub: DataHub, path: str, attempts: int = 3) -> dict:
    """Push again when the API failed on its side or did not answer.

    Uploads are content addressed, so files stored by an earlier attempt
    are skipped.
    """
    dataset = load_dataset(path)
    attempt = 1
    while True:
        try:
            return await datahub.push(dataset)
        except ApiError as e:
            if not e.retryable or attempt >= attempts:
                raise
            print(f"Attempt {attempt} failed ({e}), retrying...")
            await asyncio.sleep(2**attempt)
            attempt += 1


# Pattern 3: Catch-all for any library error
async def main() -> None:
    async with DataHub.from_config(load_config()) as datahub:
        try:
            await push_with_retry(datahub, ".")
        except SubmissionError as e:
            for error in e.errors:
                print(f"Rejected: {error}")
        except DatahubError as e:
            print(f"Push failed: {e}")
            if e.recovery_hint:
                print(f"Hint: {e.recovery_hint}")


if __name__ == "__main__":
    asyncio.run(main())
