"""Shared fixtures for integration tests against a live project."""

import os

import pytest
import pytest_asyncio

from cdfutils.bulk import BulkConfig, BulkWriter, CDFTransport

# Skip all integration tests unless CDFUTILS_BULK_RUN_INTEGRATION=1
pytestmark = pytest.mark.skipif(
    os.environ.get("CDFUTILS_BULK_RUN_INTEGRATION") != "1",
    reason="Requires a live project. Set CDFUTILS_BULK_RUN_INTEGRATION=1 to run",
)


@pytest_asyncio.fixture
async def writer():
    """BulkWriter for the project named by CDF_PROJECT at CDF_BASE_URL, using CDF_TOKEN."""

    async def token() -> str:
        return os.environ["CDF_TOKEN"]

    transport = CDFTransport(os.environ["CDF_PROJECT"], os.environ["CDF_BASE_URL"], token)
    async with BulkWriter(transport, BulkConfig.from_env()) as bulk:
        yield bulk
