"""Real-browser journeys against a live Dopamint environment.

Run with::

    DOPAMINT_E2E=1 pytest tests/e2e -m e2e

Needs a wallet extension profile (WALLET_EXTENSION_PATH) and, for the
create/mint/sell journeys, E2E_IMAGE and E2E_COLLECTION_URL.
"""

import os
from pathlib import Path

import pytest

from dopamint_e2e.core.settings import get_settings
from dopamint_e2e.runner import JourneyOptions, run_workflow

pytestmark = [
    pytest.mark.e2e,
    pytest.mark.skipif(
        os.getenv("DOPAMINT_E2E") != "1", reason="set DOPAMINT_E2E=1 to run live journeys"
    ),
]


def _options() -> JourneyOptions:
    image = os.getenv("E2E_IMAGE")
    return JourneyOptions(
        image=Path(image) if image else None,
        mint_images=[Path(image)] * 2 if image else [],
        collection_url=os.getenv("E2E_COLLECTION_URL"),
    )


@pytest.mark.asyncio
@pytest.mark.parametrize("workflow", ["login", "create", "mint", "sell"])
async def test_journey(workflow):
    """Test each journey end to end."""
    options = _options()
    if workflow == "create" and options.image is None:
        pytest.skip("E2E_IMAGE not set")
    if workflow in ("mint", "sell") and not options.collection_url:
        pytest.skip("E2E_COLLECTION_URL not set")
    if workflow == "mint" and not options.mint_images:
        pytest.skip("E2E_IMAGE not set")

    report = await run_workflow(workflow, get_settings(), options, stagger=False)

    assert report.passed, f"{report.failed_step}: {report.error}"
