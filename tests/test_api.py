"""
Tests for the describe_images function in visionbatch.api.
"""

import pytest

from visionbatch import DescriptionField, NoResultsError, RunOutcome, VisionConfig, describe_images
from tests.mocks.vision import POLL, REJECT, FakeVisionAPI, make_items


@pytest.mark.asyncio
async def test_describe_images_returns_results(route_http_to, config: VisionConfig):
    """Test that describe_images runs a full orchestration."""
    api = FakeVisionAPI(modes={"caption": POLL})
    route_http_to(api)
    events = []

    result = await describe_images(
        items=make_items(3),
        fields=[DescriptionField.caption],
        config=config,
        on_progress=events.append,
    )

    assert result.outcome is RunOutcome.COMPLETE
    assert [item.item_id for item in result.results] == ["1:100", "1:101", "1:102"]
    assert events[-1].completed_units == 3


@pytest.mark.asyncio
async def test_describe_images_no_results(route_http_to, config: VisionConfig):
    api = FakeVisionAPI(modes={"alttext": REJECT})
    route_http_to(api)

    result = await describe_images(
        items=make_items(1), fields=[DescriptionField.alt_text], config=config
    )

    with pytest.raises(NoResultsError) as exc_info:
        result.raise_for_outcome()
    assert str(exc_info.value) == "Alt Text: Insufficient credits"
    assert exc_info.value.field_errors == result.field_errors
