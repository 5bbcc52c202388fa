"""
Main endpoint for users.
Exposes a `describe_images` coroutine that runs one orchestration over a set
of images and returns its full accounting.
"""

import typing as t

from visionbatch.batching import WorkItem
from visionbatch.config import VisionConfig
from visionbatch.core import Orchestrator
from visionbatch.fields import DescriptionField
from visionbatch.progress import ProgressCallback
from visionbatch.results import RunResult


async def describe_images(
    items: t.Sequence[WorkItem],
    fields: t.Sequence[DescriptionField],
    config: VisionConfig,
    on_progress: ProgressCallback | None = None,
) -> RunResult:
    """
    Generate descriptions for ``items`` for each requested field.<br>
    Images are sent in chunks of ``config.batch_size``; every (field, chunk) request is sent at once
    and asynchronous jobs are polled concurrently.

    Parameters
    ----------
    items : Sequence[WorkItem]
        Images to describe. Ids must be unique.
    fields : Sequence[DescriptionField]
        Requested fields, e.g. alt text and caption.
    config : VisionConfig
        API key, model backend, language, optional prompt and batching/polling limits.
    on_progress : ProgressCallback | None, optional
        Receives ``ProgressEvent`` updates. Purely observational.

    Returns
    -------
    RunResult
        Per-item results, per-field errors and warnings.<br>
        Call ``raise_for_outcome()`` to turn a run without any result into ``NoResultsError``.
    """
    orchestrator = Orchestrator(config=config, on_progress=on_progress)
    return await orchestrator.run(items=items, fields=fields)
