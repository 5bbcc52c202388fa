from .api import describe_images as describe_images
from .batching import WorkItem as WorkItem
from .config import VisionConfig as VisionConfig
from .core import Orchestrator as Orchestrator
from .exceptions import NoResultsError as NoResultsError
from .fields import DescriptionField as DescriptionField
from .progress import ProgressEvent as ProgressEvent
from .results import RunOutcome as RunOutcome
from .results import RunResult as RunResult

__all__ = [
    "describe_images",
    "WorkItem",
    "VisionConfig",
    "Orchestrator",
    "NoResultsError",
    "DescriptionField",
    "ProgressEvent",
    "RunOutcome",
    "RunResult",
]
