import logging
import typing as t
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

REDACTED_KEYS = frozenset({"api_key", "file", "payload", "payloads"})


def redact_sensitive_keys(
    logger: t.Any, method_name: str, event_dict: structlog.typing.EventDict
) -> structlog.typing.EventDict:
    """Replace credentials and image payloads before an event is rendered."""
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "<redacted>"
    return event_dict


def setup_logging(*, level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format="%(message)s")
    logging.getLogger("visionbatch").setLevel(level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,  # run_id binding
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            redact_sensitive_keys,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=True),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


@contextmanager
def logging_context(**run_context: t.Any) -> Iterator[None]:
    """
    Bind ``run_context`` to every event logged inside the block.

    Keys already bound by an enclosing block keep their outer value.
    """
    bound = structlog.contextvars.get_contextvars()
    new_context = {key: value for key, value in run_context.items() if key not in bound}
    if not new_context:
        yield
        return
    with structlog.contextvars.bound_contextvars(**new_context):
        yield
