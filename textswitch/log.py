"""Custom logging levels for TextSwitch.

Levels (ascending):
    TRACE =  5  — clipboard polls, every strategy attempt, raw tool output
    DEBUG = 10  — strategy results, state transitions, swallowed pipeline errors
    INFO  = 20  — conversions performed, profile changes, startup (default)

Usage:
    import textswitch.log  # must be imported once before any logger is used
    logger = logging.getLogger(__name__)
    logger.trace("very noisy message")
"""

import logging

TRACE: int = 5
logging.addLevelName(TRACE, "TRACE")


def _trace(self: logging.Logger, message: object, *args: object, **kwargs: object) -> None:
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)  # type: ignore[attr-defined]


# Patch Logger class once at import time
if not hasattr(logging.Logger, "trace"):
    logging.Logger.trace = _trace  # type: ignore[attr-defined]
