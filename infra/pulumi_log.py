# -*- coding: utf-8 -*-
import pulumi
from loguru import logger

# loguru level -> pulumi.log function
_PULUMI_LEVELS = {
    "TRACE": "debug",
    "DEBUG": "debug",
    "INFO": "info",
    "SUCCESS": "info",
    "WARNING": "warn",
    "ERROR": "error",
    "CRITICAL": "error",
}


def pulumi_sink(message) -> None:
    record = message.record
    log = getattr(pulumi.log, _PULUMI_LEVELS.get(record["level"].name, "info"))
    log(record["message"])


def configure_logging(level: str = "DEBUG") -> None:
    """
    Route loguru records to the Pulumi engine so they show up in the output of
    `pulumi up`, instead of the program's (captured) stderr.
    """
    logger.remove()
    logger.add(pulumi_sink, level=level, format="{message}")
