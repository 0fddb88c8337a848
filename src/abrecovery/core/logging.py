"""Logging configuration for ab-recovery using stdlib logging with rich."""

import logging
from collections.abc import MutableMapping
from typing import Any

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape


class StructuredLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that formats kwargs as structured context data.

    Context data is passed as keyword arguments to the logging methods and
    rendered as a dimmed suffix after the message.

    Example:
        logger = get_logger(__name__)
        logger.info("Job finished", kind="backup", success=True)
        # Output: Job finished [kind=backup success=True]
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        """Process log message and kwargs to extract context data.

        Args:
            msg: Log message
            kwargs: Keyword arguments including context data

        Returns:
            Tuple of (formatted_message, cleaned_kwargs)
        """
        stdlib_kwargs = {"exc_info", "stack_info", "stacklevel", "extra"}

        context = {k: v for k, v in kwargs.items() if k not in stdlib_kwargs}
        clean_kwargs = {k: v for k, v in kwargs.items() if k in stdlib_kwargs}

        if context:
            # Values may be command output or error text containing brackets.
            context_items = [f"{k}={escape(str(v))}" for k, v in sorted(context.items())]
            context_str = " ".join(context_items)
            msg = f"{msg} [dim][[/dim]{context_str}[dim]][/dim]"

        return msg, clean_kwargs


def setup_logging(verbose: bool = False) -> None:
    """Configure structured logging with rich integration.

    Args:
        verbose: Enable debug logging, source paths and local variables in
            tracebacks
    """
    log_level = logging.DEBUG if verbose else logging.INFO

    console = Console(stderr=True)

    handler = RichHandler(
        console=console,
        show_time=True,
        show_path=verbose,
        markup=True,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        log_time_format="[%Y-%m-%d %H:%M:%S]",
    )

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


def get_logger(name: str = "") -> StructuredLoggerAdapter:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the module)

    Returns:
        Configured logger adapter with structured logging support
    """
    logger = logging.getLogger(name) if name else logging.getLogger(__name__)

    return StructuredLoggerAdapter(logger, {})
