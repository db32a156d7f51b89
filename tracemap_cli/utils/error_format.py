"""Safe error message formatting utilities.

Ensures exceptions always have useful display messages, even when
their str() representation is empty (e.g., TimeoutError, CancelledError).
"""

from __future__ import annotations

import asyncio

from rich.markup import escape as _escape_markup

from ..errors import TraceMapError

# Friendly messages for specific exception types known to have empty str()
FRIENDLY_MESSAGES: dict[type, str] = {
    TimeoutError: "Request timed out while loading a module.",
    asyncio.CancelledError: "Operation was cancelled.",
    ConnectionResetError: "Connection was reset by the server.",
    KeyboardInterrupt: "Operation interrupted by user.",
}


def format_error_message(e: BaseException, *, include_type: bool = True) -> str:
    """Format an exception into a useful display message.

    Tracemap errors are labelled with their code instead of the type name.

    Examples:
        >>> format_error_message(ValueError("invalid input"))
        'ValueError: invalid input'

        >>> format_error_message(OperationError("No packages to upgrade."))
        'INVALID_OPERATION: No packages to upgrade.'
    """
    error_str = str(e)
    label = e.code if isinstance(e, TraceMapError) else type(e).__name__

    if error_str:
        if include_type and label not in error_str:
            return f"{label}: {error_str}"
        return error_str

    for exc_type, friendly_msg in FRIENDLY_MESSAGES.items():
        if isinstance(e, exc_type):
            return f"{label}: {friendly_msg}"

    return f"{label}: (no additional details)"


def escape_markup(value: object) -> str:
    """Escape a value for safe interpolation into Rich markup strings.

    Module URLs and specifiers may contain brackets that Rich would
    otherwise read as markup tags.
    """
    return _escape_markup(str(value))
