"""Utility helpers used across ``rxquartz`` modules."""

import traceback

# Quartz payloads are 8-bit data, not UTF-8 text.
WIRE_ENCODING = "latin-1"
TERMINATOR = "\r"


def wire_encode(command: str) -> bytes:
    """Encode command text for the socket, one byte per character.

    Raises:
        ValueError: If the text holds characters above U+00FF.
    """
    try:
        return command.encode(WIRE_ENCODING)
    except UnicodeEncodeError as e:
        raise ValueError(f"command is not 8-bit clean: {command!r}") from e


def wire_decode(data: bytes | bytearray | str) -> str:
    """Decode a raw chunk from the socket without reinterpreting 0x80-0xFF."""
    if isinstance(data, str):
        return data
    return bytes(data).decode(WIRE_ENCODING)


def terminate(command: str) -> str:
    """Append the record terminator unless the command already ends with one."""
    if command.endswith(TERMINATOR):
        return command
    return command + TERMINATOR


def printable(text: str) -> str:
    """Render protocol text for log lines with the terminators made visible."""
    return text.replace(TERMINATOR, "\\r")


def get_short_error_info(e: Exception) -> str:
    """
    Get a short error information from an exception.

    Args:
        e (Exception): The exception to get the error information from.

    Returns:
        str: A short error information.
    """
    return f"{type(e).__name__}: {str(e)}"


# the function to get the full error information from an exception.
def get_full_error_info(e: Exception) -> str:
    """
    Get the full error information from an exception.

    Args:
        e (Exception): The exception to get the error information from.

    Returns:
        str: The full error information.
    """
    return "".join(traceback.format_exception(type(e), e, e.__traceback__))
