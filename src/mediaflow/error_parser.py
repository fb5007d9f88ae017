"""Flatten XML error payloads returned by the remote media service."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

from .exceptions import RemoteServiceError

logger = logging.getLogger(__name__)

DATA_SERVICES_METADATA_NAMESPACE = "http://schemas.microsoft.com/ado/2007/08/dataservices/metadata"

_CODE_TAG = f"{{{DATA_SERVICES_METADATA_NAMESPACE}}}code"
_MESSAGE_TAG = f"{{{DATA_SERVICES_METADATA_NAMESPACE}}}message"


class ParsedServiceError(RemoteServiceError):
    """Human readable ``code: message`` extracted from a service error payload."""


def _innermost(exc: BaseException) -> BaseException:
    seen: set[int] = set()
    current = exc
    while id(current) not in seen:
        seen.add(id(current))
        inner = current.__cause__ or current.__context__
        if inner is None:
            break
        current = inner
    return current


def _child_text(root: ET.Element, tag: str) -> str | None:
    element = root.find(tag)
    if element is None:
        return None
    text = "".join(element.itertext()).strip()
    return text or None


def parse_service_error(exc: BaseException | None) -> BaseException | None:
    """Return a flattened error for ``exc`` or ``exc`` itself when nothing parses.

    The innermost exception of the chain is inspected; its ``body`` is used
    when it is a :class:`RemoteServiceError`, its message otherwise.
    """

    if exc is None:
        return None
    if isinstance(exc, ParsedServiceError):
        return exc

    base = _innermost(exc)
    payload = getattr(base, "body", None) if isinstance(base, RemoteServiceError) else None
    if not payload:
        payload = str(base)
    try:
        root = ET.fromstring(payload)
    except (ET.ParseError, ValueError):
        return exc

    code = _child_text(root, _CODE_TAG)
    message = _child_text(root, _MESSAGE_TAG)
    if code and message:
        text = f"{code}: {message}"
    elif code or message:
        text = code or message or ""
    else:
        return exc

    status_code = getattr(base, "status_code", None)
    parsed = ParsedServiceError(text, status_code=status_code, code=code)
    parsed.__cause__ = exc
    logger.debug("errors.service_error.parsed", extra={"code": code, "status_code": status_code})
    return parsed


__all__ = [
    "DATA_SERVICES_METADATA_NAMESPACE",
    "ParsedServiceError",
    "parse_service_error",
]
