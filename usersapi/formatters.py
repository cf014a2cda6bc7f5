"""Output formatting and ``Accept`` header negotiation."""

from __future__ import annotations

import json
from typing import Any, List, Optional, Tuple
from xml.etree import ElementTree

from .errors import NotAcceptableError

JSON_MEDIA_TYPE = "application/json"
XML_MEDIA_TYPE = "application/xml"

_SUPPORTED = {
    "application/json": JSON_MEDIA_TYPE,
    "text/json": JSON_MEDIA_TYPE,
    "application/xml": XML_MEDIA_TYPE,
    "text/xml": XML_MEDIA_TYPE,
}

_WILDCARDS = {
    "*/*": (JSON_MEDIA_TYPE, XML_MEDIA_TYPE),
    "application/*": (JSON_MEDIA_TYPE, XML_MEDIA_TYPE),
    "text/*": (XML_MEDIA_TYPE, JSON_MEDIA_TYPE),
}


def _parse_accept(header: str) -> List[Tuple[str, float]]:
    ranges: List[Tuple[str, float]] = []
    for part in header.split(","):
        pieces = [piece.strip() for piece in part.split(";")]
        media_range = pieces[0].lower()
        if not media_range:
            continue
        quality = 1.0
        for param in pieces[1:]:
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        ranges.append((media_range, quality))
    # Stable sort keeps header order between equal weights.
    ranges.sort(key=lambda item: item[1], reverse=True)
    return ranges


def negotiate(accept: Optional[str]) -> str:
    """Return the media type to render for the given ``Accept`` header.

    A type the header refuses with ``q=0`` is never picked, even through a
    wildcard range.
    """

    if accept is None or not accept.strip():
        return JSON_MEDIA_TYPE

    ranges = _parse_accept(accept)
    refused = {
        _SUPPORTED[media_range]
        for media_range, quality in ranges
        if quality <= 0 and media_range in _SUPPORTED
    }

    for media_range, quality in ranges:
        if quality <= 0:
            continue
        resolved = _SUPPORTED.get(media_range)
        if resolved is not None:
            return resolved
        for candidate in _WILDCARDS.get(media_range, ()):
            if candidate not in refused:
                return candidate

    raise NotAcceptableError(f"Cannot produce any of: {accept}")


def _append_xml(parent: ElementTree.Element, tag: str, value: Any) -> None:
    element = ElementTree.SubElement(parent, tag)
    _fill_xml(element, value)


def _fill_xml(element: ElementTree.Element, value: Any) -> None:
    if value is None:
        element.set("nil", "true")
    elif isinstance(value, dict):
        for key, item in value.items():
            _append_xml(element, key, item)
    elif isinstance(value, list):
        for item in value:
            _append_xml(element, element.tag.removeprefix("ArrayOf"), item)
    elif isinstance(value, bool):
        element.text = "true" if value else "false"
    else:
        element.text = str(value)


def render(payload: Any, media_type: str, *, root: str) -> bytes:
    """Serialise ``payload`` (already JSON-compatible) as ``media_type``.

    ``root`` names the XML document element; lists are wrapped as
    ``ArrayOf<root>`` with one ``<root>`` child per item.
    """

    if media_type == XML_MEDIA_TYPE:
        tag = f"ArrayOf{root}" if isinstance(payload, list) else root
        document = ElementTree.Element(tag)
        _fill_xml(document, payload)
        return ElementTree.tostring(document, encoding="utf-8", xml_declaration=True)
    return json.dumps(payload).encode("utf-8")


__all__ = ["JSON_MEDIA_TYPE", "XML_MEDIA_TYPE", "negotiate", "render"]
