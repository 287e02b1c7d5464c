from __future__ import annotations

import html
from typing import Iterable, Mapping, Union

from .util import format_number

AttributeValue = Union[str, int, float, bool, None]


def escape(text: str) -> str:
    return html.escape(text, quote=True)


def _attribute(value: str | int | float) -> str:
    if isinstance(value, str):
        return escape(value)
    return format_number(value)


def element(
    tag: str,
    attributes: Mapping[str, AttributeValue] | None = None,
    children: str | Iterable[str] | None = None,
) -> str:
    s = "<" + tag
    for key, value in (attributes or {}).items():
        if value is None or value is False or value == "":
            continue
        s += f' {key}="{_attribute(value)}"'
    if children is not None and not isinstance(children, str):
        children = "".join(children)
    if children:
        return f"{s}>{children}</{tag}>"
    return s + "/>"
