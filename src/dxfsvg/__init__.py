from typing import Sequence

from .bbox import BoundingBox
from .context import StyleContext
from .convert import SvgResult, create_svg_string, to_svg
from .document import Drawing, loads, read
from .render import EntityRenderer, RenderOptions, create_svg_contents

__all__ = [
    "read",
    "loads",
    "Drawing",
    "RenderOptions",
    "EntityRenderer",
    "create_svg_contents",
    "create_svg_string",
    "to_svg",
    "SvgResult",
    "BoundingBox",
    "StyleContext",
]


def main(argv: Sequence[str] | None = None) -> int:
    from dxfsvg.cli import main as cli_main

    return cli_main(argv)
