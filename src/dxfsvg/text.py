from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePath
from typing import Union

_HEX_DIGITS = set("0123456789abcdefABCDEF")
_SPECIAL_CHARACTERS = {"c": "⌀", "d": "°", "p": "±", "%": "%"}
_MBCS_CODECS = {"1": "cp932", "2": "big5", "3": "cp949", "4": "johab", "5": "gb2312"}
_IGNORED_WITH_ARGUMENT = {"A", "C", "c", "T", "t", "W", "w", "p"}
_IGNORED_TOGGLES = {"L", "l", "O", "o", "K", "k"}


@dataclass(frozen=True)
class TextRun:
    text: str
    k: bool = False
    o: bool = False
    u: bool = False


@dataclass(frozen=True)
class Stacked:
    numerator: str
    separator: str
    denominator: str


@dataclass(frozen=True)
class FontChange:
    family: str
    bold: bool = False
    italic: bool = False


@dataclass(frozen=True)
class HeightChange:
    value: float
    relative: bool = True


@dataclass(frozen=True)
class Oblique:
    angle: float


@dataclass(frozen=True)
class Paragraph:
    pass


MTextContent = Union[str, list, Stacked, FontChange, HeightChange, Oblique, Paragraph]


def _unicode_escape(value: str, i: int) -> tuple[str, int] | None:
    # \U+XXXX
    digits = value[i + 3 : i + 7]
    if value[i + 2 : i + 3] == "+" and len(digits) == 4 and set(digits) <= _HEX_DIGITS:
        return chr(int(digits, 16)), i + 7
    return None


def _mbcs_escape(value: str, i: int, encoding: str | None) -> tuple[str, int] | None:
    # \M+nXXXX
    codepage = value[i + 3 : i + 4]
    digits = value[i + 4 : i + 8]
    if value[i + 2 : i + 3] != "+" or len(digits) != 4 or not set(digits) <= _HEX_DIGITS:
        return None
    codec = encoding or _MBCS_CODECS.get(codepage)
    if codec is None:
        return None
    try:
        return bytes.fromhex(digits).decode(codec, errors="replace"), i + 8
    except LookupError:
        return None


def _special_character(value: str, i: int) -> tuple[str, int] | None:
    # %%c %%d %%p %%% %%nnn
    code = value[i + 2 : i + 3]
    if code.lower() in _SPECIAL_CHARACTERS:
        return _SPECIAL_CHARACTERS[code.lower()], i + 3
    digits = value[i + 2 : i + 5]
    if len(digits) == 3 and digits.isdigit():
        return chr(int(digits)), i + 5
    return None


def parse_text_content(value: str, encoding: str | None = None) -> list[TextRun]:
    runs: list[TextRun] = []
    flags = {"k": False, "o": False, "u": False}
    out: list[str] = []

    def flush() -> None:
        if out:
            runs.append(TextRun("".join(out), **flags))
            out.clear()

    i = 0
    n = len(value)
    while i < n:
        ch = value[i]
        if ch == "%" and value[i + 1 : i + 2] == "%":
            code = value[i + 2 : i + 3].lower()
            if code in flags:
                flush()
                flags[code] = not flags[code]
                i += 3
                continue
            special = _special_character(value, i)
            if special is not None:
                out.append(special[0])
                i = special[1]
                continue
        if ch == "\\":
            code = value[i + 1 : i + 2]
            escaped = None
            if code in {"U", "u"}:
                escaped = _unicode_escape(value, i)
            elif code in {"M", "m"}:
                escaped = _mbcs_escape(value, i, encoding)
            if escaped is not None:
                out.append(escaped[0])
                i = escaped[1]
                continue
        out.append(ch)
        i += 1

    flush()
    return runs or [TextRun("")]


def _argument(value: str, start: int) -> tuple[str, int]:
    end = value.find(";", start)
    if end == -1:
        return value[start:], len(value)
    return value[start:end], end + 1


def _stacked(argument: str) -> Stacked:
    for i, ch in enumerate(argument):
        if ch in "^/#" and (i == 0 or argument[i - 1] != "\\"):
            denominator = argument[i + 1 :]
            if ch == "^" and denominator.startswith(" "):
                denominator = denominator[1:]
            return Stacked(argument[:i].replace("\\", ""), ch, denominator.replace("\\", ""))
    return Stacked(argument, "", "")


def _font(argument: str, *, file_name: bool) -> FontChange:
    family, *options = argument.split("|")
    if file_name:
        family = PurePath(family).stem
    bold = italic = False
    for option in options:
        if option[:1] == "b":
            bold = option[1:] == "1"
        elif option[:1] == "i":
            italic = option[1:] == "1"
    return FontChange(family, bold, italic)


def _float(argument: str) -> float | None:
    try:
        return float(argument)
    except ValueError:
        return None


def _height(argument: str) -> HeightChange | None:
    value = _float(argument.rstrip("xX"))
    if value is None:
        return None
    return HeightChange(value, argument.lower().endswith("x"))


def parse_mtext_content(value: str, encoding: str | None = None) -> list[MTextContent]:
    contents, _ = _parse_group(value, 0, encoding, nested=False)
    return contents


def _parse_group(value: str, i: int, encoding: str | None, *, nested: bool) -> tuple[list, int]:
    contents: list = []
    out: list[str] = []

    def flush() -> None:
        if out:
            contents.append("".join(out))
            out.clear()

    n = len(value)
    while i < n:
        ch = value[i]

        if ch == "{":
            flush()
            group, i = _parse_group(value, i + 1, encoding, nested=True)
            contents.append(group)
            continue
        if ch == "}":
            if nested:
                flush()
                return contents, i + 1
            out.append(ch)
            i += 1
            continue
        if ch == "%" and value[i + 1 : i + 2] == "%":
            special = _special_character(value, i)
            if special is not None:
                out.append(special[0])
                i = special[1]
                continue
        if ch != "\\":
            out.append(ch)
            i += 1
            continue
        if i + 1 >= n:
            out.append("\\")
            break

        code = value[i + 1]
        if code in "\\{}":
            out.append(code)
            i += 2
            continue
        if code in {"P", "N", "X"}:
            flush()
            contents.append(Paragraph())
            i += 2
            continue
        if code == "~":
            out.append("\u00a0")
            i += 2
            continue
        if code in _IGNORED_TOGGLES:
            i += 2
            continue
        if code in {"U", "u"} or code in {"M", "m"}:
            escaped = _unicode_escape(value, i) if code in {"U", "u"} else _mbcs_escape(value, i, encoding)
            if escaped is not None:
                out.append(escaped[0])
                i = escaped[1]
                continue
        if code == "S":
            flush()
            argument, i = _argument(value, i + 2)
            contents.append(_stacked(argument))
            continue
        if code in {"f", "F"}:
            flush()
            argument, i = _argument(value, i + 2)
            contents.append(_font(argument, file_name=code == "F"))
            continue
        if code in {"H", "h"}:
            flush()
            argument, i = _argument(value, i + 2)
            height = _height(argument)
            if height is not None:
                contents.append(height)
            continue
        if code in {"Q", "q"}:
            flush()
            argument, i = _argument(value, i + 2)
            angle = _float(argument)
            if angle is not None:
                contents.append(Oblique(angle))
            continue
        if code in _IGNORED_WITH_ARGUMENT:
            _, i = _argument(value, i + 2)
            continue

        out.append(code)
        i += 2

    flush()
    return contents, i


def plain_text(contents: list[MTextContent]) -> str:
    out: list[str] = []
    for content in contents:
        if isinstance(content, str):
            out.append(content)
        elif isinstance(content, list):
            out.append(plain_text(content))
        elif isinstance(content, Stacked):
            out.append(f"{content.numerator}/{content.denominator}" if content.separator else content.numerator)
        elif isinstance(content, Paragraph):
            out.append("\n")
    return "".join(out)
