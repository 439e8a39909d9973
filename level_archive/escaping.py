"""
HTML entity escaping used by platform file text fields.

The two directions are deliberately not symmetric:
- escape_html() writes the apostrophe as the numeric reference &#39;
- unescape_html() also accepts &apos;, and any decimal (&#NNN;) or hex
  (&#xHH;) reference, which escape_html() never produces

unescape_html(escape_html(text)) == text holds for any text, the other way
around does not. Existing platform files depend on the encoded form, so
keep it as is.
"""

import re
from types import MappingProxyType

# Entity name -> character (decoding)
HTML_ENTITIES = MappingProxyType({
    "nbsp": "\u00a0",
    "cent": "¢",
    "pound": "£",
    "yen": "¥",
    "euro": "€",
    "copy": "©",
    "reg": "®",
    "lt": "<",
    "gt": ">",
    "quot": '"',
    "amp": "&",
    "apos": "'",
})

# Character -> entity body (encoding)
ESCAPE_CHARS = MappingProxyType({
    "¢": "cent",
    "£": "pound",
    "¥": "yen",
    "€": "euro",
    "©": "copy",
    "®": "reg",
    "<": "lt",
    ">": "gt",
    '"': "quot",
    "&": "amp",
    "'": "#39",
})

_ESCAPE_PATTERN = re.compile("[" + re.escape("".join(ESCAPE_CHARS)) + "]")
_ENTITY_PATTERN = re.compile(r"&([^;]+);")
_HEX_REFERENCE = re.compile(r"#x([\da-fA-F]+)")
_DECIMAL_REFERENCE = re.compile(r"#(\d+)")


def _code_point(value: int, entity: str) -> str:
    # Surrogates and out of range references are left untouched
    if value > 0x10FFFF or 0xD800 <= value <= 0xDFFF:
        return entity
    return chr(value)


def _replace_entity(match: re.Match) -> str:
    entity, body = match.group(0), match.group(1)
    if body in HTML_ENTITIES:
        return HTML_ENTITIES[body]
    reference = _HEX_REFERENCE.fullmatch(body)
    if reference:
        return _code_point(int(reference.group(1), 16), entity)
    reference = _DECIMAL_REFERENCE.fullmatch(body)
    if reference:
        return _code_point(int(reference.group(1)), entity)
    return entity


def unescape_html(text) -> str:
    """
    Resolve the entities of a text field.

    Args:
        text: Escaped text (None is treated as an empty string)

    Returns:
        Unescaped text, unknown entities are kept verbatim
    """
    if text is None:
        return ""
    return _ENTITY_PATTERN.sub(_replace_entity, str(text))


def escape_html(text: str) -> str:
    """
    Escape a text field for storage in a platform file.

    Args:
        text: Plain text

    Returns:
        Text with every character of ESCAPE_CHARS replaced by its entity
    """
    return _ESCAPE_PATTERN.sub(lambda m: f"&{ESCAPE_CHARS[m.group(0)]};", text)
