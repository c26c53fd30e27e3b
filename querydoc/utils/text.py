"""Text helpers for document authoring."""

import re
import textwrap
import unicodedata
from typing import Optional

__all__ = (
    "slugify",
    "strip_margin",
)

_MARGIN_RE_CACHE: "dict[str, re.Pattern[str]]" = {}


def slugify(value: str, allow_unicode: bool = False, separator: Optional[str] = None) -> str:
    """Slugify.

    Convert to ASCII if ``allow_unicode`` is ``False``. Convert spaces or repeated
    dashes to single dashes. Remove characters that aren't alphanumerics,
    underscores, or hyphens. Convert to lowercase. Also strip leading and
    trailing whitespace, dashes, and underscores.

    Args:
        value (str): the string to slugify
        allow_unicode (bool, optional): allow unicode characters in slug. Defaults to False.
        separator (str, optional): by default a `-` is used to delimit word boundaries.
            Set this to configure something different.

    Returns:
        str: a slugified string of the value parameter
    """
    if allow_unicode:
        value = unicodedata.normalize("NFKC", value)
    else:
        value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = value.lower().strip()
    sep = separator if separator is not None else "-"
    if not sep:
        return re.sub(r"[^\w]+", "", value, flags=re.UNICODE)
    value = re.sub(r"[^\w]+", sep, value, flags=re.UNICODE)
    value = re.sub(rf"^{re.escape(sep)}+|{re.escape(sep)}+$", "", value)
    return re.sub(rf"{re.escape(sep)}+", sep, value)


def strip_margin(text: str, margin: str = "|") -> str:
    """Remove leading whitespace up to and including ``margin`` from every line.

    Lines without the margin character are dedented as a block instead, so
    both of these produce the same query text::

        strip_margin('''MATCH (n)
                       |RETURN n''')
        strip_margin('''
            MATCH (n)
            RETURN n
        ''')

    Args:
        text: Multi-line literal as written in source.
        margin: Margin marker character.

    Returns:
        The text with margins removed and surrounding blank lines trimmed.
    """
    pattern = _MARGIN_RE_CACHE.get(margin)
    if pattern is None:
        pattern = re.compile(rf"^[ \t]*{re.escape(margin)}", re.MULTILINE)
        _MARGIN_RE_CACHE[margin] = pattern
    if pattern.search(text):
        return pattern.sub("", text).strip("\n")
    return textwrap.dedent(text).strip("\n")
