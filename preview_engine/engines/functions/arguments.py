"""
Quote-aware argument splitting for the {{#func:name(args)}} shorthand.
"""

_QUOTES = ('"', "'")


def split_arguments(raw: str) -> list[str]:
    """
    Split a comma-separated argument string on commas outside quotes.

    Parentheses are not tracked: ``a, (b, c)`` yields three items. Each item is
    stripped of surrounding whitespace; quotes are kept verbatim. An empty or
    blank string yields ``[]``.

    >>> split_arguments('a, "b,c", d')
    ['a', '"b,c"', 'd']
    """
    if not raw or not raw.strip():
        return []

    args: list[str] = []
    current: list[str] = []
    quote: str | None = None
    for ch in raw:
        if quote is not None:
            current.append(ch)
            if ch == quote:
                quote = None
        elif ch in _QUOTES:
            quote = ch
            current.append(ch)
        elif ch == ",":
            args.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
    args.append("".join(current).strip())
    return args
