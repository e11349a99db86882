"""Text normalization for street names in requests."""

QUOTE_CHARS = ("'", "’")


def strip_quotes(name: str) -> str:
    """Remove apostrophes so "Test'n Ln" matches "TESTN LN".

    Case is left alone; segment lookups compare case-insensitively.
    """
    for quote in QUOTE_CHARS:
        name = name.replace(quote, "")
    return name
