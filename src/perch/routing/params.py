"""Path parameter converters.

Built-in converters for route path segments like ``{id:int}``. The
router only validates the shape of a segment; captured values reach
handlers as strings.
"""

# regex pattern for each supported converter
CONVERTERS: dict[str, str] = {
    "str": r"[^/]+",
    "int": r"\d+",
    "float": r"\d+(?:\.\d+)?",
    "path": r".+",
}
