"""Rules for turning Lev identifiers into LLVM value and function names."""

from lowering.errors import IdentifierEncodingError


def encode_identifier(name: str) -> str:
    """Return `name` if LLVM can carry it, else raise IdentifierEncodingError.

    LLVM names are NUL-terminated byte strings, so a name must be non-empty,
    free of NUL characters and representable as UTF-8.
    """
    if not isinstance(name, str) or not name:
        raise IdentifierEncodingError(name, "name is empty")
    if "\0" in name:
        raise IdentifierEncodingError(name, "name contains a NUL character")
    try:
        name.encode("utf-8")
    except UnicodeEncodeError as e:
        raise IdentifierEncodingError(name, f"not valid UTF-8 ({e.reason})") from e
    return name
