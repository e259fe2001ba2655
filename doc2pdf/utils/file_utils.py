import base64
import binascii
import re

_NON_ALPHABET = re.compile(r"[^A-Za-z0-9+/]")
_FILE_TYPE = re.compile(r"^[a-z0-9]{1,16}$")


def decode_base64(value: str) -> bytes:
    """
    Decode base64 text the way lenient decoders do: whitespace and stray
    characters are dropped, padding is optional and the URL-safe alphabet
    is accepted.
    """
    cleaned = value.replace("-", "+").replace("_", "/")
    cleaned = _NON_ALPHABET.sub("", cleaned)
    if len(cleaned) % 4 == 1:
        raise ValueError("base64 payload has an invalid length")
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"base64 payload could not be decoded: {exc}") from exc


def encode_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def normalise_file_type(value: str) -> str:
    """Turn ``".DOCX"`` into ``"docx"``; reject anything that is not a bare extension."""
    file_type = value.strip().lstrip(".").lower()
    if not _FILE_TYPE.match(file_type):
        raise ValueError(f"not a plain file extension: {value!r}")
    return file_type
