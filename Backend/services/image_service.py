"""Avatar image checks and normalization."""
import io
import re

from PIL import Image, UnidentifiedImageError

MAX_AVATAR_BYTES = 1_000_000
AVATAR_SIZE = (250, 250)
ALLOWED_AVATAR_NAME = re.compile(r"\.(jpg|jpeg|png)\Z")


class InvalidImage(Exception):
    pass


def is_allowed_avatar_name(filename: str | None) -> bool:
    """Checks the file suffix only, the content is not sniffed."""
    return bool(filename) and ALLOWED_AVATAR_NAME.search(filename) is not None


def normalize_avatar(data: bytes) -> bytes:
    """Resize to a fixed square and re-encode as PNG."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            resized = image.convert("RGBA").resize(AVATAR_SIZE)
    except (UnidentifiedImageError, Image.DecompressionBombError, ValueError, OSError) as e:
        raise InvalidImage(f"Unable to read image: {e}")

    out = io.BytesIO()
    resized.save(out, format="PNG")
    return out.getvalue()
