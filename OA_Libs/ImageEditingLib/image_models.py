"""
Image data models and errors for Open Annotate.

Classes:
    SourceImage: A decoded source image together with its original bytes
    ExportResult: Encoded output of one export call
    ImageEditError: Base class of compositor errors
    ImageDecodeError: Source bytes could not be rasterized
    ImageEncodeError: Output could not be produced or encoded
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union
import base64
import binascii
import io
import re

from PIL import Image, UnidentifiedImageError

from OA_Libs.constants import OUTPUT_FORMAT, OUTPUT_MIME_TYPE, SURFACE_MODE
from OA_Libs.ImageEditingLib.filter_model import FilterParameters, default_filters

_DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[^;,]+)?(?:;[^;,]+)*;base64,(?P<data>.*)$", re.DOTALL)


class ImageEditError(Exception):
    """Base class for errors scoped to a single image entry."""


class ImageDecodeError(ImageEditError, IOError):
    """Raised when source bytes cannot be decoded into a raster."""


class ImageEncodeError(ImageEditError, IOError):
    """Raised when a composited raster cannot be encoded."""


@dataclass
class SourceImage:
    """A decoded source image.

    Attributes:
        image: Decoded RGBA PIL Image
        data: The original encoded bytes (kept as the unedited fallback)
        mime_type: MIME type of ``data``
        label: Optional display name (file name, attachment id)
    """
    image: Any
    data: bytes
    mime_type: str
    label: str = ""

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self):
        return self.image.size

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: Optional[str] = None, label: str = "") -> "SourceImage":
        """
        Decode raw image bytes.

        Args:
            data: Encoded image bytes (PNG, JPEG, GIF, WebP, ...)
            mime_type: MIME type; detected from the decoded format if omitted
            label: Optional display name

        Raises:
            ImageDecodeError: If the bytes cannot be decoded
        """
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError(f"Expected bytes, got {type(data)}")

        try:
            with Image.open(io.BytesIO(data)) as opened:
                opened.load()
                detected = Image.MIME.get(opened.format or "", "")
                image = opened.convert(SURFACE_MODE)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            name = f" '{label}'" if label else ""
            raise ImageDecodeError(f"Failed to decode image{name}: {str(e)}") from e

        return cls(
            image=image,
            data=bytes(data),
            mime_type=mime_type or detected or "application/octet-stream",
            label=label,
        )

    @classmethod
    def from_base64(cls, data: str, mime_type: Optional[str] = None, label: str = "") -> "SourceImage":
        """Decode a base64 payload, as attached by the chat input."""
        try:
            raw = base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageDecodeError(f"Invalid base64 image data: {str(e)}") from e
        return cls.from_bytes(raw, mime_type, label)

    @classmethod
    def from_data_url(cls, url: str, label: str = "") -> "SourceImage":
        """Decode a ``data:<mime>;base64,<payload>`` URL."""
        match = _DATA_URL_PATTERN.match(url.strip())
        if match is None:
            raise ImageDecodeError("Not a base64 data URL")
        return cls.from_base64(match.group("data"), match.group("mime"), label)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "SourceImage":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Image file not found: {path}")
        if not path.is_file():
            raise ValueError(f"Path is not a file: {path}")
        return cls.from_bytes(path.read_bytes(), label=path.name)

    @classmethod
    def from_image(cls, image: Any, label: str = "") -> "SourceImage":
        """Wrap an in-memory PIL Image, encoding it as PNG for the fallback bytes."""
        if not hasattr(image, "convert"):
            raise TypeError(f"Expected PIL Image, got {type(image)}")
        rgba = image.convert(SURFACE_MODE)
        return cls(image=rgba, data=encode_png(rgba), mime_type=OUTPUT_MIME_TYPE, label=label)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


@dataclass
class ExportResult:
    """Result of exporting one image.

    Attributes:
        data: Encoded image bytes
        mime_type: MIME type of ``data``
        width: Output width in pixels
        height: Output height in pixels
        filters: The filter parameters that were applied, reusable as the
                 initial state when the image is reopened
        applied: False when the export failed and ``data`` is the unedited source
        error: Error message for a failed export
        index: Position of the image in its session, if exported from one
    """
    data: bytes
    mime_type: str = OUTPUT_MIME_TYPE
    width: int = 0
    height: int = 0
    filters: FilterParameters = field(default_factory=default_filters)
    applied: bool = True
    error: Optional[str] = None
    index: Optional[int] = None

    @classmethod
    def fallback(cls, source: SourceImage, error: Exception, index: Optional[int] = None) -> "ExportResult":
        """Not-applied result carrying the original source bytes."""
        return cls(
            data=source.data,
            mime_type=source.mime_type,
            width=source.width,
            height=source.height,
            filters=default_filters(),
            applied=False,
            error=str(error),
            index=index,
        )

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    def to_image(self) -> Any:
        """Decode ``data`` back into an RGBA PIL Image."""
        with Image.open(io.BytesIO(self.data)) as opened:
            return opened.convert(SURFACE_MODE)


def encode_png(image: Any) -> bytes:
    """
    Encode a PIL Image losslessly.

    Raises:
        ImageEncodeError: If Pillow cannot write the image
    """
    buffer = io.BytesIO()
    try:
        image.save(buffer, format=OUTPUT_FORMAT)
    except (OSError, ValueError, KeyError) as e:
        raise ImageEncodeError(f"Failed to encode image as {OUTPUT_FORMAT}: {str(e)}") from e
    return buffer.getvalue()
