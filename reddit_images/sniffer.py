"""
Content type sniffing from file signatures (magic bytes).

The image host serves every image under a ".png" suffix, so the real
type has to be read from the bytes themselves.
"""
import logging
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

# Enough to cover every signature below plus a few PNG chunk headers
HEADER_READ_SIZE = 4096


@dataclass(frozen=True)
class FileType:
    """A detected file kind."""

    name: str
    extension: str
    mime_type: str


JPEG = FileType("JPEG", "jpg", "image/jpeg")
PNG = FileType("PNG", "png", "image/png")
APNG = FileType("Animated PNG", "apng", "image/apng")
GIF = FileType("GIF", "gif", "image/gif")
TIFF = FileType("TIFF", "tiff", "image/tiff")
WEBP = FileType("WebP", "webp", "image/webp")
BMP = FileType("Bitmap", "bmp", "image/bmp")
PDF = FileType("PDF", "pdf", "application/pdf")
XCF = FileType("GIMP image", "xcf", "image/x-xcf")
MP4 = FileType("MPEG-4 video", "mp4", "video/mp4")
WEBM = FileType("WebM video", "webm", "video/webm")

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# Checked in order; PNG and RIFF containers are refined separately
SIGNATURES: Tuple[Tuple[int, bytes, FileType], ...] = (
    (0, b"\xff\xd8\xff", JPEG),
    (0, b"GIF87a", GIF),
    (0, b"GIF89a", GIF),
    (0, b"II*\x00", TIFF),
    (0, b"MM\x00*", TIFF),
    (0, b"%PDF", PDF),
    (0, b"gimp xcf", XCF),
    (0, b"BM", BMP),
    (0, b"\x1a\x45\xdf\xa3", WEBM),
    (4, b"ftyp", MP4),
)


class ContentTypeSniffer:
    """Detects file kinds from raw bytes."""

    def detect(self, data: bytes) -> Optional[FileType]:
        """
        Detect the file kind of the given bytes.

        Args:
            data: Raw file content (the leading bytes are enough)

        Returns:
            Detected FileType, or None if unrecognized
        """
        if not data:
            return None

        if data.startswith(PNG_SIGNATURE):
            return APNG if self._is_animated_png(data) else PNG

        if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
            return WEBP

        for offset, signature, file_type in SIGNATURES:
            if data[offset:offset + len(signature)] == signature:
                return file_type

        return None

    def detect_file(self, path: Path) -> Optional[FileType]:
        """
        Detect the file kind of a file on disk.

        Raises:
            OSError: If the file cannot be read
        """
        with open(path, "rb") as f:
            header = f.read(HEADER_READ_SIZE)

        file_type = self.detect(header)
        logger.debug(f"Sniffed {path.name}: {file_type.name if file_type else 'unknown'}")
        return file_type

    def _is_animated_png(self, data: bytes) -> bool:
        """An APNG carries an acTL chunk before its first IDAT chunk."""
        position = len(PNG_SIGNATURE)
        while position + 8 <= len(data):
            length, chunk_type = struct.unpack(">I4s", data[position:position + 8])
            if chunk_type == b"acTL":
                return True
            if chunk_type == b"IDAT":
                return False
            # length + type + data + crc
            position += 12 + length
        return False
