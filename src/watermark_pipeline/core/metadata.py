"""Transplantation of EXIF and ICC segments between image containers."""

import io
import struct
import zlib
from pathlib import Path
from typing import Iterator, List, Tuple, Union

import piexif
from PIL import Image, UnidentifiedImageError

from .exceptions import MetadataError, with_error_handling
from .logging_config import get_logger
from .models import MetadataBlob

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
EXIF_HEADER = b"Exif\x00\x00"
ICC_PROFILE_NAME = b"ICC Profile"

JPEG_SOI = b"\xff\xd8"
JPEG_SOS = b"\xff\xda"
JPEG_APP0 = 0xE0
JPEG_APP1 = 0xE1
JPEG_APP2 = 0xE2
ICC_SEGMENT_HEADER = b"ICC_PROFILE\x00"
# 65535 - length field (2) - ICC_PROFILE\0 (12) - sequence bytes (2)
ICC_CHUNK_SIZE = 65519

SUPPORTED_EXTENSIONS = {"png": "PNG", "jpg": "JPEG", "jpeg": "JPEG"}

PathLike = Union[str, Path]


def read_metadata(path: PathLike) -> MetadataBlob:
    """
    Read the EXIF and ICC payloads of an image without decoding its pixels.

    EXIF is returned with its "Exif\\0\\0" header, as Pillow exposes it.

    Raises:
        MetadataError: If the file cannot be opened as an image
    """
    try:
        with Image.open(path) as img:
            # PNG may store eXIf after the image data
            if img.format == "PNG" and "exif" not in img.info:
                img.load()
            return MetadataBlob(
                exif=img.info.get("exif") or None,
                icc_profile=img.info.get("icc_profile") or None,
            )
    except (OSError, SyntaxError, UnidentifiedImageError) as err:
        raise MetadataError(f"Unable to read metadata from {path}: {err}") from err


# --- PNG ---------------------------------------------------------------------


def _png_chunk(chunk_type: bytes, payload: bytes) -> bytes:
    crc = zlib.crc32(chunk_type + payload) & 0xFFFFFFFF
    return struct.pack(">I", len(payload)) + chunk_type + payload + struct.pack(">I", crc)


def iter_png_chunks(data: bytes) -> Iterator[Tuple[bytes, bytes]]:
    """Yield (chunk type, raw chunk bytes) for every chunk of a PNG file."""
    if not data.startswith(PNG_SIGNATURE):
        raise MetadataError("Not a PNG container")

    pos = len(PNG_SIGNATURE)
    while pos < len(data):
        if pos + 8 > len(data):
            raise MetadataError("Truncated PNG chunk header")
        (length,) = struct.unpack(">I", data[pos : pos + 4])
        chunk_type = data[pos + 4 : pos + 8]
        end = pos + 12 + length
        if end > len(data):
            raise MetadataError(f"Truncated PNG chunk {chunk_type!r}")
        yield chunk_type, data[pos:end]
        pos = end
        if chunk_type == b"IEND":
            return


def png_with_metadata(data: bytes, blob: MetadataBlob) -> bytes:
    """Return PNG bytes carrying the blob's eXIf/iCCP chunks right after IHDR."""
    dropped = set()
    inserted: List[bytes] = []
    if blob.icc_profile:
        dropped.update({b"iCCP", b"sRGB"})
        payload = ICC_PROFILE_NAME + b"\x00\x00" + zlib.compress(blob.icc_profile)
        inserted.append(_png_chunk(b"iCCP", payload))
    if blob.exif:
        dropped.add(b"eXIf")
        exif = blob.exif[len(EXIF_HEADER):] if blob.exif.startswith(EXIF_HEADER) else blob.exif
        inserted.append(_png_chunk(b"eXIf", exif))

    out = [PNG_SIGNATURE]
    for chunk_type, raw in iter_png_chunks(data):
        if chunk_type in dropped:
            continue
        out.append(raw)
        if chunk_type == b"IHDR":
            out.extend(inserted)
    return b"".join(out)


# --- JPEG --------------------------------------------------------------------


def split_jpeg_segments(data: bytes) -> Tuple[List[bytes], bytes]:
    """
    Split a JPEG file into its marker segments and the scan data.

    Returns:
        (segments between SOI and SOS, bytes from SOS to the end of the file)
    """
    if not data.startswith(JPEG_SOI):
        raise MetadataError("Not a JPEG container")

    segments: List[bytes] = []
    pos = len(JPEG_SOI)
    while pos + 4 <= len(data):
        marker = data[pos : pos + 2]
        if marker[0] != 0xFF:
            raise MetadataError(f"Invalid JPEG marker at offset {pos}")
        if marker == JPEG_SOS:
            return segments, data[pos:]
        (length,) = struct.unpack(">H", data[pos + 2 : pos + 4])
        segments.append(data[pos : pos + 2 + length])
        pos += 2 + length
    raise MetadataError("JPEG container has no scan data")


def _is_icc_segment(segment: bytes) -> bool:
    return segment[1] == JPEG_APP2 and segment[4:16] == ICC_SEGMENT_HEADER


def icc_segments(icc_profile: bytes) -> List[bytes]:
    """Split an ICC profile into APP2 segments."""
    chunks = [
        icc_profile[i : i + ICC_CHUNK_SIZE]
        for i in range(0, len(icc_profile), ICC_CHUNK_SIZE)
    ]
    segments = []
    for index, chunk in enumerate(chunks, start=1):
        size = struct.pack(">H", 2 + len(ICC_SEGMENT_HEADER) + 2 + len(chunk))
        segments.append(
            bytes([0xFF, JPEG_APP2]) + size + ICC_SEGMENT_HEADER
            + bytes([index, len(chunks)]) + chunk
        )
    return segments


def jpeg_with_metadata(data: bytes, blob: MetadataBlob) -> bytes:
    """Return JPEG bytes carrying the blob's ICC APP2 and EXIF APP1 segments."""
    if blob.icc_profile:
        segments, scan = split_jpeg_segments(data)
        segments = [seg for seg in segments if not _is_icc_segment(seg)]
        position = 0
        while position < len(segments) and segments[position][1] in (JPEG_APP0, JPEG_APP1):
            position += 1
        segments[position:position] = icc_segments(blob.icc_profile)
        data = JPEG_SOI + b"".join(segments) + scan

    if blob.exif:
        output = io.BytesIO()
        try:
            piexif.insert(blob.exif, data, output)
        except (ValueError, struct.error) as err:
            raise MetadataError(f"Unable to insert EXIF segment: {err}") from err
        data = output.getvalue()

    return data


# --- dispatch ----------------------------------------------------------------


@with_error_handling
def transplant_metadata(original_path: PathLike, output_path: PathLike) -> bool:
    """
    Copy EXIF and ICC segments from the original file into the output file.

    Only PNG and JPEG are supported, dispatched on the original's extension.
    Pixel data of the output is left untouched; only metadata segments are
    added or replaced.

    Returns:
        True if metadata was handled, False for an unsupported extension

    Raises:
        MetadataError: If either container cannot be read, parsed or written
    """
    logger = get_logger("metadata")
    extension = Path(original_path).suffix.lower().lstrip(".")
    fmt = SUPPORTED_EXTENSIONS.get(extension)

    if fmt is None:
        logger.warning(
            f"Extension ({extension or 'none'}) not supported to preserve metadata: {original_path}"
        )
        return False

    blob = read_metadata(original_path)
    if blob.is_empty:
        logger.debug(f"[{original_path}] No EXIF/ICC metadata to preserve")
        return True

    try:
        output = Path(output_path).read_bytes()
    except OSError as err:
        raise MetadataError(f"Unable to read {output_path}: {err}") from err

    if fmt == "PNG":
        rewritten = png_with_metadata(output, blob)
    else:
        rewritten = jpeg_with_metadata(output, blob)

    try:
        Path(output_path).write_bytes(rewritten)
    except OSError as err:
        raise MetadataError(f"Unable to write {output_path}: {err}") from err

    logger.debug(
        f"[{original_path}] Preserved metadata "
        f"(exif={len(blob.exif or b'')}B, icc={len(blob.icc_profile or b'')}B)"
    )
    return True
