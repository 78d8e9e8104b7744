"""
Image resolver.

Turns the image sources found in the editor tree into raster bytes ready for
embedding. Embedded ``data:`` URIs are decoded in memory; remote sources are
fetched with httpx. Every failure is local to its image: the resolver logs a
warning and returns None (or degrades to raw bytes) so the export can carry
on without it.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import io
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Sequence, Tuple
from urllib.parse import unquote_to_bytes

import httpx
from PIL import Image, ImageFile, UnidentifiedImageError

from ..config import ExportOptions
from ..exceptions import MediaError
from ..utils.units import px_to_pt

logger = logging.getLogger(__name__)

CANONICAL_FORMAT = "png"
MAX_IMAGE_BYTES = 50 * 1024 * 1024

SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "png"),
    (b"\xff\xd8\xff", "jpeg"),
    (b"GIF87a", "gif"),
    (b"GIF89a", "gif"),
)

# Pillow format names of the encodings that may be embedded without re-encoding
PASSTHROUGH_FORMATS = {"PNG": "png", "JPEG": "jpeg", "GIF": "gif"}

# Truncated GIF frames surface as EOFError
DECODE_ERRORS = (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, EOFError)


@dataclass
class ResolvedImage:
    raster_bytes: bytes
    format_tag: str
    natural_width: int
    natural_height: int
    decoded: bool = True


@dataclass(frozen=True, slots=True)
class ImageBox:
    """On-screen size of a rendered image, in CSS pixels."""

    width_px: float
    height_px: float

    @property
    def is_usable(self) -> bool:
        return self.width_px > 0 and self.height_px > 0


def sniff_format(data: bytes) -> str:
    """Detect PNG/JPEG/GIF from magic numbers; unknown data is tagged png."""
    for signature, tag in SIGNATURES:
        if data.startswith(signature):
            return tag
    return CANONICAL_FORMAT


def _describe(source: str) -> str:
    return source if len(source) <= 80 else source[:77] + "..."


def decode_data_uri(source: str) -> bytes:
    """Return the payload of a ``data:`` URI."""
    if not source.startswith("data:") or "," not in source:
        raise MediaError("Not a data URI", details=_describe(source))
    header, payload = source[5:].split(",", 1)
    try:
        if header.lower().endswith(";base64"):
            return base64.b64decode("".join(payload.split()), validate=True)
        return unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as exc:
        raise MediaError("Invalid data URI payload", details=str(exc)) from exc


class _Passthrough(Exception):
    def __init__(self, tag: str):
        super().__init__(tag)
        self.tag = tag


def _encode(img: Image.Image) -> Tuple[bytes, str]:
    source_format = img.format
    try:
        if img.mode not in ("1", "L", "LA", "P", "RGB", "RGBA", "I", "I;16"):
            img = img.convert("RGBA" if "A" in img.mode else "RGB")
        output = io.BytesIO()
        img.save(output, format="PNG")
        return output.getvalue(), CANONICAL_FORMAT
    except (OSError, ValueError) as exc:
        tag = PASSTHROUGH_FORMATS.get(source_format or "")
        if tag is None:
            raise
        logger.debug(f"PNG re-encoding failed ({exc}); keeping {tag} bytes")
        raise _Passthrough(tag) from exc


def decode_bitmap(data: bytes) -> ResolvedImage:
    """Decode with Pillow and re-encode to the canonical format."""
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        width, height = img.size
        try:
            raster, tag = _encode(img)
        except _Passthrough as keep:
            raster, tag = data, keep.tag
    return ResolvedImage(raster, tag, width, height)


def decode_bitmap_incremental(data: bytes) -> ResolvedImage:
    """
    Best-effort retry through Pillow's incremental parser.

    The parser relies on the same format plugins as ``decode_bitmap``, so it
    rarely recovers bytes the first attempt rejected; callers must be ready
    for it to fail the same way.
    """
    parser = ImageFile.Parser()
    parser.feed(data)
    img = parser.close()
    try:
        width, height = img.size
        try:
            raster, tag = _encode(img)
        except _Passthrough as keep:
            raster, tag = data, keep.tag
    finally:
        img.close()
    return ResolvedImage(raster, tag, width, height)


class ImageResolver:
    """Resolves image sources to ``ResolvedImage`` records."""

    def __init__(self, options: Optional[ExportOptions] = None,
                 client: Optional[httpx.AsyncClient] = None):
        self.options = options or ExportOptions()
        self._client = client

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(
            timeout=self.options.fetch_timeout,
            follow_redirects=True,
        ) as client:
            yield client

    async def resolve(self, source: Optional[str]) -> Optional[ResolvedImage]:
        async with self._session() as client:
            return await self._resolve(source, client)

    async def resolve_all(self, sources: Sequence[Optional[str]]) -> List[Optional[ResolvedImage]]:
        """
        Resolve every source concurrently.

        Results come back in the order of ``sources`` whatever the completion
        order; an image that fails is None in its slot.
        """
        if not sources:
            return []
        async with self._session() as client:
            results = await asyncio.gather(
                *(self._resolve(source, client) for source in sources),
                return_exceptions=True,
            )
        resolved: List[Optional[ResolvedImage]] = []
        for source, result in zip(sources, results):
            if isinstance(result, BaseException):
                logger.warning(f"Image {_describe(source or '')} skipped: {result}")
                resolved.append(None)
            else:
                resolved.append(result)
        return resolved

    async def _resolve(self, source: Optional[str], client: httpx.AsyncClient) -> Optional[ResolvedImage]:
        if not source or not isinstance(source, str):
            logger.warning("Image without source skipped")
            return None
        source = source.strip()

        if source.startswith("data:"):
            return await self._resolve_embedded(source)
        if source.startswith(("http://", "https://")):
            data = await self._fetch(source, client)
            if data is None:
                return None
            return await self._resolve_remote_bytes(source, data)

        logger.warning(f"Unsupported image source skipped: {_describe(source)}")
        return None

    async def _resolve_embedded(self, source: str) -> Optional[ResolvedImage]:
        try:
            data = decode_data_uri(source)
        except MediaError as e:
            logger.warning(f"Failed to decode embedded image: {e}")
            return None
        if not data:
            logger.warning("Embedded image is empty")
            return None
        # Decoding is synchronous; give other resolutions a turn first
        await asyncio.sleep(0)
        try:
            return decode_bitmap(data)
        except DECODE_ERRORS as e:
            tag = sniff_format(data)
            logger.warning(f"Embedded image could not be decoded ({e}); embedding raw {tag} bytes")
            return self._undecoded(data, tag)

    async def _resolve_remote_bytes(self, source: str, data: bytes) -> ResolvedImage:
        await asyncio.sleep(0)
        try:
            return decode_bitmap(data)
        except DECODE_ERRORS as e:
            logger.debug(f"Primary decode failed for {_describe(source)}: {e}")
        await asyncio.sleep(0)
        try:
            return decode_bitmap_incremental(data)
        except DECODE_ERRORS as e:
            tag = sniff_format(data)
            logger.warning(
                f"Image {_describe(source)} could not be decoded ({e}); embedding raw {tag} bytes"
            )
            return self._undecoded(data, tag)

    def _undecoded(self, data: bytes, tag: str) -> ResolvedImage:
        return ResolvedImage(
            raster_bytes=data,
            format_tag=tag,
            natural_width=self.options.fallback_image_width_px,
            natural_height=self.options.fallback_image_height_px,
            decoded=False,
        )

    async def _fetch(self, url: str, client: httpx.AsyncClient) -> Optional[bytes]:
        """Fetch ``url`` without credentials; any failure is logged and yields None."""
        try:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                chunks = bytearray()
                async for chunk in response.aiter_bytes():
                    chunks.extend(chunk)
                    if len(chunks) > MAX_IMAGE_BYTES:
                        logger.warning(f"Image {_describe(url)} exceeds {MAX_IMAGE_BYTES} bytes; skipped")
                        return None
                return bytes(chunks)
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch image {_describe(url)}: {e}")
            return None


def compute_target_size(resolved: Optional[ResolvedImage],
                        measured: Optional[ImageBox] = None,
                        intrinsic: Optional[Tuple[Optional[float], Optional[float]]] = None,
                        options: Optional[ExportOptions] = None) -> Tuple[float, float]:
    """
    Output size of an image in points.

    Pixel size comes from the measured on-screen box when available, then the
    node's intrinsic attributes, then the decoded natural size, then the
    fallback size. It is converted to points, boosted, and clamped to the
    maximum width with the aspect ratio preserved.
    """
    options = options or ExportOptions()

    width_px = height_px = 0.0
    candidates = []
    if measured is not None:
        candidates.append((measured.width_px, measured.height_px))
    if intrinsic is not None:
        candidates.append(intrinsic)
    if resolved is not None:
        candidates.append((resolved.natural_width, resolved.natural_height))
    for width, height in candidates:
        if width and height and width > 0 and height > 0:
            width_px, height_px = float(width), float(height)
            break
    else:
        width_px = float(options.fallback_image_width_px)
        height_px = float(options.fallback_image_height_px)

    width_pt = px_to_pt(width_px) * options.image_boost
    height_pt = px_to_pt(height_px) * options.image_boost

    if width_pt > options.max_image_width_pt:
        scale = options.max_image_width_pt / width_pt
        width_pt = options.max_image_width_pt
        height_pt = height_pt * scale

    return round(width_pt, 2), round(height_pt, 2)
