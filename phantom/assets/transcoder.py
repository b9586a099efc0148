"""
Role-based image transcoding with Pillow.

Every artwork role has a fixed geometry: covers, banners and heroes are
cropped to fill, icons and logos are fitted inside a transparent canvas.
Animated inputs are never flattened. Whatever goes wrong, the caller still
ends up with a file at the destination: a failed transcode degrades to a
plain byte copy of the source.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, ImageChops, ImageOps, ImageSequence, UnidentifiedImageError

logger = logging.getLogger("phantom.transcoder")

__all__ = ["ROLE_SPECS", "ImageTranscoder", "RoleSpec", "is_animated"]

_RESAMPLE = Image.Resampling.LANCZOS
_TRANSCODE_ERRORS = (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError)


@dataclass(frozen=True)
class RoleSpec:
    """Target geometry of an artwork role.

    Args:
        size: Output (width, height).
        mode: "fill" (crop to fill), "pad" (fit inside a transparent
            canvas) or "logo" (trim borders, then pad).
    """

    size: tuple[int, int]
    mode: str


ROLE_SPECS: dict[str, RoleSpec] = {
    "cover": RoleSpec((600, 900), "fill"),
    "banner": RoleSpec((920, 430), "fill"),
    "hero": RoleSpec((1920, 620), "fill"),
    "icon": RoleSpec((256, 256), "pad"),
    "logo": RoleSpec((800, 400), "logo"),
}


def is_animated(img: Image.Image) -> bool:
    return bool(getattr(img, "is_animated", False)) or getattr(img, "n_frames", 1) > 1


def _pillow_format(path: Path) -> str:
    return Image.registered_extensions().get(path.suffix.lower(), "PNG")


def _save(img: Image.Image, dest: Path) -> None:
    """Save a still image in the format implied by ``dest``'s extension."""
    fmt = _pillow_format(dest)
    if fmt == "JPEG":
        if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
            background = Image.new("RGB", img.size, (0, 0, 0))
            rgba = img.convert("RGBA")
            background.paste(rgba, mask=rgba.getchannel("A"))
            img = background
        elif img.mode != "RGB":
            img = img.convert("RGB")
        img.save(dest, format=fmt, quality=90, optimize=True)
    else:
        img.save(dest, format=fmt)


def _trim(img: Image.Image) -> Image.Image:
    """Crop away a transparent or uniform border."""
    rgba = img.convert("RGBA")
    bbox = rgba.getchannel("A").getbbox()
    if bbox == (0, 0, *rgba.size):
        # opaque image: trim whatever matches the top-left colour
        rgb = rgba.convert("RGB")
        corner = Image.new("RGB", rgb.size, rgb.getpixel((0, 0)))
        bbox = ImageChops.difference(rgb, corner).getbbox()
    return rgba.crop(bbox) if bbox else rgba


def _pad(img: Image.Image, size: tuple[int, int], upscale: bool) -> Image.Image:
    """Fit ``img`` inside ``size`` and centre it on a transparent canvas."""
    rgba = img.convert("RGBA")
    if upscale:
        fitted = ImageOps.contain(rgba, size, method=_RESAMPLE)
    else:
        fitted = rgba.copy()
        fitted.thumbnail(size, _RESAMPLE)
    canvas = Image.new("RGBA", size, (0, 0, 0, 0))
    canvas.paste(fitted, ((size[0] - fitted.width) // 2, (size[1] - fitted.height) // 2))
    return canvas


def _fill(img: Image.Image, size: tuple[int, int]) -> Image.Image:
    if img.mode not in ("RGB", "RGBA"):
        img = img.convert("RGBA" if "transparency" in img.info or img.mode in ("LA", "PA") else "RGB")
    return ImageOps.fit(img, size, method=_RESAMPLE)


class ImageTranscoder:
    """Resizes artwork to its role geometry or to arbitrary dimensions."""

    def __init__(self, animated_logo_size: tuple[int, int] = (800, 400)) -> None:
        self.animated_logo_size = animated_logo_size

    def transcode(self, source: Path, dest: Path, role: str) -> Path:
        """Write ``source`` to ``dest`` in the geometry of ``role``.

        Args:
            source: Input image.
            dest: Output path; its extension selects the output format.
            role: One of ROLE_SPECS.

        Returns:
            The written path. It differs from ``dest`` when an animated
            input forces another container (WebP for logos, the source
            format otherwise).

        Raises:
            KeyError: If ``role`` is unknown.
            OSError: If even the fallback copy fails.
        """
        spec = ROLE_SPECS[role]
        try:
            with Image.open(source) as img:
                if is_animated(img):
                    if role == "logo":
                        return self._animated_webp(img, dest.with_suffix(".webp"))
                    return self._passthrough(source, dest.with_suffix(source.suffix.lower()))

                ImageOps.exif_transpose(img, in_place=True)
                if spec.mode == "fill":
                    result = _fill(img, spec.size)
                elif spec.mode == "pad":
                    result = _pad(img, spec.size, upscale=True)
                else:
                    result = _pad(_trim(img), spec.size, upscale=False)
                _save(result, dest)
                return dest
        except _TRANSCODE_ERRORS as e:
            logger.warning("Transcode of %s as %s failed, copying original: %s", source, role, e)
            return self._passthrough(source, dest)

    def resize(self, source: Path, dest: Path, width: int | None = None, height: int | None = None) -> Path:
        """Resize ``source`` into ``dest``.

        Both dimensions crop to fill; a single dimension scales
        proportionally. Animated images and failures are copied unchanged.
        """
        try:
            with Image.open(source) as img:
                if is_animated(img) or not (width or height):
                    return self._passthrough(source, dest)

                ImageOps.exif_transpose(img, in_place=True)
                if width and height:
                    result = _fill(img, (width, height))
                elif width:
                    scaled_height = max(1, round(img.height * width / img.width))
                    result = img.resize((width, scaled_height), _RESAMPLE)
                else:
                    scaled_width = max(1, round(img.width * height / img.height))
                    result = img.resize((scaled_width, height), _RESAMPLE)
                _save(result, dest)
                return dest
        except _TRANSCODE_ERRORS as e:
            logger.warning("Resize of %s failed, copying original: %s", source, e)
            return self._passthrough(source, dest)

    def _animated_webp(self, img: Image.Image, dest: Path) -> Path:
        frames = []
        durations = []
        for frame in ImageSequence.Iterator(img):
            still = frame.convert("RGBA")
            still.thumbnail(self.animated_logo_size, _RESAMPLE)
            frames.append(still)
            durations.append(frame.info.get("duration", img.info.get("duration", 100)))

        frames[0].save(
            dest,
            format="WEBP",
            save_all=True,
            append_images=frames[1:],
            duration=durations,
            loop=img.info.get("loop", 0),
            method=0,
        )
        return dest

    @staticmethod
    def _passthrough(source: Path, dest: Path) -> Path:
        if source.resolve() != dest.resolve():
            shutil.copyfile(source, dest)
        return dest
