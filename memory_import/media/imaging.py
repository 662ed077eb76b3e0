"""
Image and video preprocessing.

- Photos are shrunk and recompressed before upload (storage cost) and
  before classification (payload size / tokens).
- Video frames for classification are pulled out with ffmpeg.
"""

from __future__ import annotations

import asyncio
import io
import logging
from typing import List, Sequence

from PIL import Image, ImageOps

# Upload: keep plenty of detail for viewing on a phone
UPLOAD_MAX_SIZE = 1920
# Classification: ~1.15 megapixels, what vision models handle natively
ANALYSIS_SIZE = 1092
JPEG_QUALITY = 80

# Seconds into the video. Shorter clips simply yield fewer frames.
FRAME_OFFSETS = (1.0, 5.0, 10.0)


def optimize_image(data: bytes, max_size: int = UPLOAD_MAX_SIZE, quality: int = JPEG_QUALITY) -> bytes:
    """
    Resize to fit a max_size x max_size box (aspect ratio kept, never
    upscaled) and re-encode as JPEG.

    Raises whatever Pillow raises for unreadable input.
    """
    with Image.open(io.BytesIO(data)) as img:
        img = ImageOps.exif_transpose(img)
        if img.mode != "RGB":
            img = img.convert("RGB")
        img.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)

        out = io.BytesIO()
        img.save(out, format="JPEG", quality=quality, optimize=True)
        return out.getvalue()


def prepare_for_analysis(data: bytes) -> bytes:
    return optimize_image(data, max_size=ANALYSIS_SIZE, quality=JPEG_QUALITY)


async def extract_frame(video_path: str, offset: float) -> bytes:
    """
    Grab a single JPEG frame at ``offset`` seconds.

    Raises RuntimeError if ffmpeg fails or produces nothing (e.g. the
    offset is past the end of the clip).
    """
    proc = await asyncio.create_subprocess_exec(
        "ffmpeg",
        "-loglevel", "error",
        "-ss", f"{offset:.3f}",
        "-i", video_path,
        "-frames:v", "1",
        "-f", "image2pipe",
        "-vcodec", "mjpeg",
        "-",
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()

    if proc.returncode != 0 or not stdout:
        raise RuntimeError(
            f"ffmpeg returned code {proc.returncode} at {offset}s: {stderr.decode(errors='replace').strip()}"
        )
    return stdout


async def extract_video_frames(video_path: str, offsets: Sequence[float] = FRAME_OFFSETS) -> List[bytes]:
    """
    Frames at the given offsets, skipping the ones that can't be read.
    Falls back to the very first frame when none of the offsets work.

    Raises:
        RuntimeError: not even the first frame could be extracted.
    """
    frames: List[bytes] = []

    for offset in offsets:
        try:
            frames.append(await extract_frame(video_path, offset))
        except (OSError, RuntimeError) as e:
            logging.info("[FRAMES] No frame at %.1fs for %s (%s)", offset, video_path, e)

    if not frames:
        try:
            frames.append(await extract_frame(video_path, 0.0))
        except (OSError, RuntimeError) as e:
            raise RuntimeError(f"Failed to extract any frames from video: {e}") from e

    return frames
