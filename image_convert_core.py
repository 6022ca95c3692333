"""
Image Conversion Core - Functional Core

Pure conversions between decoded images (PIL, OpenCV arrays) and the halftone
frame types. Transparent sources are flattened onto an opaque black
background here, so the sampler can ignore alpha.
No side effects: no file I/O, no windows, no logging.

Architecture: Functional core (this file) called by imperative shell (halftone_shell.py)
"""

import numpy as np  # type: ignore
from PIL import Image  # type: ignore
import cv2  # type: ignore

from halftone_types import SourceFrame, OutputSurface


# ============================================================================
# Decoded Image → SourceFrame
# ============================================================================

def flatten_alpha(pil_image: Image.Image) -> Image.Image:
    """
    Composite any transparency onto an opaque black background.

    Pure function - returns a new RGBA image with alpha 255 everywhere.

    Args:
        pil_image: PIL Image in any mode (RGBA, LA, P with transparency, RGB, L, ...)

    Returns:
        Opaque RGBA PIL Image

    Examples:
        >>> img = Image.new('RGBA', (10, 10), (255, 0, 0, 128))
        >>> flatten_alpha(img).getpixel((5, 5))[3]
        255
    """
    rgba = pil_image.convert('RGBA')
    background = Image.new('RGBA', rgba.size, (0, 0, 0, 255))
    return Image.alpha_composite(background, rgba)


def pil_to_source_frame(pil_image: Image.Image) -> SourceFrame:
    """
    Convert a PIL Image to a SourceFrame.

    Pure function - handles transparency by compositing onto black.

    Args:
        pil_image: PIL Image in any mode

    Returns:
        SourceFrame with an RGBA (height, width, 4) buffer

    Examples:
        >>> frame = pil_to_source_frame(Image.new('RGB', (40, 30), (255, 255, 255)))
        >>> (frame.width, frame.height, frame.pixels.shape)
        (40, 30, (30, 40, 4))
    """
    width, height = pil_image.size
    pixels = np.array(flatten_alpha(pil_image), dtype=np.uint8).reshape((height, width, 4))
    return SourceFrame(width=width, height=height, pixels=pixels)


def cv2_to_source_frame(cv2_image: np.ndarray) -> SourceFrame:
    """
    Convert an OpenCV array (as returned by VideoCapture.read) to a SourceFrame.

    Pure function - color space conversion plus alpha flattening.

    Args:
        cv2_image: uint8 array, BGR (h, w, 3), BGRA (h, w, 4) or grayscale (h, w)

    Returns:
        SourceFrame with an opaque RGBA buffer

    Raises:
        ValueError: If the array has an unsupported shape
    """
    if cv2_image.ndim == 2:
        rgba = cv2.cvtColor(cv2_image, cv2.COLOR_GRAY2RGBA)
    elif cv2_image.ndim == 3 and cv2_image.shape[2] == 3:
        rgba = cv2.cvtColor(cv2_image, cv2.COLOR_BGR2RGBA)
    elif cv2_image.ndim == 3 and cv2_image.shape[2] == 4:
        # Premultiply onto black: rgb * alpha / 255
        rgba = cv2.cvtColor(cv2_image, cv2.COLOR_BGRA2RGBA)
        alpha = rgba[:, :, 3:4].astype(np.float32) / 255.0
        rgba[:, :, :3] = np.round(rgba[:, :, :3] * alpha).astype(np.uint8)
        rgba[:, :, 3] = 255
    else:
        raise ValueError(f"Unsupported image shape: {cv2_image.shape}")

    height, width = rgba.shape[:2]
    return SourceFrame(width=width, height=height, pixels=rgba)


# ============================================================================
# OutputSurface → Display / Encoder
# ============================================================================

def surface_to_pil(surface: OutputSurface) -> Image.Image:
    """
    Convert an OutputSurface to an RGB PIL Image.

    The surface is always opaque, so the alpha channel is dropped.
    """
    return Image.fromarray(np.ascontiguousarray(surface.pixels[:, :, :3]))


def surface_to_cv2(surface: OutputSurface) -> np.ndarray:
    """
    Convert an OutputSurface to a BGR array for cv2.VideoWriter / cv2.imshow.

    Pure function - returns a new array.
    """
    return cv2.cvtColor(surface.pixels, cv2.COLOR_RGBA2BGR)
