"""
Halftone Data Types - Shared Contract

Defines the data contract between frame sources, the halftone core and
whatever displays or encodes the result. Decoders only need to produce a
SourceFrame; displays only need to read an OutputSurface.

Type Hierarchy:
    SourceFrame (input) → sampled into Cells → painted onto OutputSurface
    HalftoneConfig → immutable parameter set passed by value into render()
"""

import string
from dataclasses import dataclass
from typing import Tuple, Dict, Any, Optional
import numpy as np  # type: ignore


RGBColor = Tuple[int, int, int]

# Valid parameter ranges (inclusive)
GRID_SIZE_RANGE: Tuple[int, int] = (5, 20)
DOT_SCALE_RANGE: Tuple[float, float] = (0.1, 2.0)
GRADIENT_ANGLE_RANGE: Tuple[int, int] = (0, 360)

BACKGROUND_COLOR: Tuple[int, int, int, int] = (0, 0, 0, 255)  # Opaque black

HEX_DIGITS = frozenset(string.hexdigits)


# ============================================================================
# Errors
# ============================================================================

class InvalidFrameDimensions(ValueError):
    """Raised when a frame has zero or negative width/height.

    Typically a frame requested before media metadata has loaded, or a
    decoded image with no pixels. Render aborts before touching the
    destination surface.
    """

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        super().__init__(f"Invalid frame dimensions: {width}x{height}")


class InvalidColorError(ValueError):
    """Raised when a color is not a well-formed 24-bit RGB value"""


# ============================================================================
# Frame Types
# ============================================================================

@dataclass(frozen=True)
class SourceFrame:
    """Decoded image or video frame - renderer input

    The frame is treated as already composited: alpha is carried along but
    never read by the sampler.

    Attributes:
        width: Frame width in pixels
        height: Frame height in pixels
        pixels: RGBA uint8 array, shape (height, width, 4), row-major
    """
    width: int
    height: int
    pixels: np.ndarray


@dataclass(frozen=True)
class Cell:
    """One grid cell turned into a drawing command

    Created and discarded within a single render pass.

    Attributes:
        x: Left edge of the cell (multiple of grid_size)
        y: Top edge of the cell (multiple of grid_size)
        luminance: Mean luma of the in-bounds cell pixels (0.0-1.0)
        radius: Dot radius in pixels (0.0 = nothing painted)
        color: RGB fill color
        grid_size: Cell edge length used to place the dot center
    """
    x: int
    y: int
    luminance: float
    radius: float
    color: RGBColor
    grid_size: int

    @property
    def center(self) -> Tuple[float, float]:
        """Dot center, always half a full cell from the top-left corner

        Partial edge cells still use the full grid_size offset, so their dots
        may extend past the frame and get clipped.
        """
        return (self.x + self.grid_size / 2, self.y + self.grid_size / 2)


class OutputSurface:
    """Caller-owned destination pixel buffer

    The renderer resizes it to the source dimensions, clears it and paints
    into it. Nothing else in the core keeps a reference between calls.
    """

    def __init__(self, width: int = 0, height: int = 0):
        self.pixels = np.zeros((max(height, 0), max(width, 0), 4), dtype=np.uint8)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    def reset(self, width: int, height: int,
              fill_color: Tuple[int, int, int, int] = BACKGROUND_COLOR) -> None:
        """Resize to (width, height) if needed and fill with a solid color"""
        if self.pixels.shape != (height, width, 4):
            self.pixels = np.empty((height, width, 4), dtype=np.uint8)
        self.pixels[:] = fill_color

    def copy_pixels(self) -> np.ndarray:
        """Snapshot of the current contents"""
        return self.pixels.copy()


def source_frame_from_bytes(width: int, height: int, data: bytes) -> SourceFrame:
    """Build a SourceFrame from a flat RGBA byte buffer

    Args:
        width: Frame width in pixels
        height: Frame height in pixels
        data: Row-major RGBA bytes, length width * height * 4

    Returns:
        SourceFrame wrapping a (height, width, 4) view of the data

    Raises:
        ValueError: If the buffer length does not match the dimensions
    """
    expected = max(width, 0) * max(height, 0) * 4
    if len(data) != expected:
        raise ValueError(
            f"RGBA buffer has {len(data)} bytes, expected {expected} for {width}x{height}"
        )
    pixels = np.frombuffer(data, dtype=np.uint8).reshape((max(height, 0), max(width, 0), 4))
    return SourceFrame(width=width, height=height, pixels=pixels)


# ============================================================================
# Configuration
# ============================================================================

@dataclass(frozen=True)
class HalftoneConfig:
    """Halftone parameters, immutable per render call

    Attributes:
        grid_size: Cell edge length in source pixels (5-20)
        dot_scale: Multiplier on the computed dot radius (0.1-2.0)
        use_gradient: Gradient fill instead of flat start_color
        start_color: Flat fill color, or gradient start (RGB)
        end_color: Gradient end color (RGB)
        gradient_angle: Gradient axis in degrees (0-360), 0 = along +x
    """
    grid_size: int = 10
    dot_scale: float = 1.0
    use_gradient: bool = False
    start_color: RGBColor = (255, 255, 255)
    end_color: RGBColor = (0, 0, 0)
    gradient_angle: int = 0


DEFAULT_CONFIG = HalftoneConfig()


# ============================================================================
# Color Conversion
# ============================================================================

def parse_hex_color(value: str) -> RGBColor:
    """Parse a hex color string into an RGB tuple

    Accepts '#rrggbb', 'rrggbb' and the short '#rgb' form.

    Args:
        value: Hex color string

    Returns:
        (r, g, b) tuple, 0-255 per channel

    Raises:
        InvalidColorError: If the string is not a valid 24-bit hex color

    Examples:
        >>> parse_hex_color('#ff8000')
        (255, 128, 0)
        >>> parse_hex_color('#fff')
        (255, 255, 255)
    """
    if not isinstance(value, str):
        raise InvalidColorError(f"Color must be a hex string, got {value!r}")

    digits = value.strip()
    if digits.startswith('#'):
        digits = digits[1:]
    if len(digits) == 3:
        digits = ''.join(c * 2 for c in digits)
    if len(digits) != 6 or any(c not in HEX_DIGITS for c in digits):
        raise InvalidColorError(f"Invalid hex color: {value!r}")

    return tuple(int(digits[i:i + 2], 16) for i in (0, 2, 4))


def format_hex_color(color: RGBColor) -> str:
    """Format an RGB tuple as '#rrggbb'"""
    validate_color(color)
    return '#{:02x}{:02x}{:02x}'.format(*color)


def coerce_color(value: Any) -> RGBColor:
    """Accept a hex string or an RGB sequence and return a validated tuple"""
    if isinstance(value, str):
        return parse_hex_color(value)
    try:
        color = tuple(value)
    except TypeError:
        raise InvalidColorError(f"Color must be a hex string or RGB triple, got {value!r}")
    validate_color(color)
    return color


# ============================================================================
# Validation Functions
# ============================================================================

def validate_color(color: Any) -> bool:
    """Validate an RGB color tuple

    Returns:
        True if valid, raises InvalidColorError if invalid
    """
    if not isinstance(color, tuple) or len(color) != 3:
        raise InvalidColorError(f"Color must be RGB tuple, got {color!r}")

    for channel in color:
        # bool is an int subclass but never a color channel
        if isinstance(channel, bool) or not isinstance(channel, (int, np.integer)):
            raise InvalidColorError(f"Color channels must be integers, got {color!r}")
        if not (0 <= channel <= 255):
            raise InvalidColorError(f"Color values must be in range [0, 255], got {color!r}")

    return True


def _require_number(name: str, value: Any) -> None:
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise ValueError(f"{name} must be a number, got {value!r}")


def validate_halftone_config(config: HalftoneConfig) -> bool:
    """Validate HalftoneConfig fields are within their documented ranges

    Args:
        config: HalftoneConfig to validate

    Returns:
        True if valid, raises ValueError if invalid
    """
    lo, hi = GRID_SIZE_RANGE
    if isinstance(config.grid_size, bool) or not isinstance(config.grid_size, (int, np.integer)):
        raise ValueError(f"Grid size must be an integer, got {config.grid_size!r}")
    if not (lo <= config.grid_size <= hi):
        raise ValueError(f"Grid size {config.grid_size} out of range [{lo}, {hi}]")

    _require_number('Dot scale', config.dot_scale)
    lo, hi = DOT_SCALE_RANGE
    if not (lo <= config.dot_scale <= hi):
        raise ValueError(f"Dot scale {config.dot_scale} out of range [{lo}, {hi}]")

    if not isinstance(config.use_gradient, (bool, np.bool_)):
        raise ValueError(f"use_gradient must be a bool, got {config.use_gradient!r}")

    validate_color(config.start_color)
    validate_color(config.end_color)

    _require_number('Gradient angle', config.gradient_angle)
    lo, hi = GRADIENT_ANGLE_RANGE
    if not (lo <= config.gradient_angle <= hi):
        raise ValueError(f"Gradient angle {config.gradient_angle} out of range [{lo}, {hi}]")

    return True


# ============================================================================
# Conversion Functions
# ============================================================================

def config_to_dict(config: HalftoneConfig) -> Dict[str, Any]:
    """Convert HalftoneConfig to a plain dictionary (colors as hex strings)

    Matches the layout of the YAML config file.
    """
    return {
        'grid_size': config.grid_size,
        'dot_scale': config.dot_scale,
        'use_gradient': config.use_gradient,
        'start_color': format_hex_color(config.start_color),
        'end_color': format_hex_color(config.end_color),
        'gradient_angle': config.gradient_angle,
    }


def dict_to_config(data: Dict[str, Any], base: Optional[HalftoneConfig] = None) -> HalftoneConfig:
    """Convert dictionary to HalftoneConfig

    Missing keys fall back to `base` (DEFAULT_CONFIG if not given). Colors may
    be hex strings or RGB triples. Unknown keys are rejected so that typos in
    config files don't go unnoticed.

    Args:
        data: Dictionary with config fields
        base: Config supplying values for missing keys

    Returns:
        Validated HalftoneConfig

    Raises:
        ValueError: On unknown keys or out-of-range values
    """
    if base is None:
        base = DEFAULT_CONFIG

    known = set(config_to_dict(base))
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    config = HalftoneConfig(
        grid_size=data.get('grid_size', base.grid_size),
        dot_scale=float(data.get('dot_scale', base.dot_scale)),
        use_gradient=data.get('use_gradient', base.use_gradient),
        start_color=coerce_color(data.get('start_color', base.start_color)),
        end_color=coerce_color(data.get('end_color', base.end_color)),
        gradient_angle=data.get('gradient_angle', base.gradient_angle)
    )
    validate_halftone_config(config)
    return config
