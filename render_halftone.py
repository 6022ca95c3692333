#!/usr/bin/env python3
"""
Halftone Image & Video Renderer

Replaces every cell of a grid laid over the source with a dot whose radius
follows the cell's brightness. Dots are a flat color or a linear gradient.

Images produce an image, videos produce an mp4 with every frame rendered.

Usage:
    python render_halftone.py photo.jpg                       # photo_halftone.png
    python render_halftone.py clip.mp4 --grid-size 8          # clip_halftone.mp4
    python render_halftone.py photo.jpg --gradient --start-color '#ff0080' --end-color '#00c0ff'
    python render_halftone.py photo.jpg --config halftoneconfig.yaml
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from halftone_types import (
    HalftoneConfig,
    InvalidFrameDimensions,
    DEFAULT_CONFIG,
    GRID_SIZE_RANGE,
    DOT_SCALE_RANGE,
    GRADIENT_ANGLE_RANGE,
    dict_to_config
)
from halftone_shell import (
    is_image_file,
    is_video_file,
    load_config_file,
    render_image_file,
    render_video_file
)


def default_output_path(input_path: Path, is_video: bool) -> Path:
    """<input stem>_halftone.png next to images, .mp4 next to videos"""
    suffix = '.mp4' if is_video else '.png'
    return input_path.with_name(f"{input_path.stem}_halftone{suffix}")


def build_config(args: argparse.Namespace) -> HalftoneConfig:
    """Defaults, then the YAML file, then explicit command-line flags"""
    config = DEFAULT_CONFIG
    if args.config:
        config = load_config_file(args.config, base=config)

    overrides: Dict[str, Any] = {}
    if args.grid_size is not None:
        overrides['grid_size'] = args.grid_size
    if args.dot_scale is not None:
        overrides['dot_scale'] = args.dot_scale
    if args.gradient:
        overrides['use_gradient'] = True
    if args.start_color is not None:
        overrides['start_color'] = args.start_color
    if args.end_color is not None:
        overrides['end_color'] = args.end_color
    if args.gradient_angle is not None:
        overrides['gradient_angle'] = args.gradient_angle

    return dict_to_config(overrides, base=config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Render images and videos as halftone dot patterns',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python render_halftone.py photo.jpg                   # Default settings
  python render_halftone.py clip.mp4 --preview          # Show live preview
  python render_halftone.py photo.jpg --dot-scale 1.5   # Bigger dots
  python render_halftone.py photo.jpg --gradient --gradient-angle 45
        """
    )
    parser.add_argument('input', help='Image or video file to render')
    parser.add_argument('-o', '--output', default=None,
                        help='Output file (default: <input>_halftone.png / .mp4)')
    parser.add_argument('--config', default=None,
                        help='YAML file with halftone settings')
    parser.add_argument('--grid-size', type=int, default=None,
                        help=f'Cell size in pixels (default: {DEFAULT_CONFIG.grid_size}, '
                             f'range: {GRID_SIZE_RANGE[0]}-{GRID_SIZE_RANGE[1]})')
    parser.add_argument('--dot-scale', type=float, default=None,
                        help=f'Dot radius multiplier (default: {DEFAULT_CONFIG.dot_scale}, '
                             f'range: {DOT_SCALE_RANGE[0]}-{DOT_SCALE_RANGE[1]})')
    parser.add_argument('--gradient', action='store_true',
                        help='Color dots with a linear gradient')
    parser.add_argument('--start-color', default=None,
                        help='Dot color, or gradient start color (default: #ffffff)')
    parser.add_argument('--end-color', default=None,
                        help='Gradient end color (default: #000000)')
    parser.add_argument('--gradient-angle', type=int, default=None,
                        help=f'Gradient direction in degrees (default: 0, '
                             f'range: {GRADIENT_ANGLE_RANGE[0]}-{GRADIENT_ANGLE_RANGE[1]})')
    parser.add_argument('--preview', action='store_true',
                        help='Show live preview while rendering video')
    parser.add_argument('--timing', action='store_true',
                        help='Print per-stage (decode, sample, paint, encode) timing summary for video')
    parser.add_argument('--quiet', action='store_true',
                        help='Only print errors')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    verbose = not args.quiet

    input_path = Path(args.input)
    if not input_path.exists():
        print(f"ERROR: Input file not found: {input_path}")
        return 1

    is_video = is_video_file(str(input_path))
    if not is_video and not is_image_file(str(input_path)):
        print(f"ERROR: Not an image or video file: {input_path}")
        return 1

    try:
        config = build_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1

    output_path = Path(args.output) if args.output else default_output_path(input_path, is_video)

    try:
        if is_video:
            render_video_file(
                str(input_path),
                str(output_path),
                config,
                preview=args.preview,
                verbose=verbose,
                enable_timing=args.timing
            )
        else:
            render_image_file(str(input_path), str(output_path), config, verbose=verbose)
    except InvalidFrameDimensions as e:
        print(f"ERROR: Loaded media has invalid dimensions ({e})")
        return 1
    except (IOError, RuntimeError) as e:
        print(f"ERROR: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
