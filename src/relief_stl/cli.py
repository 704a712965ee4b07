"""
Command-Line Interface for relief-stl

Usage:
    relief2stl input.png -o output.stl
    relief2stl input.png --width 100 --height 80 --thickness 4 -o relief
    relief2stl input.png --strategy voxel --ascii -o relief.stl

"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from . import __version__
from .config import DEFAULT_THICKNESS, ExportSettings
from .generator import ReliefGenerator
from .logging_config import setup_logging
from .meshing import MeshStrategy
from .voxelizer import DEFAULT_DEPTH_RESOLUTION


def parse_size(value: str) -> Tuple[int, int]:
    """Parse a WIDTHxHEIGHT pixel size."""
    try:
        width, height = (int(part) for part in value.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected WIDTHxHEIGHT, got {value!r}")
    if width < 1 or height < 1:
        raise argparse.ArgumentTypeError(f"Size must be positive, got {value!r}")
    return (width, height)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="relief2stl",
        description="relief-stl - Convert a 2D image to a printable 3D relief (STL)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  relief2stl photo.png -o relief.stl
      Black = highest, one unit per pixel, 255 units thick box

  relief2stl photo.png --width 120 --height 90 --thickness 3 --scale 50
      Half-size 60 x 45 x 1.5 model

  relief2stl logo.png --invert-heights --flip-left-right -o logo
      White = highest, no mirroring, writes logo.stl

Strategies:
  height_field - Smooth ruled tops, flat bottom, walls (default)
  voxel        - Stacked boxes with hidden faces culled
        """
    )

    parser.add_argument(
        "input",
        help="Input image file (PNG, JPEG, ...)"
    )

    parser.add_argument(
        "-o", "--output",
        help="Output STL path (.stl is appended if missing; default: input name)"
    )

    # Dimensions
    parser.add_argument(
        "--width",
        type=float,
        help="Model width (default: image width in pixels)"
    )

    parser.add_argument(
        "--height",
        type=float,
        help="Model height along image rows (default: image height in pixels)"
    )

    parser.add_argument(
        "--thickness",
        type=float,
        default=DEFAULT_THICKNESS,
        help=f"Model thickness (default: {DEFAULT_THICKNESS:g})"
    )

    parser.add_argument(
        "--scale",
        type=float,
        default=100.0,
        help="Scale percentage applied to all dimensions, 1-300 (default: 100)"
    )

    # Height mapping
    parser.add_argument(
        "--invert-heights",
        action="store_true",
        help="White = highest (default: black = highest)"
    )

    parser.add_argument(
        "--flip-left-right",
        action="store_true",
        help="Keep image orientation (default: mirrored for printing)"
    )

    parser.add_argument(
        "--depth-resolution",
        type=int,
        default=DEFAULT_DEPTH_RESOLUTION,
        help=f"Number of brightness layers (default: {DEFAULT_DEPTH_RESOLUTION})"
    )

    # Meshing and output
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in MeshStrategy],
        default=MeshStrategy.HEIGHT_FIELD.value,
        help="Meshing strategy (default: height_field)"
    )

    parser.add_argument(
        "--ascii",
        action="store_true",
        help="Write ASCII STL instead of binary"
    )

    # Preprocessing
    parser.add_argument(
        "--resize",
        type=parse_size,
        metavar="WxH",
        help="Resize the image to WIDTHxHEIGHT pixels first"
    )

    parser.add_argument(
        "--monochrome",
        action="store_true",
        help="Convert the image to grey first"
    )

    parser.add_argument(
        "--posterize",
        action="store_true",
        help="Posterize the image to 4 levels per channel first"
    )

    # Misc
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output with timing"
    )

    parser.add_argument(
        "--log-file",
        help="Also write log output to this file"
    )

    parser.add_argument(
        "--stats",
        action="store_true",
        help="Print mesh statistics"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def print_stats(stats: dict):
    print("\nMesh Statistics:")
    print(f"  Voxels: {stats['voxel_count']}")
    print(f"  Grid size: {stats['grid_size']}")
    print(f"  Voxel size: {stats['voxel_size']:.4f}")
    print(f"  Triangles: {stats['triangle_count']}")
    size = stats["size"]
    print(f"  Model size: {size[0]:.2f} x {size[1]:.2f} x {size[2]:.2f}")
    print(f"  Watertight: {'yes' if stats['watertight'] else 'no'}")


def process_single(args) -> int:
    """Process a single image file."""
    input_path = Path(args.input)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}", file=sys.stderr)
        return 1

    output_path = Path(args.output) if args.output else input_path.with_suffix(".stl")

    try:
        generator = ReliefGenerator()
        generator.load_image(input_path)
        generator.preprocess(
            posterize=args.posterize,
            monochrome=args.monochrome,
            resize=args.resize
        )

        width, height = generator.image.shape[1], generator.image.shape[0]
        generator.settings = ExportSettings(
            width=args.width if args.width is not None else float(width),
            height=args.height if args.height is not None else float(height),
            thickness=args.thickness,
            scale_percent=args.scale,
            invert_heights=args.invert_heights,
            flip_left_right=args.flip_left_right,
            depth_resolution=args.depth_resolution,
            strategy=args.strategy,
            binary=not args.ascii
        )

        if args.verbose:
            w, h, t = generator.settings.final_dimensions
            print(f"Loading: {input_path} ({width} x {height} pixels)")
            print(f"Final dimensions: {w:.2f} x {h:.2f} x {t:.2f}")
            print(f"Height mapping: {'White' if args.invert_heights else 'Black'} = Highest")

        result = generator.run(output_path)

        if args.stats or args.verbose:
            print_stats(generator.get_mesh_stats())

        print(f"Exported: {result.path} ({result.triangle_count} triangles)")
        if args.verbose:
            print(f"\nCompleted in {result.elapsed:.2f}s")

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        log_file=args.log_file
    )

    return process_single(args)


if __name__ == "__main__":
    sys.exit(main())
