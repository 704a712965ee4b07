#!/usr/bin/env python3
"""
relief-stl Demo Script

This script demonstrates the full image-to-STL pipeline by:
1. Creating synthetic greyscale test images (no external images needed)
2. Voxelizing and meshing with both strategies
3. Exporting binary and ASCII STL
4. Printing statistics and comparisons

Run with: python examples/demo.py
"""

import sys
from pathlib import Path
import numpy as np
import time

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from relief_stl import ExportSettings, ReliefGenerator
from relief_stl.meshing import HeightFieldMesher, VoxelMesher, is_watertight
from relief_stl.voxelizer import OccupancyGrid


def to_rgb(grey: np.ndarray) -> np.ndarray:
    grey = np.clip(grey, 0, 255).astype(np.uint8)
    return np.stack([grey, grey, grey], axis=-1)


def create_test_image_dome(size: int = 32) -> np.ndarray:
    """
    Create a dark-centred radial gradient (a dome once printed).

    Returns:
        RGB array of shape (size, size, 3)
    """
    y, x = np.mgrid[0:size, 0:size]
    center = (size - 1) / 2
    dist = np.sqrt((x - center) ** 2 + (y - center) ** 2) / center
    return to_rgb(dist * 255)


def create_test_image_ramp(width: int = 48, height: int = 16) -> np.ndarray:
    """
    Create a horizontal ramp from black to white.

    Returns:
        RGB array of shape (height, width, 3)
    """
    ramp = np.linspace(0, 255, width)
    return to_rgb(np.tile(ramp, (height, 1)))


def create_test_image_steps(size: int = 32) -> np.ndarray:
    """
    Create four flat terraces, useful for comparing the strategies.

    Returns:
        RGB array of shape (size, size, 3)
    """
    grey = np.zeros((size, size))
    quarter = size // 4
    for i in range(4):
        grey[:, i * quarter:(i + 1) * quarter] = i * 80
    return to_rgb(grey)


def run_demo():
    """Run the demonstration."""
    print("=" * 60)
    print("relief-stl - Demo")
    print("=" * 60)
    print()

    # Create output directory
    output_dir = Path(__file__).parent / "output"
    output_dir.mkdir(exist_ok=True)

    test_images = [
        ("dome", create_test_image_dome(32)),
        ("ramp", create_test_image_ramp(48, 16)),
        ("steps", create_test_image_steps(32)),
    ]

    total_start = time.time()

    for name, image in test_images:
        print(f"\n--- Processing: {name} ---")
        print(f"Input size: {image.shape[1]}x{image.shape[0]} pixels")

        image_start = time.time()

        settings = ExportSettings(
            width=float(image.shape[1]),
            height=float(image.shape[0]),
            thickness=8.0
        )
        generator = ReliefGenerator(settings)
        generator.load_array(image)

        vox_start = time.time()
        generator.voxelize()
        vox_time = time.time() - vox_start
        print(f"  Voxelization: {vox_time*1000:.1f}ms")
        print(f"  Voxel count: {generator.voxel_count}")
        print(f"  Voxel size: {generator.voxel_size:.4f}")

        print("\nTesting strategies:")

        for strategy in ["height_field", "voxel"]:
            mesh_start = time.time()
            generator.generate_mesh(strategy)
            mesh_time = time.time() - mesh_start

            stats = generator.get_mesh_stats()
            print(f"  {strategy}:")
            print(f"    Mesh generation: {mesh_time*1000:.1f}ms")
            print(f"    Triangles: {stats['triangle_count']}")
            print(f"    Watertight: {stats['watertight']}")

            path = generator.export_stl(output_dir / f"{name}_{strategy}")
            print(f"    Saved: {path}")

        ascii_path = generator.export_stl(output_dir / f"{name}_ascii.stl", binary=False)
        print(f"  Saved ASCII: {ascii_path}")

        image_time = time.time() - image_start
        print(f"  Total time: {image_time*1000:.1f}ms")

    total_time = time.time() - total_start

    print("\n" + "=" * 60)
    print(f"Demo complete! Total time: {total_time:.2f}s")
    print(f"Output files in: {output_dir}")
    print("=" * 60)

    return 0


def benchmark_meshing():
    """Benchmark both meshing strategies on solid blocks."""
    print("\n--- Meshing Benchmark ---\n")

    sizes = [16, 32, 64, 128]

    for size in sizes:
        grid = OccupancyGrid(size, size, 64)
        grid.data[:, :, :32] = True

        height_field = HeightFieldMesher(voxel_size=1.0)
        start = time.time()
        hf_mesh = height_field.mesh_from_grid(grid)
        hf_time = time.time() - start

        voxel = VoxelMesher(voxel_size=1.0)
        start = time.time()
        vox_mesh = voxel.mesh_from_grid(grid)
        vox_time = time.time() - start

        print(f"Grid size: {size}x{size}x64")
        print(f"  Height field: {hf_time*1000:.1f}ms, {hf_mesh.triangle_count} tris, "
              f"closed={is_watertight(hf_mesh)}")
        print(f"  Voxel:        {vox_time*1000:.1f}ms, {vox_mesh.triangle_count} tris, "
              f"closed={is_watertight(vox_mesh)}")
        print()


if __name__ == "__main__":
    run_demo()

    # Uncomment to run benchmark
    # benchmark_meshing()
