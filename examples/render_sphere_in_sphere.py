#!/usr/bin/env python3
"""Render the sphere-in-sphere scene.

Two glass spheres, each holding a sphere of air, float in front of a
checkered wall. The image exercises every part of the shading model:
Phong highlights, shadows, mirror reflection, refraction and the Fresnel
split between them.

Usage:
    python -m examples.render_sphere_in_sphere [options]

Options:
    --width WIDTH           Image width in pixels (default: 400)
    --height HEIGHT         Image height in pixels (default: 400)
    --depth DEPTH           Bounce cap for reflection and refraction (default: 5)
    --rows-per-batch ROWS   Rows rendered per progress update (default: 16)
    --output OUTPUT         Output file path, .png or .ppm (default: sphere_in_sphere.png)
    --quiet                 Suppress progress output

Example:
    python -m examples.render_sphere_in_sphere --width 200 --height 200 --depth 8
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the sphere-in-sphere scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--width",
        type=int,
        default=400,
        help="Image width in pixels (default: 400)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=400,
        help="Image height in pixels (default: 400)",
    )
    parser.add_argument(
        "--depth",
        type=int,
        default=5,
        help="Bounce cap for reflection and refraction (default: 5)",
    )
    parser.add_argument(
        "--rows-per-batch",
        type=int,
        default=16,
        help="Rows rendered per progress update (default: 16)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="sphere_in_sphere.png",
        help="Output file path, .png or .ppm (default: sphere_in_sphere.png)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args()


def render_sphere_in_sphere(
    width: int = 400,
    height: int = 400,
    depth: int = 5,
    output_path: str = "sphere_in_sphere.png",
    rows_per_batch: int = 16,
    quiet: bool = False,
) -> Path:
    """Render the sphere-in-sphere scene and save it to a file.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.
        depth: Bounce cap for reflection and refraction.
        output_path: Output file path (.png or .ppm).
        rows_per_batch: Number of rows to render between progress updates.
        quiet: If True, suppress progress output.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.whitted.core.progressive import ProgressiveRenderer
    from src.whitted.scene.default_world import create_sphere_in_sphere_scene

    if not quiet:
        print(f"Creating sphere-in-sphere scene ({width}x{height})...")

    world, camera = create_sphere_in_sphere_scene(width, height)
    renderer = ProgressiveRenderer(camera, world, rows_per_batch=rows_per_batch, max_depth=depth)

    if not quiet:
        print(f"Rendering with bounce depth {depth}...")

    start_time = time.time()

    def progress_callback(current: int, total: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / total) * 100 if total > 0 else 0
            rows_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{total} rows "
                f"({progress_pct:.1f}%) - {rows_per_sec:.1f} rows/s",
                end="",
                flush=True,
            )

    renderer.render(progress_callback)

    if not quiet:
        print()  # Newline after progress

    output_file = Path(output_path)
    renderer.save_image(str(output_file))

    total_time = time.time() - start_time
    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {total_time:.2f}s")

    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(level=logging.WARNING if args.quiet else logging.INFO)

    # Double precision everywhere; the CPU backend supports it on every platform
    ti.init(arch=ti.cpu, default_fp=ti.f64)

    try:
        render_sphere_in_sphere(
            width=args.width,
            height=args.height,
            depth=args.depth,
            output_path=args.output,
            rows_per_batch=args.rows_per_batch,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
