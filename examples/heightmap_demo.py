#!/usr/bin/env python3
"""
Demo script showing heightmap generation, editing and path planning.
"""

import numpy as np
import matplotlib.pyplot as plt
from py_terrain.core import (
    Algorithm, GenerationParams, HeightmapGenerator, HeightmapEditor,
    NoiseContext, analyze_terrain, find_path,
)
from py_terrain.config import get_preset, list_presets


def main():
    """Demonstrate heightmap generation."""
    print("Py-Terrain Heightmap Demo")
    print("=" * 40)

    width, height = 128, 128
    generator = HeightmapGenerator(NoiseContext(seed=12345))
    editor = HeightmapEditor(np.random.default_rng(12345))

    plt.figure(figsize=(16, 12))

    for i, algorithm in enumerate(Algorithm, 1):
        print(f"\nGenerating {algorithm.value} heightmap...")

        params = GenerationParams(
            width=width,
            height=height,
            algorithm=algorithm,
            seed=12345,
            frequency=0.5,
            min_height=-5,
            max_height=5,
            smoothing=2,
        )
        heightmap = generator.generate(params)
        stats = analyze_terrain(heightmap)

        print(f"  Range: {heightmap.min_height:.2f} .. {heightmap.max_height:.2f}")
        print(f"  Average height: {stats.average_height:.2f}")
        print(f"  Max slope: {np.degrees(stats.max_slope):.1f} deg")

        plt.subplot(2, 3, i)
        plt.imshow(heightmap.heights, cmap='terrain', vmin=-5, vmax=5)
        plt.colorbar(label='Height')
        plt.title(algorithm.value.capitalize())
        plt.xlabel('X')
        plt.ylabel('Z')

    # Sculpt a mountain onto the last terrain and route around it
    print("\nApplying 'mountain' preset...")
    heightmap = editor.apply_all(heightmap, get_preset("mountain", width / 2, height / 2))
    path = find_path(heightmap, (5, 5), (width - 6, height - 6), max_slope=np.radians(30))

    plt.subplot(2, 3, 6)
    plt.imshow(heightmap.heights, cmap='terrain')
    plt.colorbar(label='Height')
    if path:
        xs, zs = zip(*path)
        plt.plot(xs, zs, color='red', linewidth=1)
        print(f"  Path of {len(path)} cells found")
    else:
        print("  No path under 30 degrees")
    plt.title('Mountain preset with path')

    plt.tight_layout()
    plt.savefig('heightmap_examples.png', dpi=150)
    print("\nSaved visualization to heightmap_examples.png")

    print("\nAvailable brush presets:")
    for preset in list_presets():
        print(f"  - {preset}")


if __name__ == "__main__":
    main()
