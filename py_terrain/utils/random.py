"""
Random source utilities.

This module owns the process-global noise context shared by every
heightmap generated in this process, and hands out seeded LCG
instances for the seed-driven generation paths.
"""

from typing import Optional

from ..core.lcg_prng import LcgPRNG
from ..core.noise import NoiseContext

# Global noise context, built on first use
_noise_context = None


def set_noise_seed(seed: Optional[int]) -> None:
    """
    Rebuild the global noise context.

    With a seed the permutation table becomes reproducible across
    processes; with None it is reshuffled from the global random source.

    Args:
        seed: Seed for the permutation shuffle, or None
    """
    global _noise_context

    _noise_context = NoiseContext(seed)


def get_noise_context() -> NoiseContext:
    """
    Get the process-global noise context.

    Returns:
        NoiseContext instance
    """
    global _noise_context
    if _noise_context is None:
        _noise_context = NoiseContext()
    return _noise_context


def get_prng(seed: Optional[int] = None) -> LcgPRNG:
    """Create a seeded LCG for one generation run."""
    return LcgPRNG(seed)
