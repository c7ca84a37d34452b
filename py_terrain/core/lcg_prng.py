"""
Seeded linear-congruential generator.

Used by the ``random`` generation algorithm so that an explicit seed
reproduces the same grid across runs. The gradient-noise algorithms do
not draw from it.
"""

import random

_MODULUS = 0x80000000  # 2^31
_MULTIPLIER = 1103515245
_INCREMENT = 12345


class LcgPRNG:
    """
    Minimal LCG returning floats in [0, 1].

    A falsy seed (None or 0) starts from a state drawn from the
    process-global random source.
    """

    def __init__(self, seed=None):
        self.call_count = 0
        if seed:
            self.state = int(seed) % _MODULUS
        else:
            self.state = random.randrange(1, _MODULUS - 1)

    def random(self) -> float:
        """Advance the state and return it scaled into [0, 1]."""
        self.call_count += 1
        self.state = (_MULTIPLIER * self.state + _INCREMENT) % _MODULUS
        return self.state / (_MODULUS - 1)
