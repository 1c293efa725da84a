from __future__ import annotations

import random
from dataclasses import dataclass, field

NUM_SIGNALS = 4

# green, red, yellow, blue (E4, C4, A3, E3-ish)
SIGNAL_FREQUENCIES_HZ: tuple[float, ...] = (329.63, 261.63, 220.0, 164.81)
ERROR_FREQUENCY_HZ = 110.0


def is_valid_signal(signal: int) -> bool:
    return 0 <= signal < NUM_SIGNALS


def frequency_for(signal: int) -> float:
    return SIGNAL_FREQUENCIES_HZ[signal % len(SIGNAL_FREQUENCIES_HZ)]


@dataclass(slots=True)
class Sequencer:
    """Uniform, memoryless source of signal ids.

    Repeats (including immediate repeats) are allowed. Pass a seeded `random.Random`
    to make a run reproducible.
    """

    rng: random.Random = field(default_factory=random.Random)

    def next_signal(self) -> int:
        return self.rng.randrange(NUM_SIGNALS)

    def extend(self, sequence: list[int]) -> int:
        # Appending is the only mutation a run ever applies to its sequence.
        signal = self.next_signal()
        sequence.append(signal)
        return signal
