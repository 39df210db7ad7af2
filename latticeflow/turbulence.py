"""Synthetic turbulence built from a sum of random Fourier modes."""

from __future__ import annotations

import enum
import logging
import math
import random
from dataclasses import dataclass, field

import numpy as np

log = logging.getLogger(__name__)

#: Number of values stored per mode: wave vector, sine vector, wave number.
MODE_DATA = 7
WAVE = slice(0, 3)
SINE = slice(3, 6)
WAVE_L = 6

_VON_KARMAN_C = 1.453


class Spectrum(enum.Enum):
    """Energy spectrum used to choose mode amplitudes."""

    NONE = "none"
    VON_KARMAN = "von_karman"


class Spread(enum.Enum):
    """How mode wave numbers are spread over the spectrum."""

    EVEN = "even"
    LOG = "log"
    QUANTILE = "quantile"


def _empty_data() -> np.ndarray:
    return np.zeros((0, MODE_DATA))


@dataclass
class WaveSet:
    """Mode data: one row per mode of ``MODE_DATA`` values."""

    data: np.ndarray = field(default_factory=_empty_data)
    time_wn: float = 0.0

    @property
    def nmodes(self) -> int:
        return int(self.data.shape[0])


def random_normal(n: int, rng: random.Random | None = None) -> list[float]:
    """Draw ``n`` normally distributed numbers by the Box-Muller method."""
    if rng is None:
        rng = random.Random()
    out: list[float] = []
    while len(out) < n:
        angle = rng.random() * math.atan(1.0) * 8
        radius = math.sqrt(-math.log(1.0 - rng.random()))
        out.append(math.cos(angle) * radius)
        if len(out) < n:
            out.append(math.sin(angle) * radius)
    return out


def velocity(wave_set: WaveSet, x: float, y: float, z: float) -> tuple[float, float, float]:
    """Velocity perturbation of the wave set at point (x, y, z)."""
    if wave_set.nmodes == 0:
        return (0.0, 0.0, 0.0)
    data = wave_set.data
    k = data[:, WAVE]
    a = data[:, SINE]
    w = (k @ np.array([x, y, z], dtype=float)) * data[:, WAVE_L]
    ret = np.sin(w)[:, None] * a + np.cos(w)[:, None] * np.cross(k, a)
    total = ret.sum(axis=0)
    return (float(total[0]), float(total[1]), float(total[2]))


class SyntheticTurbulence:
    """A set of random modes with prescribed amplitudes and wave numbers."""

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng if rng is not None else random.Random()
        self.size = 0
        self.amplitudes = np.zeros(0)
        self.wave_lengths = np.zeros(0)
        self.time_wn = 0.0
        self.spread = Spread.EVEN
        self.spectrum = Spectrum.NONE
        self._main_wn = 0.0
        self._diffusion_wn = 0.0
        self._data = _empty_data()

    def resize(self, n: int) -> None:
        """Set the number of modes, discarding the current ones if it changes."""
        if n < 0:
            raise ValueError("number of modes must be non-negative")
        if n != self.size:
            self.size = n
            self.amplitudes = np.zeros(n)
            self.wave_lengths = np.zeros(n)
            self._data = np.zeros((n, MODE_DATA))

    def generate(self) -> None:
        """Draw random directions for every mode."""
        for j in range(self.size):
            tab = np.array(random_normal(6, self.rng))
            k = tab[:3] / math.sqrt(float(tab[:3] @ tab[:3]))
            a = tab[3:] - k * float(k @ tab[3:])
            a *= self.amplitudes[j] / math.sqrt(float(a @ a))
            self._data[j, WAVE] = k
            self._data[j, SINE] = a
            self._data[j, WAVE_L] = self.wave_lengths[j]

    def energy_spectrum(self, w: float) -> float:
        """Energy density at wave number ``w`` of the selected spectrum (0 if none)."""
        if self.spectrum is not Spectrum.VON_KARMAN:
            return 0.0
        le = self._main_wn
        ld = self._diffusion_wn
        return (
            _VON_KARMAN_C / le * (w / le) ** 4.0
            / (1.0 + (w / le) ** 2.0) ** (17.0 / 6.0)
            * math.exp(-2.0 * (w / ld) ** 2.0)
        )

    def set_von_karman(self, le: float, ld: float, lmin: float, lmax: float) -> float:
        """Fill the modes with a von Karman spectrum; returns the energy fraction."""
        if self.size == 0:
            raise ValueError("no modes to fill; resize first")
        self.spectrum = Spectrum.VON_KARMAN
        self._main_wn = le
        self._diffusion_wn = ld
        dl = (lmax - lmin) / self.size
        for i in range(self.size):
            wl = i * dl + dl / 2 + lmin
            self.wave_lengths[i] = wl
            self.amplitudes[i] = math.sqrt(self.energy_spectrum(wl) * dl)
        total = float(np.sum(self.amplitudes ** 2))
        log.info("Total energy of synthetic turbulence: %2.0f%% of spectrum", total * 100)
        if total < 0.7:
            log.warning("Total energy of synthetic turbulence is below 70% of the spectrum")
        elif total < 0.8:
            log.info("Total energy of synthetic turbulence is below 80% of the spectrum")
        elif total > 1:
            log.warning("Total energy of synthetic turbulence is above 100% of the spectrum")
        self.generate()
        return total

    def set_one_wave(self, wave_number: float) -> None:
        """Use a single mode of unit amplitude."""
        self.resize(1)
        self.amplitudes[0] = 1.0
        self.wave_lengths[0] = wave_number
        self.generate()

    def set_time_scale(self, value: float) -> None:
        self.time_wn = value

    def set_spread(self, spread: Spread) -> None:
        self.spread = Spread(spread)

    def wave_set(self) -> WaveSet:
        """A copy of the current modes."""
        return WaveSet(self._data.copy(), self.time_wn)