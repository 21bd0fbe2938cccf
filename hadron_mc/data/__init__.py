"""Data module: Fate fractions and angular distributions."""

from hadron_mc.data.hadro_data import FateTable, ScatteringChannel, TabulatedHadronData

__all__ = ["FateTable", "ScatteringChannel", "TabulatedHadronData"]
