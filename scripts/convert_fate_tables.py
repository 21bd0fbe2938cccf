"""
Convert ASCII hA fate tables to the HDF5 layout read by TabulatedHadronData.

Input directory layout:
    fractions_<probe>.dat           columns: KE [MeV], one column per fate
                                    (header line names the fates, e.g.
                                     "# ke CHARGE_EXCHANGE ELASTIC INELASTIC ...")
    angles_<probe>_<target>_<CHANNEL>.dat
                                    columns: KE [MeV], cos(theta), dsigma/dcos
                                    on a full (KE x cos) grid

Probe and target are particle names (pi+, pi-, pi0, proton, neutron, K+, K-).

Usage:
    python scripts/convert_fate_tables.py data/ha_ascii data/ha_tables.h5
"""

import numpy as np
from pathlib import Path
import time
import sys

from hadron_mc.core.particle import SPECIES
from hadron_mc.data.hadro_data import ScatteringChannel, TabulatedHadronData
from hadron_mc.physics.fates import Fate

PDG_BY_NAME = {spec.name: pdg for pdg, spec in SPECIES.items()}


def read_header(path: Path):
    with open(path, 'r') as f:
        first = f.readline()
    if not first.startswith('#'):
        raise ValueError(f"{path.name}: first line must name the columns")
    return first.lstrip('#').split()


def load_fractions(data: TabulatedHadronData, path: Path) -> int:
    probe = PDG_BY_NAME[path.stem.split('_', 1)[1]]
    columns = read_header(path)
    table = np.atleast_2d(np.loadtxt(path, comments='#'))
    ke = table[:, 0]
    for i, name in enumerate(columns[1:], start=1):
        data.set_fraction(probe, Fate.from_name(name), ke, table[:, i])
    return len(columns) - 1


def load_angles(data: TabulatedHadronData, path: Path):
    _, probe, target, channel = path.stem.split('_', 3)
    table = np.atleast_2d(np.loadtxt(path, comments='#'))
    ke = np.unique(table[:, 0])
    cos = np.unique(table[:, 1])
    if len(table) != len(ke) * len(cos):
        raise ValueError(f"{path.name}: angular table is not a full (KE x cos) grid")
    order = np.lexsort((table[:, 1], table[:, 0]))
    pdf = table[order, 2].reshape(len(ke), len(cos))
    data.set_angular_distribution(PDG_BY_NAME[probe], PDG_BY_NAME[target],
                                  ScatteringChannel[channel.upper()], ke, cos, pdf)


def convert_tables(input_dir, output_file):
    """Convert all fraction and angle files in input_dir to one HDF5 file."""
    input_path = Path(input_dir)
    if not input_path.exists():
        print(f"Error: {input_path} does not exist")
        return 1

    fraction_files = sorted(input_path.glob('fractions_*.dat'))
    angle_files = sorted(input_path.glob('angles_*.dat'))
    if not fraction_files:
        print(f"No fractions_*.dat files found in {input_path}")
        return 1

    print(f"Found {len(fraction_files)} fraction files, {len(angle_files)} angle files")
    print("Converting ASCII → HDF5...\n")

    data = TabulatedHadronData()
    for path in fraction_files:
        n = load_fractions(data, path)
        print(f"  ✓ {path.name}: {n} fates")
    for path in angle_files:
        load_angles(data, path)
        print(f"  ✓ {path.name}")

    data.to_hdf5(output_file)

    start = time.time()
    TabulatedHadronData.from_hdf5(output_file)
    elapsed = time.time() - start

    print("\n" + "=" * 60)
    print(f"Saved: {output_file}")
    print(f"HDF5 load time: {elapsed*1000:.1f}ms")
    return 0


if __name__ == "__main__":
    if len(sys.argv) != 3:
        print(__doc__)
        sys.exit(1)
    sys.exit(convert_tables(sys.argv[1], sys.argv[2]))
