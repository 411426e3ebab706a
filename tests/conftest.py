import pytest

from psm_mappers.advocates import advocate
from psm_mappers.matches import Charge, ModificationMatch, Peptide, PeptideAssumption

TIDE_HEADER = "\t".join([
    "file",
    "scan",
    "charge",
    "spectrum precursor m/z",
    "xcorr score",
    "xcorr rank",
    "sequence",
    "protein id",
])


def write_lines(path, lines):
    """Write `lines` to `path` and return the path as string.

    Parameters
    ----------
    path : pathlib.Path
        Path of the file to write.
    lines : list of str
        Lines of the file, without line terminators.

    Returns
    -------
    path : str
        Path of the written file.
    """
    path.write_text("\n".join(lines) + "\n")
    return str(path)


def tide_row(scan, sequence, xcorr=3.0, rank=1, charge=2, protein="sp|P1|PROT_HUMAN"):
    return "\t".join(["run.mgf", str(scan), str(charge), "500.25", str(xcorr), str(rank), sequence, protein])


@pytest.fixture
def tide_file(tmp_path):
    def make(rows, header=TIDE_HEADER, name="run.tide-search.target.txt"):
        return write_lines(tmp_path / name, [header] + rows)
    return make


@pytest.fixture
def peptide_assumption():
    def make(sequence="PEPTIDE", rank=1, modification_matches=None, e_value=0.01):
        return PeptideAssumption(
            Peptide(sequence, modification_matches or []),
            rank,
            advocate("tide"),
            Charge(2),
            e_value,
        )
    return make


@pytest.fixture
def oxidation():
    return ModificationMatch("15.9949@M", 3)


@pytest.fixture
def write_file(tmp_path):
    def write(name, lines):
        return write_lines(tmp_path / name, lines)
    return write


@pytest.fixture
def make_tide_row():
    return tide_row
