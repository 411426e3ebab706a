import pandas as pd
import pytest

from psm_mappers.cli import main
from psm_mappers.readers import get_reader, get_reader_class
from psm_mappers.readers.direc_tag import DirecTagReader
from psm_mappers.readers.mzidentml import MzIdentMLReader
from psm_mappers.readers.tide import TideReader


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    monkeypatch.delenv("PSM_MAPPERS_CONFIG", raising=False)
    monkeypatch.delenv("SPECTRA_DIR", raising=False)


@pytest.mark.parametrize(
    "file_name, reader_class",
    [
        ("run.tide-search.target.txt", TideReader),
        ("RUN.MZID", MzIdentMLReader),
        ("/data/run.tags", DirecTagReader),
    ],
)
def test_reader_by_extension(file_name, reader_class):
    assert get_reader_class(file_name) is reader_class


def test_unknown_extension():
    with pytest.raises(ValueError):
        get_reader("run.pepXML")


def test_main(tide_file, make_tide_row, tmp_path, capsys):
    path = tide_file([
        make_tide_row(10, "TAM[15.9949]AGK", rank=1),
        make_tide_row(10, "PEPTIDE", rank=2),
        make_tide_row(11, "PEPBIDE", rank=1),
    ])
    output_path = tmp_path / "outputs.csv"
    assert main(["--input", path, "--output", str(output_path), "--expand_ambiguous"]) == 0

    output_data = pd.read_csv(output_path)
    assert len(output_data) == 4
    assert list(output_data["spectrum_id"]) == ["run.mgf:10", "run.mgf:10", "run.mgf:11", "run.mgf:11"]
    assert list(output_data["sequence"][:2]) == ["TAM[+15.9949]AGK", "PEPTIDE"]
    assert list(output_data["is_primary"]) == [True, True, True, False]
    assert "2 spectrum matches" in capsys.readouterr().out


def test_main_with_config(tide_file, make_tide_row, tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "search:\n"
        "  fixed_modifications:\n"
        "    - mass_delta: 57.021464\n"
        "      residues: C\n"
    )
    monkeypatch.setenv("PSM_MAPPERS_CONFIG", str(config_path))
    path = tide_file([make_tide_row(10, "TAC[57.0215]GK")])
    output_path = tmp_path / "outputs.csv"
    main(["--input", path, "--output", str(output_path)])

    output_data = pd.read_csv(output_path)
    assert list(output_data["sequence"]) == ["TAC[+57.0215]GK"]
