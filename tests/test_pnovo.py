import pytest

from psm_mappers.advocates import advocate
from psm_mappers.config import ModificationCode, SearchConfig, SequenceMatchingConfig
from psm_mappers.exceptions import MalformedRecordError
from psm_mappers.progress import ProgressHandler
from psm_mappers.readers.pnovo import PNovoReader

PNOVO_LINES = [
    "S1\trun.1.1.2",
    "P1\tPEPTIDE\t20",
    "P2\tPEPTLDE\t10",
    "",
    "S2\trun.2.2.3",
    "P1\tTAMAGK\t30",
    "",
]

MODIFIED_LINES = [
    "S1\trun.3.3.2",
    "P1\tTAaAGK\t30\tT,A,a,A,G,K",
    "",
]


@pytest.fixture
def pnovo_file(write_file):
    def make(lines=PNOVO_LINES, name="run.pnovo.txt"):
        return write_file(name, lines)
    return make


def test_hits(pnovo_file):
    reader = PNovoReader(pnovo_file())
    spectrum_matches = reader.parse()
    assert [m.key for m in spectrum_matches] == ["run.mgf:run.1.1.2", "run.mgf:run.2.2.3"]

    first, second = spectrum_matches[0].tag_assumptions(advocate("pNovo"))
    assert first.sequence == "PEPTIDE"
    assert first.rank == 1
    assert first.e_value == pytest.approx(0.01)
    assert first.raw_score == 20.0
    assert first.charge.signed == 1
    assert first.modification_matches == []
    assert second.rank == 2
    assert second.e_value == pytest.approx(0.1)
    assert reader.software_versions() == {"pNovo+": []}
    assert reader.has_de_novo_tags()


def test_modification_codes(pnovo_file):
    search_config = SearchConfig(
        modification_codes={"a": ModificationCode(residue="M", modification="15.9949@M")}
    )
    (spectrum_match,) = PNovoReader(pnovo_file(MODIFIED_LINES)).parse(search_config=search_config)
    (assumption,) = spectrum_match.assumptions()
    assert assumption.sequence == "TAMAGK"
    assert [(m.modification, m.site, m.variable) for m in assumption.modification_matches] == [
        ("15.9949@M", 3, True)
    ]


def test_unknown_code(pnovo_file):
    with pytest.raises(MalformedRecordError) as error:
        PNovoReader(pnovo_file(MODIFIED_LINES)).parse()
    assert "Unknown residue a" in str(error.value)


def test_tags_map(pnovo_file):
    lines = PNOVO_LINES[:4]
    reader = PNovoReader(pnovo_file(lines))
    (spectrum_match,) = reader.parse(sequence_matching=SequenceMatchingConfig())
    tags_map = reader.tags_map()
    # PEPTIDE and PEPTLDE share their keys once I is read as L
    assert set(tags_map) == {"PEP", "EPT", "PTL", "TLD", "LDE"}
    assert tags_map["PEP"] == [spectrum_match]

    reader.clear_tags_map()
    assert reader.tags_map() == {}


def test_no_tags_map_without_sequence_matching(pnovo_file):
    reader = PNovoReader(pnovo_file(PNOVO_LINES[:4]))
    reader.parse()
    assert reader.tags_map() == {}


def test_duplicate_title(pnovo_file):
    lines = PNOVO_LINES[:4] + PNOVO_LINES[:4]
    with pytest.raises(MalformedRecordError) as error:
        PNovoReader(pnovo_file(lines)).parse()
    assert "run.1.1.2" in str(error.value)


def test_spectrum_without_hits_is_skipped(pnovo_file):
    lines = ["S1\tempty", ""] + PNOVO_LINES[:4]
    spectrum_matches = PNovoReader(pnovo_file(lines)).parse()
    assert [m.spectrum_title for m in spectrum_matches] == ["run.1.1.2"]


def test_unexpected_line(pnovo_file):
    with pytest.raises(MalformedRecordError) as error:
        PNovoReader(pnovo_file(["X1\tsomething"])).parse()
    assert error.value.position == "line 1"


def test_encoded_title(pnovo_file):
    lines = ["S1\trun%201.1.1.2"] + PNOVO_LINES[1:4]
    (spectrum_match,) = PNovoReader(pnovo_file(lines)).parse()
    assert spectrum_match.spectrum_title == "run 1.1.1.2"


def test_cancellation_while_indexing(pnovo_file):
    lines = []
    for i in range(10):
        lines += [f"S{i + 1}\trun.{i}.{i}.2", "P1\tPEPTIDE\t20", ""]
    calls = []

    def cancel():
        calls.append(1)
        return len(calls) >= 3

    progress = ProgressHandler(cancel_callback=cancel)
    reader = PNovoReader(pnovo_file(lines))
    assert reader.parse(progress) == []
    # the index scan stopped at the third spectrum line
    assert len(calls) == 3
    assert 0 < progress.progress < 100
    assert reader.closed
