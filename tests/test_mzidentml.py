import pytest

from psm_mappers.advocates import USER_ADVOCATE_OFFSET, advocate
from psm_mappers.config import SearchConfig, SearchModification
from psm_mappers.exceptions import (
    MalformedRecordError,
    UnknownSpecificityRuleError,
    UnrecognizedScoreFieldError,
)
from psm_mappers.progress import ProgressHandler
from psm_mappers.readers import ParsingState
from psm_mappers.readers.mzidentml import MzIdentMLReader

SOFTWARE = """
  <AnalysisSoftwareList>
    <AnalysisSoftware id="ID_software" name="{software}" version="v2023.01.12">
      <SoftwareName><userParam name="{software}"/></SoftwareName>
    </AnalysisSoftware>
  </AnalysisSoftwareList>"""

SEQUENCES = """
  <SequenceCollection>
    <DBSequence id="DBSeq1" accession="P1" searchDatabase_ref="SearchDB_1"/>
    <Peptide id="Pep1">
      <PeptideSequence>TAMCGK</PeptideSequence>
      <Modification location="3" monoisotopicMassDelta="15.994915">
        <cvParam cvRef="UNIMOD" accession="UNIMOD:35" name="Oxidation"/>
      </Modification>
      <Modification location="4" monoisotopicMassDelta="57.021464">
        <cvParam cvRef="UNIMOD" accession="UNIMOD:4" name="Carbamidomethyl"/>
      </Modification>
    </Peptide>
    <Peptide id="Pep2">
      <PeptideSequence>PEPTIDE</PeptideSequence>
      <Modification location="0" monoisotopicMassDelta="42.010565">
        <cvParam cvRef="UNIMOD" accession="UNIMOD:1" name="Acetyl"/>
      </Modification>
    </Peptide>
    <PeptideEvidence id="PE1" peptide_ref="Pep1" dBSequence_ref="DBSeq1"/>
  </SequenceCollection>"""

PROTOCOL = """
  <AnalysisProtocolCollection>
    <SpectrumIdentificationProtocol id="SIP" analysisSoftware_ref="ID_software">
      <ModificationParams>
        <SearchModification fixedMod="true" massDelta="57.021464" residues="C">
          <cvParam cvRef="UNIMOD" accession="UNIMOD:4" name="Carbamidomethyl"/>
        </SearchModification>
        <SearchModification fixedMod="false" massDelta="15.994915" residues="M">
          <cvParam cvRef="UNIMOD" accession="UNIMOD:35" name="Oxidation"/>
        </SearchModification>
        <SearchModification fixedMod="true" massDelta="42.010565" residues=".">
          <SpecificityRules>
            <cvParam cvRef="PSI-MS" accession="{specificity}" name="modification specificity peptide N-term"/>
          </SpecificityRules>
          <cvParam cvRef="UNIMOD" accession="UNIMOD:1" name="Acetyl"/>
        </SearchModification>
      </ModificationParams>
    </SpectrumIdentificationProtocol>
  </AnalysisProtocolCollection>"""

RESULTS = """
  <DataCollection>
    <Inputs>
      <SpectraData location="/data/run.mgf" id="SD1" name="run.mgf"/>
    </Inputs>
    <AnalysisData>
      <SpectrumIdentificationList id="SIL">
        <SpectrumIdentificationResult id="SIR1" spectrumID="index=0" spectraData_ref="SD1">
          <SpectrumIdentificationItem id="SII1" rank="1" chargeState="2" peptide_ref="Pep1">
            <cvParam cvRef="PSI-MS" accession="{score}" name="score" value="0.00015"/>
          </SpectrumIdentificationItem>
          <SpectrumIdentificationItem id="SII2" rank="2" chargeState="2" peptide_ref="{peptide_ref}">
            <cvParam cvRef="PSI-MS" accession="{score}" name="score" value="0.2"/>
          </SpectrumIdentificationItem>
          <cvParam cvRef="PSI-MS" accession="MS:1000796" name="spectrum title" value="run.1.1.2"/>
        </SpectrumIdentificationResult>
        <SpectrumIdentificationResult id="SIR2" spectrumID="index=7" spectraData_ref="SD1">
          <SpectrumIdentificationItem id="SII3" rank="1" chargeState="3" peptide_ref="Pep2">
            <cvParam cvRef="PSI-MS" accession="{score}" name="score" value="0.01"/>
          </SpectrumIdentificationItem>
        </SpectrumIdentificationResult>
      </SpectrumIdentificationList>
    </AnalysisData>
  </DataCollection>"""


@pytest.fixture
def mzid_file(tmp_path):
    def make(
        software="MS-GF+", score="MS:1002053", peptide_ref="Pep2", specificity="MS:1001189", results_first=False
    ):
        sections = [SOFTWARE.format(software=software), SEQUENCES, PROTOCOL.format(specificity=specificity)]
        results = RESULTS.format(score=score, peptide_ref=peptide_ref)
        if results_first:
            sections.insert(0, results)
        else:
            sections.append(results)
        path = tmp_path / "run.mzid"
        path.write_text(
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            '<MzIdentML id="test" version="1.1.0" xmlns="http://psidev.info/psi/pi/mzIdentML/1.1">'
            + "".join(sections)
            + "\n</MzIdentML>\n"
        )
        return str(path)
    return make


def test_results(mzid_file):
    reader = MzIdentMLReader(mzid_file())
    spectrum_matches = reader.parse()
    assert [m.key for m in spectrum_matches] == ["run.mgf:run.1.1.2", "run.mgf:7"]
    assert spectrum_matches[0].spectrum_number == 0

    first, second = spectrum_matches[0].peptide_assumptions(advocate("msgf"))
    assert first.sequence == "TAMCGK"
    assert first.e_value == pytest.approx(0.00015)
    assert first.raw_score == pytest.approx(0.00015)
    assert first.charge.signed == 2
    assert [(m.modification, m.site, m.variable) for m in first.modification_matches] == [
        ("15.994915@M", 3, True),
        ("57.021464@C", 4, False),
    ]
    assert second.sequence == "PEPTIDE"
    assert second.rank == 2
    assert reader.software_versions() == {"MS-GF+": ["v2023.01.12"]}


def test_terminal_fixed_modification(mzid_file):
    spectrum_matches = MzIdentMLReader(mzid_file()).parse()
    (assumption,) = spectrum_matches[1].assumptions()
    assert [(m.modification, m.site, m.variable) for m in assumption.modification_matches] == [
        ("42.010565@P", 1, False),
    ]


def test_forward_references(mzid_file):
    assert MzIdentMLReader(mzid_file(results_first=True)).parse() == MzIdentMLReader(mzid_file()).parse()


def test_fixed_modifications_of_search_config_are_added(mzid_file):
    search_config = SearchConfig(
        fixed_modifications=[SearchModification(mass_delta=15.994915, residues="M")]
    )
    spectrum_matches = MzIdentMLReader(mzid_file()).parse(search_config=search_config)
    first = spectrum_matches[0].assumptions()[0]
    assert [m.variable for m in first.modification_matches] == [False, False]


def test_generic_score_of_unknown_software(mzid_file):
    reader = MzIdentMLReader(mzid_file(software="MyTool", score="MS:1002354"))
    spectrum_matches = reader.parse()
    (tool,) = spectrum_matches[0].advocates
    assert tool.name == "MyTool"
    assert tool.index >= USER_ADVOCATE_OFFSET
    assert spectrum_matches[1].advocates == [tool]


def test_missing_score(mzid_file):
    with pytest.raises(UnrecognizedScoreFieldError) as error:
        MzIdentMLReader(mzid_file(score="MS:9999999")).parse()
    assert "SII1" in str(error.value)
    assert error.value.file_name == "run.mzid"


def test_unknown_peptide_reference(mzid_file):
    with pytest.raises(MalformedRecordError) as error:
        MzIdentMLReader(mzid_file(peptide_ref="Pep9")).parse()
    assert "Pep9" in str(error.value)
    assert error.value.position == "SII2"


def test_parse_twice(mzid_file):
    reader = MzIdentMLReader(mzid_file())
    assert reader.parse() == reader.parse()
    assert reader.closed


def test_truncated_file(mzid_file):
    path = mzid_file()
    with open(path) as f:
        content = f.read()
    with open(path, "w") as f:
        f.write(content[: len(content) // 2])

    reader = MzIdentMLReader(path)
    with pytest.raises(MalformedRecordError) as error:
        reader.parse()
    assert error.value.file_name == "run.mzid"
    assert error.value.position.startswith("line ")
    assert reader.state is ParsingState.failed
    assert reader.closed


def test_unknown_specificity_rule(mzid_file):
    reader = MzIdentMLReader(mzid_file(specificity="MS:9999999"))
    with pytest.raises(UnknownSpecificityRuleError) as error:
        reader.parse()
    assert error.value.code == "MS:9999999"
    assert error.value.position == "SearchModification[@massDelta='42.010565']"
    assert reader.state is ParsingState.failed


def test_cancellation_while_collecting_references(mzid_file):
    calls = []

    def cancel():
        calls.append(1)
        return True

    reader = MzIdentMLReader(mzid_file())
    assert reader.parse(ProgressHandler(cancel_callback=cancel)) == []
    assert calls == [1]
    assert reader.state is ParsingState.completed
    assert reader.closed
