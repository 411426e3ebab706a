"""Reader of mzIdentML files.

The file is streamed twice with the lxml event parser. The first pass
collects the entities referenced by the identification results: the
software, the peptides, the spectrum files and the search modifications.
The second pass reads the SpectrumIdentificationResult elements and
resolves their references by lookup in the collected maps.
"""

import logging
import ntpath
import posixpath

from lxml import etree

from ..config import SearchConfig, SearchModification
from ..exceptions import MalformedRecordError, UnrecognizedScoreFieldError
from ..matches import Charge, Peptide, PeptideAssumption
from ..modifications import resolve_modification
from ..scores import MZIDENTML_SCORES
from .base import IdfileReader, Record, SpectrumRef

logger = logging.getLogger(__name__)

SPECTRUM_TITLE_ACCESSION = "MS:1000796"
# "modification index", not an identifier of the modification
MODIFICATION_INDEX_ACCESSION = "MS:1002504"

# Elements never used, cleared as soon as they are parsed
SKIPPED_ELEMENTS = {"DBSequence", "PeptideEvidence", "ProteinAmbiguityGroup"}


def local_name(element) -> str:
    return etree.QName(element).localname


def children(element, name):
    return [child for child in element if isinstance(child.tag, str) and local_name(child) == name]


def first_child(element, name):
    found = children(element, name)
    return found[0] if found else None


def attribute(element, name) -> str:
    value = element.get(name)
    if value is None:
        raise MalformedRecordError(f"Missing attribute {name} of {local_name(element)}")
    return value


def _release(element) -> None:
    element.clear()
    while element.getprevious() is not None:
        del element.getparent()[0]


def _spectrum_file_name(spectra_data) -> str:
    name = spectra_data.get("name") or spectra_data.get("location") or spectra_data.get("id")
    return posixpath.basename(ntpath.basename(name))


def _software_name(analysis_software):
    software_name = first_child(analysis_software, "SoftwareName")
    if software_name is not None:
        for param in software_name:
            if isinstance(param.tag, str) and param.get("name"):
                return param.get("name")
    return analysis_software.get("name") or analysis_software.get("id")


def _search_modification(element) -> SearchModification:
    residues = element.get("residues", "").split()
    specificity_rules = []
    for rules in children(element, "SpecificityRules"):
        specificity_rules.extend(param.get("accession") for param in children(rules, "cvParam"))
    accession = None
    name = ""
    for param in children(element, "cvParam"):
        if param.get("accession") != MODIFICATION_INDEX_ACCESSION:
            accession = param.get("accession")
            name = param.get("name", "")
            break
    return SearchModification(
        name=name,
        accession=accession,
        mass_delta=float(attribute(element, "massDelta")),
        residues="".join(residues),
        specificity_rules=specificity_rules,
    )


class MzIdentMLReader(IdfileReader):
    EXTENSION = ".mzid"

    def __init__(self, file_path, parsing_config=None):
        super().__init__(file_path, parsing_config)
        self._software = []
        self._peptides = {}
        self._spectra_data = {}
        self._fixed_modifications = []
        self._element_path = None

    @property
    def position(self):
        return self._element_path

    def _iter_elements(self):
        self._reader.seek(0)
        try:
            for _, element in etree.iterparse(self._reader.file, events=("end",), huge_tree=True):
                if isinstance(element.tag, str):
                    yield local_name(element), element
        except etree.XMLSyntaxError as error:
            raise MalformedRecordError(str(error), position=f"line {error.lineno}") from error

    def parse_parameters(self, context):
        for name, element in self._iter_elements():
            if name == "AnalysisSoftware":
                software = _software_name(element)
                self._software.append(software)
                self._add_software_version(software, element.get("version"))
                _release(element)
            elif name == "Peptide":
                self._peptides[element.get("id")] = self._read_peptide(element)
                _release(element)
            elif name == "SpectraData":
                self._spectra_data[element.get("id")] = _spectrum_file_name(element)
            elif name == "SearchModification":
                self._element_path = f"SearchModification[@massDelta='{element.get('massDelta')}']"
                search_modification = _search_modification(element)
                if element.get("fixedMod", "false").lower() == "true":
                    self._fixed_modifications.append(search_modification)
            elif name in SKIPPED_ELEMENTS or name == "SpectrumIdentificationResult":
                _release(element)
            else:
                continue
            if self._scan_canceled(context):
                break
        self._element_path = None
        logger.debug(
            "%s: %d peptides, %d spectrum files, %d fixed modifications",
            self.file_name,
            len(self._peptides),
            len(self._spectra_data),
            len(self._fixed_modifications),
        )

    def _read_peptide(self, element):
        self._element_path = f"Peptide[@id='{element.get('id')}']"
        sequence_element = first_child(element, "PeptideSequence")
        if sequence_element is None or not sequence_element.text:
            raise MalformedRecordError("Peptide without sequence")
        modifications = []
        for modification in children(element, "Modification"):
            accession = None
            for param in children(modification, "cvParam"):
                accession = param.get("accession")
                break
            mass_delta = modification.get("monoisotopicMassDelta") or modification.get("avgMassDelta")
            modifications.append((
                int(attribute(modification, "location")),
                float(mass_delta) if mass_delta is not None else None,
                accession,
            ))
        return sequence_element.text.strip(), modifications

    def read_records(self, context):
        if self._canceled(context):
            return
        search_config = SearchConfig(
            fixed_modifications=self._fixed_modifications + list(context.search_config.fixed_modifications),
            modification_codes=context.search_config.modification_codes,
            mass_tolerance=context.search_config.mass_tolerance,
        )
        for name, element in self._iter_elements():
            if name == "SpectrumIdentificationResult":
                yield self._read_result(element, search_config)
                _release(element)
            elif name in SKIPPED_ELEMENTS or name == "Peptide":
                _release(element)

    def _read_result(self, element, search_config):
        self._element_path = f"SpectrumIdentificationResult[@id='{element.get('id')}']"
        spectra_data_ref = element.get("spectraData_ref")
        if spectra_data_ref not in self._spectra_data:
            raise MalformedRecordError(f"Unknown SpectraData reference {spectra_data_ref}")

        title = None
        for param in children(element, "cvParam"):
            if param.get("accession") == SPECTRUM_TITLE_ACCESSION:
                title = param.get("value")
        spectrum_id = element.get("spectrumID", "")
        number = spectrum_id[spectrum_id.find("=") + 1:]
        if number.isdigit():
            number = int(number)
        elif title is None:
            title, number = spectrum_id, None
        else:
            number = None

        hits = [
            self._read_item(item, search_config)
            for item in children(element, "SpectrumIdentificationItem")
        ]
        return Record(SpectrumRef(self._spectra_data[spectra_data_ref], title, number), hits)

    def _read_item(self, item, search_config):
        item_id = item.get("id")
        peptide_ref = item.get("peptide_ref")
        if peptide_ref not in self._peptides:
            raise MalformedRecordError(f"Unknown Peptide reference {peptide_ref}", position=item_id)
        sequence, modifications = self._peptides[peptide_ref]

        scores = {}
        for param in children(item, "cvParam"):
            try:
                scores[param.get("accession")] = float(param.get("value"))
            except (TypeError, ValueError):
                continue
        try:
            e_value = MZIDENTML_SCORES.resolve(
                scores,
                self._software[0] if self._software else None,
                self.advocates,
            )
        except UnrecognizedScoreFieldError as error:
            error.message = f"No e-value found for SpectrumIdentificationItem with ID {item_id}: {error.message}"
            raise

        modification_matches = [
            resolve_modification(sequence, location, search_config, mass_delta=mass_delta, accession=accession)
            for location, mass_delta, accession in modifications
        ]
        return PeptideAssumption(
            Peptide(sequence, modification_matches),
            int(attribute(item, "rank")),
            e_value.advocate,
            Charge.from_int(int(attribute(item, "chargeState"))),
            e_value.e_value,
            e_value.raw_score,
            self.file_name,
        )

    def _discard_lookups(self):
        self._software = []
        self._peptides = {}
        self._spectra_data = {}
        self._fixed_modifications = []
