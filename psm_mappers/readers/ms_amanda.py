"""Reader of the tab-separated result files of MS Amanda."""

import logging
import re
import urllib.parse

from ..exceptions import MalformedRecordError
from ..matches import Charge, ModificationMatch, Peptide, PeptideAssumption
from ..modifications import location_residue, modification_tag, remap_terminal_site
from ..scores import MS_AMANDA_SCORES
from .base import Column, ColumnKind, IdfileReader, Record, SpectrumRef, cell, mandatory_cell

logger = logging.getLogger(__name__)

VERSION_PREFIX = "#version:"

# e.g. "C4(Carbamidomethyl|57.021464|fixed)" or "N-Term(Acetyl|42.010565|variable)"
MODIFICATION_PATTERN = re.compile(
    r"^(?P<site>N-Term|C-Term|[A-Za-z]\d+)\((?P<name>.*)\|(?P<mass>[^|]+)\|(?P<status>fixed|variable)\)$",
    re.IGNORECASE,
)

# Retention times are written in seconds, either plain or as "PT2700.46S"
RETENTION_TIME_PATTERN = re.compile(r"^(?:PT)?([-+\d.eE]+)S?$", re.IGNORECASE)


def parse_modifications(modifications, sequence):
    """
    Parse the modifications column of an MS Amanda hit.

    Parameters
    ----------
    modifications : str
        `;`-separated modifications, e.g. `M3(Oxidation|15.994915|variable)`.
    sequence : str
        Unmodified peptide sequence.

    Returns
    -------
    modification_matches : list of ModificationMatch
        Fixed and variable modifications, as declared by MS Amanda.
    """
    modification_matches = []
    for modification in modifications.split(";"):
        modification = modification.strip()
        if not modification:
            continue
        match = MODIFICATION_PATTERN.match(modification)
        if match is None:
            raise MalformedRecordError(f"Error parsing modification: {modification}.")
        site = match.group("site")
        if site.lower() == "n-term":
            location = 0
        elif site.lower() == "c-term":
            location = len(sequence) + 1
        else:
            location = int(site[1:])
        residue = location_residue(sequence, location)
        modification_matches.append(
            ModificationMatch(
                modification_tag(float(match.group("mass")), residue),
                remap_terminal_site(location, len(sequence)),
                variable=match.group("status").lower() == "variable",
            )
        )
    return modification_matches


def parse_retention_time(value):
    if value is None:
        return None
    match = RETENTION_TIME_PATTERN.match(value)
    if match is None:
        logger.debug("Unreadable retention time %s", value)
        return None
    return float(match.group(1))


class MsAmandaReader(IdfileReader):
    EXTENSION = ".ms-amanda.csv"
    SOFTWARE = "MS Amanda"
    SCORE_COLUMNS = ("Weighted Probability", "Amanda Score")
    COLUMNS = [
        Column("Scan Number", synonyms=("scan",)),
        Column("Title"),
        Column("Sequence"),
        Column("Modifications"),
        Column("Protein Accessions"),
        Column("Amanda Score"),
        Column("Weighted Probability", kind=ColumnKind.alternative),
        Column("Rank"),
        Column("m/z"),
        Column("Charge"),
        Column("RT", kind=ColumnKind.optional),
        Column("Filename"),
    ]

    def parse_header(self, context):
        line = self._reader.readline()
        if line is not None and line.lower().startswith(VERSION_PREFIX):
            self._add_software_version(self.SOFTWARE, line[len(VERSION_PREFIX):].strip())
            line = self._reader.readline()
        else:
            logger.debug("%s: no version banner", self.file_name)
            self._add_software_version(self.SOFTWARE)
        if line is None:
            raise MalformedRecordError("Missing header line")
        self._columns = self._index_columns(line.split("\t"), self.COLUMNS)

    def read_records(self, context):
        columns = self._columns
        for _, line in self._reader:
            if not line.strip():
                continue
            row = line.split("\t")
            title = urllib.parse.unquote(mandatory_cell(row, columns["Title"], "Title"))
            spectrum = SpectrumRef(
                mandatory_cell(row, columns["Filename"], "Filename"),
                title,
                int(mandatory_cell(row, columns["Scan Number"], "Scan Number")),
            )
            yield Record(
                spectrum,
                [self._get_assumption(row, context)],
                parse_retention_time(cell(row, columns["RT"])),
            )

    def _get_assumption(self, row, context):
        columns = self._columns
        sequence = mandatory_cell(row, columns["Sequence"], "Sequence").upper()
        modification_matches = parse_modifications(cell(row, columns["Modifications"]) or "", sequence)
        proteins = cell(row, columns["Protein Accessions"])

        amanda_score = float(mandatory_cell(row, columns["Amanda Score"], "Amanda Score"))
        scores = {"Amanda Score": amanda_score}
        probability = cell(row, columns["Weighted Probability"])
        if probability is not None:
            scores["Weighted Probability"] = float(probability)
        e_value = MS_AMANDA_SCORES.resolve(scores)

        return PeptideAssumption(
            Peptide(sequence, modification_matches, proteins.split(";") if proteins else None),
            int(mandatory_cell(row, columns["Rank"], "Rank")),
            e_value.advocate,
            Charge.from_int(int(mandatory_cell(row, columns["Charge"], "Charge"))),
            e_value.e_value,
            amanda_score,
            self.file_name,
        )
