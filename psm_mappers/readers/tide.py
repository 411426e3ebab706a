"""Reader of the tab-separated result files of Tide (Crux)."""

import re

from ..exceptions import MalformedRecordError, MissingMandatoryFieldError
from ..matches import Charge, Peptide, PeptideAssumption
from ..modifications import resolve_modification
from ..scores import TIDE_SCORES
from .base import Column, ColumnKind, IdfileReader, Record, SpectrumRef, cell, mandatory_cell

# Residues and bracketed mass deltas, "n"/"c" prefixes mark terminal deltas
SEQUENCE_TOKEN = re.compile(r"([A-Z])|([nc]?)\[([^\]]+)\]")


def parse_modified_sequence(modified_sequence, search_config):
    """
    Split a sequence with mass deltas into residues and modifications.

    Parameters
    ----------
    modified_sequence : str
        Sequence like `TAM[15.9949]AGK`. A mass delta applies to the
        residue before it, a leading one to the N-terminus.
    search_config : SearchConfig
        Search settings with the fixed modifications.

    Returns
    -------
    sequence : str
        Unmodified sequence.
    modification_matches : list of ModificationMatch
        Modifications with their fixed/variable status.
    """
    residues = []
    located = []
    position = 0
    for match in SEQUENCE_TOKEN.finditer(modified_sequence):
        if match.start() != position:
            raise MalformedRecordError(f"Cannot parse sequence {modified_sequence}")
        position = match.end()
        if match.group(1):
            residues.append(match.group(1))
            continue
        terminus = match.group(2)
        for mass in match.group(3).split(","):
            located.append((terminus, len(residues), float(mass)))
    if position != len(modified_sequence) or not residues:
        raise MalformedRecordError(f"Cannot parse sequence {modified_sequence}")

    sequence = "".join(residues)
    modification_matches = []
    for terminus, location, mass in located:
        if terminus == "c":
            location = len(sequence) + 1
        elif terminus == "n":
            location = 0
        modification_matches.append(
            resolve_modification(sequence, location, search_config, mass_delta=mass)
        )
    return sequence, modification_matches


class TideReader(IdfileReader):
    EXTENSION = ".tide-search.target.txt"
    SOFTWARE = "Tide"
    SCORE_COLUMNS = ("exact p-value", "xcorr score")
    COLUMNS = [
        Column("scan"),
        Column("charge"),
        Column("xcorr rank"),
        Column("sequence"),
        Column("exact p-value", kind=ColumnKind.alternative),
        Column("xcorr score", kind=ColumnKind.alternative),
        Column("protein id", kind=ColumnKind.optional),
    ]

    def parse_header(self, context):
        header = self._reader.readline()
        if header is None:
            raise MalformedRecordError("Missing header line")
        self._columns = self._index_columns(header.split("\t"), self.COLUMNS)
        if all(self._columns[name] is None for name in self.SCORE_COLUMNS):
            raise MissingMandatoryFieldError(
                self.SCORE_COLUMNS,
                message="No score column found, expected one of: " + ", ".join(self.SCORE_COLUMNS),
            )
        self._add_software_version(self.SOFTWARE)

    def read_records(self, context):
        spectrum_file = self.spectrum_file_name()
        for _, line in self._reader:
            if not line.strip():
                continue
            row = line.split("\t")
            scan = int(mandatory_cell(row, self._columns["scan"], "scan"))
            title = None
            if context.spectrum_titles is not None:
                title = context.spectrum_titles.title(spectrum_file, scan)
            yield Record(SpectrumRef(spectrum_file, title, scan), [self._get_assumption(row, context)])

    def _get_assumption(self, row, context):
        charge = int(mandatory_cell(row, self._columns["charge"], "charge"))
        rank = int(mandatory_cell(row, self._columns["xcorr rank"], "xcorr rank"))
        sequence, modification_matches = parse_modified_sequence(
            mandatory_cell(row, self._columns["sequence"], "sequence"),
            context.search_config,
        )
        proteins = cell(row, self._columns["protein id"])

        scores = {}
        for name in self.SCORE_COLUMNS:
            value = cell(row, self._columns[name])
            if value is not None:
                scores[name] = float(value)
        e_value = TIDE_SCORES.resolve(scores)

        peptide = Peptide(sequence, modification_matches, proteins.split(",") if proteins else None)
        return PeptideAssumption(
            peptide,
            rank,
            e_value.advocate,
            Charge.from_int(charge),
            e_value.e_value,
            e_value.raw_score,
            self.file_name,
        )
