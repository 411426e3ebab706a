"""Reader of the sequence tags written by DirecTag (.tags files).

Layout of a file::

    H   TagsGenerator   DirecTag
    H   TagsGeneratorVersion    1.4.0
    H   InputFile   /data/run.mgf
    H   TagsParameters
    H   MaxTagCount: 50, DynamicMods: M 0 15.994915, ...
                                                    <- blank line
    H(S)    Index   ID  Charge  ...
    H(T)    Tag nTerminusMass   cTerminusMass   ... TagChargeState  Total
    S   0   index=0 2   ...
    T   PE0K    120.02  300.4   ... 2   0.0013

Tags use the digits of `DynamicMods` for modified residues.
"""

import logging
import ntpath
import posixpath

from ..exceptions import MalformedRecordError
from ..indexing import FileIndexBuilder
from ..matches import Charge, ModificationMatch, Tag, TagAssumption
from ..modifications import modification_tag
from ..scores import DIREC_TAG_SCORES
from .base import Column, ColumnKind, IdfileReader, Record, SpectrumRef, cell, mandatory_cell

logger = logging.getLogger(__name__)

SPECTRUM_HEADER = "H(S)"
TAG_HEADER = "H(T)"
TAGS_PARAMETERS = "H\tTagsParameters"

SPECTRUM_COLUMNS = [
    Column("ID"),
    # Charge of the tags of the spectrum, TagChargeState when absent
    Column("Charge", kind=ColumnKind.optional),
]
TAG_COLUMNS = [
    Column("Tag"),
    Column("nTerminusMass"),
    Column("cTerminusMass"),
    Column("TagChargeState"),
    Column("Total"),
]


def parse_dynamic_mods(dynamic_mods):
    """
    Parse the DynamicMods parameter of DirecTag.

    Parameters
    ----------
    dynamic_mods : str
        Triples of residue, symbol and mass, e.g. `M 0 15.994915 N 1 0.984016`.

    Returns
    -------
    modifications : dict
        `(residue, mass)` by symbol.
    """
    elements = dynamic_mods.split()
    if len(elements) % 3:
        raise MalformedRecordError(f"Cannot parse DynamicMods: {dynamic_mods}")
    modifications = {}
    for i in range(0, len(elements), 3):
        residue, symbol, mass = elements[i:i + 3]
        modifications[symbol] = (residue, float(mass))
    return modifications


def _record_fields(line):
    # drop the record marker ("S", "T", "H(S)", "H(T)")
    marker_length = 4 if line.startswith(("H(S)", "H(T)")) else 1
    return line[marker_length:].strip().split("\t")


class DirecTagReader(IdfileReader):
    EXTENSION = ".tags"
    SOFTWARE = "DirecTag"
    HAS_DE_NOVO_TAGS = True

    def __init__(self, file_path, parsing_config=None):
        super().__init__(file_path, parsing_config)
        self.tags_generator = self.SOFTWARE
        self.tags_generator_version = None
        self.input_file = None
        self.tags_parameters = {}
        self._spectrum_index = None
        self._tag_index = None

    def parse_header(self, context):
        while True:
            line = self._reader.readline()
            if line is None:
                raise MalformedRecordError("Unexpected end of file while parsing the parameters")
            if line.startswith(TAGS_PARAMETERS):
                break
            if line.startswith((SPECTRUM_HEADER, TAG_HEADER, "S", "T")):
                raise MalformedRecordError("Unexpected end of parameters section")
            fields = line[1:].strip().split("\t", 1)
            value = fields[1].strip() if len(fields) > 1 else ""
            if fields[0] == "TagsGeneratorVersion":
                self.tags_generator_version = value
            elif fields[0] == "TagsGenerator":
                self.tags_generator = value
            elif fields[0] == "InputFile":
                self.input_file = value
        self._add_software_version(self.tags_generator, self.tags_generator_version)

    def parse_parameters(self, context):
        while True:
            line = self._reader.readline()
            if line is None:
                raise MalformedRecordError("Unexpected end of file while parsing the tag parameters")
            if not line.strip():
                break
            if line.startswith((SPECTRUM_HEADER, TAG_HEADER, "S", "T")):
                raise MalformedRecordError("Unexpected end of tag parameters section")
            for component in line[1:].strip().split(", "):
                key, separator, value = component.partition(": ")
                if separator:
                    self.tags_parameters[key.strip()] = value.strip()
        self._dynamic_mods = parse_dynamic_mods(self.tags_parameters.get("DynamicMods", ""))

        spectrum_header = tag_header = None
        while spectrum_header is None or tag_header is None:
            line = self._reader.readline()
            if line is None or line.startswith(("S", "T")):
                raise MalformedRecordError("No header found")
            if line.startswith(SPECTRUM_HEADER):
                spectrum_header = _record_fields(line)
            elif line.startswith(TAG_HEADER):
                tag_header = _record_fields(line)
        self._spectrum_columns = self._index_columns(spectrum_header, SPECTRUM_COLUMNS)
        self._tag_columns = self._index_columns(tag_header, TAG_COLUMNS)

    def build_index(self, context):
        """
        Index the spectrum lines by spectrum id and the tag lines
        by the offset of the spectrum line they follow.

        Stops at the spectrum line where parsing is canceled.
        """
        spectra = FileIndexBuilder(one_to_many=True)
        tags = FileIndexBuilder(one_to_many=True)
        spectrum_offset = None
        for offset, line in self._reader:
            if line.startswith("S"):
                if self._scan_canceled(context):
                    break
                spectrum_id = self._spectrum_id(_record_fields(line))
                spectra.add(spectrum_id, offset)
                tags.declare(offset)
                spectrum_offset = offset
            elif line.startswith("T"):
                if spectrum_offset is None:
                    raise MalformedRecordError("Tag found before the first spectrum", position=self._reader.position)
                tags.add(spectrum_offset, offset)
            elif line.strip():
                raise MalformedRecordError(f"Unexpected line: {line}", position=self._reader.position)
        return spectra.build(), tags.build()

    def _spectrum_id(self, fields):
        # e.g. "index=12"
        spectrum_id = mandatory_cell(fields, self._spectrum_columns["ID"], "ID")
        return int(spectrum_id[spectrum_id.find("=") + 1:])

    def spectrum_file_name(self):
        if self.input_file:
            return posixpath.basename(ntpath.basename(self.input_file))
        return super().spectrum_file_name()

    def read_records(self, context):
        self._spectrum_index, self._tag_index = self.build_index(context)
        if self._canceled(context):
            return
        logger.debug(
            "%s: %d spectra, %d tags", self.file_name, len(self._spectrum_index), self._tag_index.n_offsets()
        )
        spectrum_file = self.spectrum_file_name()
        for spectrum_id, spectrum_offsets in self._spectrum_index.items():
            title = None
            if context.spectrum_titles is not None:
                title = context.spectrum_titles.title(spectrum_file, spectrum_id)
            hits = []
            for spectrum_offset in spectrum_offsets:
                charge = self._spectrum_charge(spectrum_offset)
                for tag_offset in self._tag_index[spectrum_offset]:
                    self._reader.seek(tag_offset)
                    line = self._reader.readline()
                    if line is None or not line.startswith("T"):
                        raise MalformedRecordError("Indexed offset is not a tag line", position=tag_offset)
                    hits.append(self._get_assumption(_record_fields(line), len(hits) + 1, charge))
            yield Record(SpectrumRef(spectrum_file, title, spectrum_id), hits)

    def _spectrum_charge(self, spectrum_offset):
        self._reader.seek(spectrum_offset)
        line = self._reader.readline()
        if line is None or not line.startswith("S"):
            raise MalformedRecordError("Indexed offset is not a spectrum line", position=spectrum_offset)
        charge = cell(_record_fields(line), self._spectrum_columns["Charge"])
        return int(charge) if charge is not None else None

    def _get_assumption(self, fields, rank, spectrum_charge=None):
        columns = self._tag_columns
        tag_sequence = mandatory_cell(fields, columns["Tag"], "Tag")
        residues = []
        modification_matches = []
        for site, symbol in enumerate(tag_sequence, start=1):
            if symbol in self._dynamic_mods:
                residue, mass = self._dynamic_mods[symbol]
                residues.append(residue)
                modification_matches.append(ModificationMatch(modification_tag(mass, residue), site))
            elif symbol.isalpha() and symbol.isupper():
                residues.append(symbol)
            else:
                raise MalformedRecordError(
                    f'No amino acid or modification could be mapped to tag component "{symbol}" in tag "{tag_sequence}"'
                )
        tag = Tag(
            "".join(residues),
            modification_matches,
            n_gap=float(mandatory_cell(fields, columns["nTerminusMass"], "nTerminusMass")),
            c_gap=float(mandatory_cell(fields, columns["cTerminusMass"], "cTerminusMass")),
        )
        e_value = DIREC_TAG_SCORES.resolve(
            {"Total": float(mandatory_cell(fields, columns["Total"], "Total"))}
        )
        charge = spectrum_charge
        if charge is None:
            charge = int(mandatory_cell(fields, columns["TagChargeState"], "TagChargeState"))
        return TagAssumption(
            tag,
            rank,
            e_value.advocate,
            Charge.from_int(charge),
            e_value.e_value,
            e_value.raw_score,
            self.file_name,
        )

    def _discard_lookups(self):
        self._spectrum_index = None
        self._tag_index = None
