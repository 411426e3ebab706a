"""Reader of the de novo results of pNovo.

The file is a sequence of blocks: a spectrum line
``S<n>\\t<title>`` followed by hit lines
``P<rank>\\t<sequence>\\t<score>[\\t<residues>]``, where the optional
last column lists the residues of the sequence separated by commas.
Modified residues are written with the symbols configured in
``SearchConfig.modification_codes``.
"""

import logging
import urllib.parse

from ..exceptions import MalformedRecordError
from ..indexing import FileIndexBuilder, materialize
from ..matches import Charge, ModificationMatch, Tag, TagAssumption
from ..scores import PNOVO_SCORES
from .base import IdfileReader, Record, SpectrumRef

logger = logging.getLogger(__name__)

SPECTRUM_MARKER = "S"
HIT_MARKER = "P"


class PNovoReader(IdfileReader):
    EXTENSION = ".pnovo.txt"
    SOFTWARE = "pNovo+"
    HAS_DE_NOVO_TAGS = True

    def __init__(self, file_path, parsing_config=None):
        super().__init__(file_path, parsing_config)
        self._index = None

    def parse_header(self, context):
        # pNovo does not write its version
        self._add_software_version(self.SOFTWARE)

    def build_index(self, context):
        """Map each spectrum title to the offset of its first hit line.

        Stops at the spectrum line where parsing is canceled.
        """
        builder = FileIndexBuilder()
        for _, line in self._reader:
            if not line.strip() or line.startswith(HIT_MARKER):
                continue
            if not line.startswith(SPECTRUM_MARKER):
                raise MalformedRecordError(f"Unexpected line: {line}", position=self._reader.position)
            if self._scan_canceled(context):
                break
            fields = line.split("\t")
            if len(fields) < 2 or not fields[1].strip():
                raise MalformedRecordError("Spectrum line without title", position=self._reader.position)
            # titles are URL encoded
            builder.add(urllib.parse.unquote(fields[1].strip()), self._reader.tell())
        return builder.build()

    def read_records(self, context):
        self._index = self.build_index(context)
        if self._canceled(context):
            return
        logger.debug("%s: %d spectra", self.file_name, len(self._index))
        spectrum_file = self.spectrum_file_name()

        def parse_block(reader, title):
            hits = []
            while True:
                line = reader.readline()
                if line is None or not line.startswith(HIT_MARKER):
                    break
                hits.append(self._get_assumption(line, len(hits) + 1, context))
            return Record(SpectrumRef(spectrum_file, title), hits)

        yield from materialize(self._reader, self._index, parse_block)

    def _get_assumption(self, line, default_rank, context):
        fields = line.rstrip().split("\t")
        if len(fields) < 3:
            raise MalformedRecordError(f"Cannot parse hit line: {line}")
        marker = fields[0][len(HIT_MARKER):]
        rank = int(marker) if marker.isdigit() else default_rank
        pnovo_sequence = fields[1].strip()
        if len(fields) > 3 and fields[3].strip():
            tokens = [token.strip() for token in fields[3].split(",")]
            if len(tokens) != len(pnovo_sequence):
                raise MalformedRecordError(f"Residues {fields[3]} do not match sequence {pnovo_sequence}")
        else:
            tokens = list(pnovo_sequence)

        codes = context.search_config.modification_codes
        residues = []
        modification_matches = []
        for site, token in enumerate(tokens, start=1):
            if token in codes:
                residues.append(codes[token].residue)
                modification_matches.append(ModificationMatch(codes[token].modification, site))
            elif len(token) == 1 and token.isupper():
                residues.append(token)
            else:
                raise MalformedRecordError(f"Unknown residue {token} in {pnovo_sequence}")

        e_value = PNOVO_SCORES.resolve({"score": float(fields[2])})
        return TagAssumption(
            Tag("".join(residues), modification_matches),
            rank,
            e_value.advocate,
            Charge(1),
            e_value.e_value,
            e_value.raw_score,
            self.file_name,
        )

    def _discard_lookups(self):
        self._index = None
