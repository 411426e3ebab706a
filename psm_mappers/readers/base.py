"""Base class of the identification result file readers."""

import enum
import logging
import os
import typing as tp

from ..advocates import AdvocateRegistry
from ..combinations import expand_assumption, has_combination
from ..config import MissingColumnPolicy, ParsingConfig, SearchConfig, SequenceMatchingConfig
from ..exceptions import MalformedRecordError, MissingMandatoryFieldError, ParseError
from ..indexing import LineReader
from ..matches import PeptideAssumption, SpectrumIdentificationAssumption, SpectrumMatch
from ..progress import ProgressHandler
from ..spectrum_titles import SpectrumTitleProvider

logger = logging.getLogger(__name__)


class ParsingState(str, enum.Enum):
    start = "start"
    parsing_header = "parsing_header"
    parsing_parameters = "parsing_parameters"
    parsing_records = "parsing_records"
    flush = "flush"
    completed = "completed"
    failed = "failed"


TRANSITIONS = {
    ParsingState.start: {ParsingState.parsing_header},
    ParsingState.parsing_header: {ParsingState.parsing_parameters},
    ParsingState.parsing_parameters: {ParsingState.parsing_records},
    ParsingState.parsing_records: {ParsingState.flush},
    ParsingState.flush: {ParsingState.completed},
    ParsingState.completed: set(),
    ParsingState.failed: set(),
}


class SpectrumRef(tp.NamedTuple):
    spectrum_file: str
    spectrum_title: tp.Optional[str] = None
    spectrum_number: tp.Optional[int] = None

    @property
    def key(self) -> str:
        return SpectrumMatch.make_key(self.spectrum_file, self.spectrum_title, self.spectrum_number)


class Record(tp.NamedTuple):
    """One structural unit of a result file: a line, a block or an element.

    `spectrum` starts a new spectrum match when its key differs from
    the current one, `hits` belong to the current spectrum match.
    """
    spectrum: tp.Optional[SpectrumRef] = None
    hits: tp.Sequence[SpectrumIdentificationAssumption] = ()
    retention_time: tp.Optional[float] = None


class ParsingContext(tp.NamedTuple):
    """Read-only settings of one parse call."""
    progress: tp.Optional[ProgressHandler]
    search_config: SearchConfig
    sequence_matching: tp.Optional[SequenceMatchingConfig]
    expand_ambiguous: bool
    spectrum_titles: tp.Optional[SpectrumTitleProvider]


class ColumnKind(str, enum.Enum):
    # Missing column fails before any record is read
    mandatory = "mandatory"
    # Missing column handled according to the MissingColumnPolicy
    optional = "optional"
    # One of several alternatives, e.g. a score field
    alternative = "alternative"


class Column(tp.NamedTuple):
    name: str
    # Other names of the column, matched case insensitively
    synonyms: tp.Tuple[str, ...] = ()
    kind: ColumnKind = ColumnKind.mandatory


class IdfileReader:
    """
    Reads one identification result file into spectrum matches.

    Subclasses implement the format specific hooks `parse_header`,
    `parse_parameters` and `read_records`; `parse` drives them through
    the parsing states and groups the records into spectrum matches.

    Parameters
    ----------
    file_path : str
        Path to the result file.
    parsing_config : ParsingConfig, optional
        Reading options.
    """

    # Canonical file name suffix of the format
    EXTENSION = ""
    # Whether the format contains de novo sequence tags
    HAS_DE_NOVO_TAGS = False

    def __init__(self, file_path: str, parsing_config: tp.Optional[ParsingConfig] = None) -> None:
        self.file_path = file_path
        self.file_name = os.path.basename(file_path)
        self.parsing_config = parsing_config or ParsingConfig()
        self.state = ParsingState.start
        self.advocates = AdvocateRegistry()
        self._reader: tp.Optional[LineReader] = None
        self._software_versions: tp.Dict[str, tp.List[str]] = {}
        self._tags_map: tp.Dict[str, tp.List[SpectrumMatch]] = {}

    @classmethod
    def extension(cls) -> str:
        return cls.EXTENSION

    def spectrum_file_name(self) -> str:
        """Name of the spectrum file searched, derived from the result file name."""
        if self.EXTENSION and self.file_name.endswith(self.EXTENSION):
            return self.file_name[: -len(self.EXTENSION)] + ".mgf"
        return os.path.splitext(self.file_name)[0] + ".mgf"

    def software_versions(self) -> tp.Dict[str, tp.List[str]]:
        """Versions of the software found in the file, by software name."""
        return {name: list(versions) for name, versions in self._software_versions.items()}

    def _add_software_version(self, name: str, version: tp.Optional[str] = None) -> None:
        versions = self._software_versions.setdefault(name, [])
        if version and version not in versions:
            versions.append(version)

    def has_de_novo_tags(self) -> bool:
        return self.HAS_DE_NOVO_TAGS

    def tags_map(self) -> tp.Dict[str, tp.List[SpectrumMatch]]:
        """Spectrum matches by the sequence keys of their tags."""
        return {key: list(matches) for key, matches in self._tags_map.items()}

    def clear_tags_map(self) -> None:
        self._tags_map.clear()

    @property
    def position(self) -> tp.Optional[str]:
        """Current position in the file, for error messages."""
        if self._reader is None:
            return None
        return self._reader.position

    @property
    def closed(self) -> bool:
        return self._reader is None

    def parse(
        self,
        progress: tp.Optional[ProgressHandler] = None,
        search_config: tp.Optional[SearchConfig] = None,
        sequence_matching: tp.Optional[SequenceMatchingConfig] = None,
        expand_ambiguous: bool = False,
        spectrum_titles: tp.Optional[SpectrumTitleProvider] = None,
    ) -> tp.List[SpectrumMatch]:
        """
        Read the spectrum matches of the file.

        Parameters
        ----------
        progress : ProgressHandler, optional
            Receives the progress and may request cancellation,
            which is checked once per record and once per unit of
            the scans which precede the records.
        search_config : SearchConfig, optional
            Search settings used to classify modifications.
        sequence_matching : SequenceMatchingConfig, optional
            Settings of the tags map. No tags map is built without it.
        expand_ambiguous : bool
            Replace sequences with ambiguity codes by their concrete
            sequences.
        spectrum_titles : SpectrumTitleProvider, optional
            Titles of spectra for formats which only store indexes.

        Returns
        -------
        spectrum_matches : list of SpectrumMatch
            Spectrum matches in the order their spectra were found.
            When canceled, the matches completed so far.
        """
        context = ParsingContext(
            progress,
            search_config or SearchConfig(),
            sequence_matching,
            expand_ambiguous,
            spectrum_titles,
        )
        spectrum_matches: tp.Dict[str, SpectrumMatch] = {}
        self.state = ParsingState.start
        self._tags_map = {}
        logger.info("Parsing %s", self.file_name)
        try:
            self._open()
            self._set_state(ParsingState.parsing_header)
            self.parse_header(context)
            self._set_state(ParsingState.parsing_parameters)
            self.parse_parameters(context)

            self._set_state(ParsingState.parsing_records)
            current = None
            canceled = False
            for record in self.read_records(context):
                if progress is not None and progress.is_canceled():
                    canceled = True
                    break
                current = self._consume(record, current, spectrum_matches, context)
                self._report_progress(progress)

            self._set_state(ParsingState.flush)
            if canceled:
                logger.info("Parsing of %s canceled", self.file_name)
            else:
                self._flush(current, spectrum_matches, context)
            self._set_state(ParsingState.completed)
        except ParseError as error:
            self.state = ParsingState.failed
            error.with_context(self.file_name, self.position)
            raise
        except ValueError as error:
            self.state = ParsingState.failed
            raise MalformedRecordError(str(error), self.file_name, self.position) from error
        except BaseException:
            self.state = ParsingState.failed
            raise
        finally:
            self.close()

        logger.info("Read %d spectrum matches from %s", len(spectrum_matches), self.file_name)
        return list(spectrum_matches.values())

    def _set_state(self, state: ParsingState) -> None:
        if state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid parsing state transition {self.state.value} -> {state.value}")
        self.state = state

    def _open(self) -> None:
        self._reader = LineReader(self.file_path, self.parsing_config.buffer_size)

    def parse_header(self, context: ParsingContext) -> None:
        """Read the banner and version lines of the file."""

    def parse_parameters(self, context: ParsingContext) -> None:
        """Read the search parameters written in the file."""

    def read_records(self, context: ParsingContext) -> tp.Iterator[Record]:
        """Yield the records of the file."""
        raise NotImplementedError

    def _consume(self, record, current, spectrum_matches, context):
        spectrum = record.spectrum
        if spectrum is not None and (current is None or spectrum.key != current.key):
            self._flush(current, spectrum_matches, context)
            current = spectrum_matches.get(spectrum.key)
            if current is None:
                current = SpectrumMatch(*spectrum)
        if current is None:
            raise MalformedRecordError("Record found before the first spectrum")
        if record.retention_time is not None:
            current.retention_time = record.retention_time
        for assumption in record.hits:
            self._add_hit(current, assumption, context)
        return current

    def _add_hit(self, spectrum_match, assumption, context) -> None:
        if (
            context.expand_ambiguous
            and isinstance(assumption, PeptideAssumption)
            and has_combination(assumption.sequence)
        ):
            for i, concrete in enumerate(expand_assumption(assumption)):
                spectrum_match.add_hit(assumption.advocate, concrete, is_primary=i == 0)
        else:
            spectrum_match.add_hit(assumption.advocate, assumption)

    def _flush(self, spectrum_match, spectrum_matches, context) -> None:
        if spectrum_match is None or not spectrum_match.has_assumptions():
            return
        spectrum_matches.setdefault(spectrum_match.key, spectrum_match)
        if context.sequence_matching is not None and self.has_de_novo_tags():
            self._register_tags(spectrum_match, context.sequence_matching)

    def _register_tags(self, spectrum_match, sequence_matching) -> None:
        for assumption in spectrum_match.tag_assumptions():
            keys = assumption.tag.keys(
                sequence_matching.tag_key_length,
                sequence_matching.isoleucine_to_leucine,
            )
            for key in keys:
                tag_matches = self._tags_map.setdefault(key, [])
                if not any(match is spectrum_match for match in tag_matches):
                    tag_matches.append(spectrum_match)

    def _report_progress(self, progress) -> None:
        if progress is not None and self._reader is not None:
            progress.set_progress(self._reader.tell(), self._reader.length)

    def _scan_canceled(self, context: ParsingContext) -> bool:
        """Report the position of a scan and tell whether parsing was canceled.

        Called once per structural unit by the scans which precede
        the records: index passes and reference collection.
        """
        self._report_progress(context.progress)
        return self._canceled(context)

    @staticmethod
    def _canceled(context: ParsingContext) -> bool:
        return context.progress is not None and context.progress.is_canceled()

    def _discard_lookups(self) -> None:
        """Drop the lookup maps built while parsing."""

    def close(self) -> None:
        """Release the file handle and the lookup maps. Safe to call twice."""
        if self._reader is not None:
            self._reader.close()
            self._reader = None
        self._discard_lookups()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _index_columns(self, header: tp.Sequence[str], columns: tp.Sequence[Column]) -> tp.Dict[str, tp.Optional[int]]:
        """
        Map column names to their position in a tab-separated header.

        Parameters
        ----------
        header : Sequence[str]
            Column names of the header line.
        columns : Sequence[Column]
            Columns of the format.

        Returns
        -------
        positions : Dict[str, Optional[int]]
            Position of each column by its canonical name,
            None for absent non-mandatory columns.
        """
        header_positions = {}
        for i, name in enumerate(header):
            header_positions.setdefault(name.strip().lower(), i)

        positions = {}
        missing = []
        missing_optional = []
        for column in columns:
            position = None
            for name in (column.name,) + column.synonyms:
                position = header_positions.get(name.lower())
                if position is not None:
                    break
            positions[column.name] = position
            if position is None:
                if column.kind is ColumnKind.mandatory:
                    missing.append(column.name)
                elif column.kind is ColumnKind.optional:
                    missing_optional.append(column.name)

        if missing:
            raise MissingMandatoryFieldError(missing, self.file_name, self.position)
        if missing_optional:
            if self.parsing_config.missing_optional_columns is MissingColumnPolicy.fail:
                raise MissingMandatoryFieldError(
                    missing_optional,
                    self.file_name,
                    self.position,
                    message="Optional field(s) missing: " + ", ".join(missing_optional),
                )
            logger.warning("%s: optional column(s) missing: %s", self.file_name, ", ".join(missing_optional))
        return positions


def cell(row: tp.Sequence[str], position: tp.Optional[int]) -> tp.Optional[str]:
    """Stripped value of a row at `position`, None for absent or empty cells."""
    if position is None or position >= len(row):
        return None
    value = row[position].strip()
    return value or None


def mandatory_cell(row: tp.Sequence[str], position: tp.Optional[int], name: str) -> str:
    value = cell(row, position)
    if value is None:
        raise MalformedRecordError(f"Empty value in column '{name}'")
    return value
