"""Readers of identification result files, selected by file extension."""

import typing as tp

from .base import IdfileReader, ParsingState, Record, SpectrumRef
from .direc_tag import DirecTagReader
from .ms_amanda import MsAmandaReader
from .mzidentml import MzIdentMLReader
from .pnovo import PNovoReader
from .tide import TideReader

READERS = [TideReader, MsAmandaReader, PNovoReader, DirecTagReader, MzIdentMLReader]


def get_reader_class(file_path: str) -> tp.Type[IdfileReader]:
    """Reader class whose extension ends `file_path`, the longest one first."""
    file_name = file_path.lower()
    for reader_class in sorted(READERS, key=lambda reader: len(reader.extension()), reverse=True):
        if file_name.endswith(reader_class.extension().lower()):
            return reader_class
    raise ValueError(f"No reader available for {file_path}")


def get_reader(file_path: str, parsing_config=None) -> IdfileReader:
    return get_reader_class(file_path)(file_path, parsing_config)
