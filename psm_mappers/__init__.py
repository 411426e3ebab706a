"""Normalization of peptide identification result files into spectrum matches."""

from .advocates import Advocate, AdvocateRegistry
from .config import Config, get_config
from .exceptions import (
    MalformedRecordError,
    MissingMandatoryFieldError,
    ParseError,
    UnknownSpecificityRuleError,
    UnrecognizedScoreFieldError,
)
from .matches import (
    Charge,
    ModificationMatch,
    Peptide,
    PeptideAssumption,
    SpectrumMatch,
    Tag,
    TagAssumption,
)
from .progress import ProgressHandler
from .readers import get_reader
