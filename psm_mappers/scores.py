"""Conversion of engine specific scores into e-values.

Every table is an ordered list of :class:`ScoreField` entries. For a
record, the first entry whose field is present wins, so the order
encodes which score is preferred when an engine reports several.
"""

import enum
import typing as tp

import numpy as np

from .advocates import Advocate, AdvocateRegistry, advocate
from .exceptions import UnrecognizedScoreFieldError


class Conversion(str, enum.Enum):
    identity = "x"
    pow2_neg = "2^-x"
    pow10_neg = "10^-x"
    pow10 = "10^x"
    exp_neg = "e^-x"
    one_minus = "1-x"
    # Phred-like scores, e.g. pNovo
    pow10_neg_tenth = "10^-(x/10)"

    def apply(self, value: float) -> float:
        if self is Conversion.identity:
            return float(value)
        if self is Conversion.pow2_neg:
            return float(np.power(2.0, -value))
        if self is Conversion.pow10_neg:
            return float(np.power(10.0, -value))
        if self is Conversion.pow10:
            return float(np.power(10.0, value))
        if self is Conversion.exp_neg:
            return float(np.exp(-value))
        if self is Conversion.one_minus:
            return 1.0 - float(value)
        return float(np.power(10.0, -value / 10.0))


class ScoreField(tp.NamedTuple):
    # Column name or CV accession of the score
    field: str
    # Engine owning the score. None: the software declared in the file.
    advocate: tp.Optional[Advocate]
    conversion: Conversion


class EValue(tp.NamedTuple):
    e_value: float
    raw_score: float
    advocate: Advocate
    field: str


class ScoreTable:
    """Ordered preference list of score fields.

    Parameters
    ----------
    fields : iterable of ScoreField
        Score fields in order of preference.
    """

    def __init__(self, fields: tp.Iterable[ScoreField]) -> None:
        self.fields = list(fields)

    def __iter__(self):
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def resolve(
        self,
        scores: tp.Mapping[str, float],
        software: tp.Optional[str] = None,
        registry: tp.Optional[AdvocateRegistry] = None,
    ) -> EValue:
        """Compute the e-value of a record.

        Parameters
        ----------
        scores : Mapping[str, float]
            Raw scores of one record by field (case insensitive).
        software : str, optional
            Software that produced the record, used for the fields
            which are not bound to a specific engine.
        registry : AdvocateRegistry, optional
            Registry resolving `software` to an advocate.

        Returns
        -------
        e_value : EValue
            Canonical e-value, raw score, advocate and the winning field.
        """
        available = {name.lower(): value for name, value in scores.items()}
        for score_field in self.fields:
            key = score_field.field.lower()
            if key not in available:
                continue
            owner = score_field.advocate
            if owner is None:
                if software is None:
                    owner = advocate("genericMzId")
                else:
                    owner = (registry or AdvocateRegistry()).get(software)
            value = float(available[key])
            return EValue(score_field.conversion.apply(value), value, owner, score_field.field)
        raise UnrecognizedScoreFieldError(list(scores))


def _table(rows) -> ScoreTable:
    return ScoreTable(
        ScoreField(field, advocate(advocate_id) if advocate_id else None, conversion)
        for field, advocate_id, conversion in rows
    )


# CV accessions of PSM scores in mzIdentML files
MZIDENTML_SCORES = _table([
    ("MS:1001568", "scaffold", Conversion.identity),
    ("MS:1002466", "peptideShaker", Conversion.pow10_neg),
    ("MS:1002467", "peptideShaker", Conversion.pow10_neg),
    ("MS:1001330", "xtandem", Conversion.identity),
    ("MS:1001331", "xtandem", Conversion.pow10_neg),
    ("MS:1001328", "omssa", Conversion.identity),
    ("MS:1002052", "msgf", Conversion.identity),
    ("MS:1002319", "msAmanda", Conversion.pow10),
    ("MS:1002338", "andromeda", Conversion.identity),
    ("MS:1002262", "byonic", Conversion.pow10_neg),
    ("MS:1002311", "byonic", Conversion.pow10_neg),
    ("MS:1002265", "byonic", Conversion.identity),
    ("MS:1002309", "byonic", Conversion.pow10_neg),
    ("MS:1002266", "byonic", Conversion.pow10),
    ("MS:1002255", "comet", Conversion.identity),
    ("MS:1002252", "comet", Conversion.pow10_neg),
    ("MS:1002053", "msgf", Conversion.identity),
    ("MS:1002056", "msgf", Conversion.identity),
    ("MS:1002055", "msgf", Conversion.identity),
    ("MS:1002054", "msgf", Conversion.identity),
    ("MS:1002049", "msgf", Conversion.identity),
    ("MS:1001501", "msFit", Conversion.identity),
    ("MS:1001172", "mascot", Conversion.identity),
    ("MS:1001171", "mascot", Conversion.pow10_neg),
    ("MS:1001589", "myriMatch", Conversion.exp_neg),
    ("MS:1001590", "myriMatch", Conversion.exp_neg),
    ("MS:1001329", "omssa", Conversion.identity),
    ("MS:1002448", "peaks", Conversion.identity),
    ("MS:1001950", "peaks", Conversion.pow10_neg),
    ("MS:1001396", "phenyx", Conversion.identity),
    ("MS:1001395", "phenyx", Conversion.pow2_neg),
    ("MS:1001499", "proFound", Conversion.pow10_neg),
    ("MS:1001498", "proFound", Conversion.pow2_neg),
    ("MS:1001570", "proteinLynx", Conversion.pow10),
    ("MS:1001569", "proteinLynx", Conversion.pow10_neg),
    ("MS:1002045", "proteinProspector", Conversion.identity),
    ("MS:1002044", "proteinProspector", Conversion.pow10_neg),
    ("MS:1001503", "proteinScape", Conversion.identity),
    ("MS:1001504", "proteinScape", Conversion.pow10_neg),
    ("MS:1001154", "sequest", Conversion.identity),
    ("MS:1001155", "sequest", Conversion.pow10_neg),
    ("MS:1001215", "sequest", Conversion.identity),
    ("MS:1002248", "sequest", Conversion.pow10_neg),
    ("MS:1001887", "sqid", Conversion.pow10_neg),
    ("MS:1001502", "sonar", Conversion.pow10_neg),
    ("MS:1001417", "spectraST", Conversion.pow10_neg),
    ("MS:1001572", "spectrumMill", Conversion.pow10_neg),
    ("MS:1001952", "zCore", Conversion.identity),
    ("MS:1001491", "percolator", Conversion.identity),
    ("MS:1001493", "percolator", Conversion.identity),
    ("MS:1001492", "percolator", Conversion.pow10_neg),
    ("MS:1002353", None, Conversion.identity),
    ("MS:1002354", None, Conversion.identity),
    ("MS:1002357", None, Conversion.one_minus),
    ("MS:1002352", None, Conversion.one_minus),
])

TIDE_SCORES = _table([
    ("exact p-value", "tide", Conversion.identity),
    ("xcorr score", "tide", Conversion.pow10_neg),
])

MS_AMANDA_SCORES = _table([
    ("Weighted Probability", "msAmanda", Conversion.identity),
    ("Amanda Score", "msAmanda", Conversion.pow10_neg),
])

PNOVO_SCORES = _table([
    ("score", "pNovo", Conversion.pow10_neg_tenth),
])

DIREC_TAG_SCORES = _table([
    ("Total", "direcTag", Conversion.identity),
])
