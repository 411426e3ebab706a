"""Identification engines ("advocates") that score spectrum matches."""

import enum
import typing as tp
from dataclasses import dataclass, field


class AdvocateType(str, enum.Enum):
    search_engine = "search_engine"
    de_novo = "de_novo"
    rescoring = "rescoring"
    multiple_algorithm = "multiple_algorithm"
    user = "user"


@dataclass(frozen=True)
class Advocate:
    # Stable numeric identifier
    index: int
    # Short identifier used as key in the score tables
    id: str
    # Display name of the software
    name: str
    type: AdvocateType = AdvocateType.search_engine
    # Alternative spellings found in result files
    aliases: tp.Tuple[str, ...] = field(default=(), compare=False)

    def matches(self, name: str) -> bool:
        name = name.strip().lower()
        return name in (self.id.lower(), self.name.lower()) or name in (
            alias.lower() for alias in self.aliases
        )

    def __str__(self) -> str:
        return self.name


ADVOCATES = [
    Advocate(0, "peptideShaker", "PeptideShaker", AdvocateType.multiple_algorithm),
    Advocate(1, "mascot", "Mascot"),
    Advocate(2, "omssa", "OMSSA"),
    Advocate(3, "xtandem", "X!Tandem", aliases=("X! Tandem", "XTandem")),
    Advocate(4, "pepnovo", "PepNovo+", AdvocateType.de_novo, aliases=("PepNovo",)),
    Advocate(5, "andromeda", "Andromeda"),
    Advocate(6, "msAmanda", "MS Amanda", aliases=("MS-Amanda", "MSAmanda")),
    Advocate(7, "pNovo", "pNovo+", AdvocateType.de_novo, aliases=("pNovo",)),
    Advocate(8, "msgf", "MS-GF+", aliases=("MS-GF", "MSGF+", "MSGF")),
    Advocate(9, "direcTag", "DirecTag", AdvocateType.de_novo),
    Advocate(10, "byonic", "Byonic"),
    Advocate(11, "comet", "Comet"),
    Advocate(12, "proteinLynx", "ProteinLynx"),
    Advocate(13, "msFit", "MS-Fit"),
    Advocate(14, "myriMatch", "MyriMatch"),
    Advocate(15, "peaks", "PEAKS", AdvocateType.de_novo),
    Advocate(16, "phenyx", "Phenyx"),
    Advocate(17, "proFound", "ProFound"),
    Advocate(18, "proteinProspector", "ProteinProspector"),
    Advocate(19, "proteinScape", "ProteinScape"),
    Advocate(20, "sequest", "SEQUEST"),
    Advocate(21, "sqid", "SQID"),
    Advocate(22, "scaffold", "Scaffold", AdvocateType.multiple_algorithm),
    Advocate(23, "sonar", "Sonar"),
    Advocate(24, "spectraST", "SpectraST"),
    Advocate(25, "spectrumMill", "Spectrum Mill"),
    Advocate(26, "zCore", "ZCore"),
    Advocate(27, "percolator", "Percolator", AdvocateType.rescoring),
    Advocate(28, "tide", "Tide", aliases=("Crux", "tide-search")),
    Advocate(29, "novor", "Novor", AdvocateType.de_novo),
    Advocate(30, "genericMzId", "mzIdentML", AdvocateType.multiple_algorithm),
]

# Indexes of advocates created for software missing from the catalogue
USER_ADVOCATE_OFFSET = 1000

_BY_ID = {advocate.id: advocate for advocate in ADVOCATES}


def advocate(advocate_id: str) -> Advocate:
    """Return a catalogue advocate by its short identifier."""
    return _BY_ID[advocate_id]


def find_advocate(name: str) -> tp.Optional[Advocate]:
    """Look up a catalogue advocate by identifier, name or alias.

    Parameters
    ----------
    name : str
        Software name as written in a result file.

    Returns
    -------
    advocate : Advocate or None
        Matching catalogue entry, None if the software is unknown.
    """
    for candidate in ADVOCATES:
        if candidate.matches(name):
            return candidate
    return None


class AdvocateRegistry:
    """Advocates known during one parsing run.

    Software names missing from the catalogue get a user advocate
    with an index stable for the lifetime of the registry.
    """

    def __init__(self) -> None:
        self._user_advocates: tp.Dict[str, Advocate] = {}

    def get(self, name: str) -> Advocate:
        known = find_advocate(name)
        if known is not None:
            return known
        key = name.strip().lower()
        if key not in self._user_advocates:
            self._user_advocates[key] = Advocate(
                USER_ADVOCATE_OFFSET + len(self._user_advocates),
                name.strip(),
                name.strip(),
                AdvocateType.user,
            )
        return self._user_advocates[key]

    @property
    def user_advocates(self) -> tp.List[Advocate]:
        return list(self._user_advocates.values())
