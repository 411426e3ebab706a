"""Canonical model of spectrum matches shared by all result file readers.

Every reader produces :class:`SpectrumMatch` objects, each holding
the ranked peptide or tag assumptions proposed for one spectrum,
grouped by the advocate (identification engine) that scored them.
"""

import typing as tp
from dataclasses import dataclass

from .advocates import Advocate

POSITIVE = 1
NEGATIVE = -1


@dataclass(frozen=True)
class Charge:
    # Magnitude of the charge
    value: int
    # POSITIVE or NEGATIVE
    sign: int = POSITIVE

    def __post_init__(self):
        if self.value < 0:
            raise ValueError(f"Charge magnitude must not be negative: {self.value}")
        if self.sign not in (POSITIVE, NEGATIVE):
            raise ValueError(f"Unknown charge sign: {self.sign}")

    @classmethod
    def from_int(cls, charge: int) -> "Charge":
        """Build a charge from a signed integer, e.g. -2 for 2-."""
        return cls(abs(charge), NEGATIVE if charge < 0 else POSITIVE)

    @property
    def signed(self) -> int:
        return self.sign * self.value

    def __str__(self) -> str:
        return f"{self.value}{'+' if self.sign == POSITIVE else '-'}"


class ModificationMatch:
    """A modification localized on a sequence.

    Parameters
    ----------
    modification : str
        Identifying tag of the modification: an accession or
        a ``mass@residue`` composite.
    site : int
        1-based residue index. Terminal modifications are stored on
        the first (N-term) or last (C-term) residue.
    variable : bool
        False for modifications applied by a fixed search rule.
    """

    def __init__(self, modification: str, site: int, variable: bool = True) -> None:
        self.modification = modification
        self.site = int(site)
        self.variable = variable

    def copy(self) -> "ModificationMatch":
        return ModificationMatch(self.modification, self.site, self.variable)

    def _key(self):
        return self.modification, self.site, self.variable

    def __eq__(self, other) -> bool:
        if not isinstance(other, ModificationMatch):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        kind = "variable" if self.variable else "fixed"
        return f"ModificationMatch({self.modification!r}, site={self.site}, {kind})"


def _check_sites(sequence: str, modification_matches: tp.List[ModificationMatch]) -> None:
    for modification_match in modification_matches:
        if not 1 <= modification_match.site <= len(sequence):
            raise ValueError(
                f"Modification {modification_match.modification} at site "
                f"{modification_match.site} is outside of sequence {sequence}"
            )


class AminoAcidSequence:
    """Residues with their localized modifications."""

    def __init__(self, sequence: str, modification_matches=None) -> None:
        if not sequence:
            raise ValueError("Empty amino acid sequence")
        self.sequence = sequence
        self.modification_matches = list(modification_matches or [])
        _check_sites(sequence, self.modification_matches)

    def __len__(self) -> int:
        return len(self.sequence)

    @property
    def variable_modifications(self) -> tp.List[ModificationMatch]:
        return [m for m in self.modification_matches if m.variable]

    @property
    def fixed_modifications(self) -> tp.List[ModificationMatch]:
        return [m for m in self.modification_matches if not m.variable]

    def _key(self):
        return self.sequence, tuple(
            sorted((m.site, m.modification, m.variable) for m in self.modification_matches)
        )

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())


class Peptide(AminoAcidSequence):
    """A complete peptide sequence."""

    def __init__(self, sequence: str, modification_matches=None, protein_accessions=None) -> None:
        super().__init__(sequence, modification_matches)
        self.protein_accessions = list(protein_accessions or [])

    def __repr__(self) -> str:
        return f"Peptide({self.sequence!r}, {self.modification_matches!r})"


class Tag(AminoAcidSequence):
    """A partial sequence flanked by unexplained N- and C-terminal masses."""

    def __init__(self, sequence: str, modification_matches=None, n_gap: float = 0.0, c_gap: float = 0.0) -> None:
        super().__init__(sequence, modification_matches)
        self.n_gap = n_gap
        self.c_gap = c_gap

    def keys(self, length: int, isoleucine_to_leucine: bool = True) -> tp.List[str]:
        """Distinct sub-sequences of `length` residues, in order of appearance."""
        sequence = self.sequence.replace("I", "L") if isoleucine_to_leucine else self.sequence
        keys = []
        for start in range(len(sequence) - length + 1):
            key = sequence[start:start + length]
            if key not in keys:
                keys.append(key)
        return keys

    def _key(self):
        return super()._key() + (self.n_gap, self.c_gap)

    def __repr__(self) -> str:
        return f"Tag({self.n_gap}, {self.sequence!r}, {self.c_gap})"


class SpectrumIdentificationAssumption:
    """A ranked candidate explaining a spectrum, as scored by one advocate."""

    def __init__(
        self,
        rank: int,
        advocate: Advocate,
        charge: Charge,
        e_value: float,
        raw_score: tp.Optional[float] = None,
        identification_file: tp.Optional[str] = None,
    ) -> None:
        if rank < 1:
            raise ValueError(f"Rank must be at least 1, got {rank}")
        self.rank = rank
        self.advocate = advocate
        self.charge = charge
        self.e_value = e_value
        self.raw_score = raw_score
        self.identification_file = identification_file
        # Set when the assumption is added to a spectrum match
        self.is_primary = True

    @property
    def sequence(self) -> str:
        raise NotImplementedError

    def _key(self):
        return (
            self.rank,
            self.advocate.index,
            self.charge,
            self.e_value,
            self.raw_score,
            self.identification_file,
            self.is_primary,
        )

    def __eq__(self, other) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())


class PeptideAssumption(SpectrumIdentificationAssumption):
    def __init__(self, peptide: Peptide, rank, advocate, charge, e_value, raw_score=None, identification_file=None):
        super().__init__(rank, advocate, charge, e_value, raw_score, identification_file)
        self.peptide = peptide

    @property
    def sequence(self) -> str:
        return self.peptide.sequence

    @property
    def modification_matches(self) -> tp.List[ModificationMatch]:
        return self.peptide.modification_matches

    def _key(self):
        return super()._key() + (self.peptide,)

    def __repr__(self) -> str:
        return f"PeptideAssumption({self.peptide!r}, rank={self.rank}, {self.advocate}, e_value={self.e_value})"


class TagAssumption(SpectrumIdentificationAssumption):
    def __init__(self, tag: Tag, rank, advocate, charge, e_value, raw_score=None, identification_file=None):
        super().__init__(rank, advocate, charge, e_value, raw_score, identification_file)
        self.tag = tag

    @property
    def sequence(self) -> str:
        return self.tag.sequence

    @property
    def modification_matches(self) -> tp.List[ModificationMatch]:
        return self.tag.modification_matches

    def _key(self):
        return super()._key() + (self.tag,)

    def __repr__(self) -> str:
        return f"TagAssumption({self.tag!r}, rank={self.rank}, {self.advocate}, e_value={self.e_value})"


class SpectrumMatch:
    """All assumptions proposed for one spectrum, grouped by advocate.

    Parameters
    ----------
    spectrum_file : str
        Name of the spectrum file (e.g. the .mgf file) of the spectrum.
    spectrum_title : str, optional
        Spectrum title.
    spectrum_number : int, optional
        Index or scan number of the spectrum, used as key when
        no title is available.
    """

    def __init__(
        self,
        spectrum_file: str,
        spectrum_title: tp.Optional[str] = None,
        spectrum_number: tp.Optional[int] = None,
    ) -> None:
        if spectrum_title is None and spectrum_number is None:
            raise ValueError("A spectrum match needs a spectrum title or a spectrum number")
        self.spectrum_file = spectrum_file
        self.spectrum_title = spectrum_title
        self.spectrum_number = spectrum_number
        self.retention_time: tp.Optional[float] = None
        self._advocates: tp.Dict[int, Advocate] = {}
        self._assumptions: tp.Dict[int, tp.List[SpectrumIdentificationAssumption]] = {}

    @staticmethod
    def make_key(spectrum_file, spectrum_title=None, spectrum_number=None) -> str:
        """Represent a spectrum as `{spectrum_file}:{title or number}` string."""
        spectrum_id = spectrum_title if spectrum_title is not None else spectrum_number
        return f"{spectrum_file}:{spectrum_id}"

    @property
    def key(self) -> str:
        return self.make_key(self.spectrum_file, self.spectrum_title, self.spectrum_number)

    def add_hit(self, advocate: Advocate, assumption: SpectrumIdentificationAssumption, is_primary: bool = True) -> None:
        """Append an assumption to the hits of `advocate`.

        Parameters
        ----------
        advocate : Advocate
            Engine that scored the assumption.
        assumption : SpectrumIdentificationAssumption
            Peptide or tag assumption.
        is_primary : bool
            False for the concrete variants of an ambiguous sequence
            which are not the representative hit.
        """
        hits = self._assumptions.setdefault(advocate.index, [])
        if hits and assumption.rank < hits[-1].rank:
            raise ValueError(
                f"Rank {assumption.rank} of {advocate} follows rank {hits[-1].rank} for spectrum {self.key}"
            )
        self._advocates[advocate.index] = advocate
        assumption.is_primary = is_primary
        hits.append(assumption)

    def merge(self, other: "SpectrumMatch") -> None:
        """Append the hits of another match of the same spectrum."""
        if other.key != self.key:
            raise ValueError(f"Cannot merge {other.key} into {self.key}")
        for index, hits in other._assumptions.items():
            for assumption in hits:
                self.add_hit(other._advocates[index], assumption, assumption.is_primary)

    @property
    def advocates(self) -> tp.List[Advocate]:
        return list(self._advocates.values())

    def assumptions(self, advocate: tp.Optional[Advocate] = None) -> tp.List[SpectrumIdentificationAssumption]:
        """Hits in file order, of one advocate or of all advocates."""
        if advocate is not None:
            return list(self._assumptions.get(advocate.index, []))
        return [assumption for hits in self._assumptions.values() for assumption in hits]

    def peptide_assumptions(self, advocate=None) -> tp.List[PeptideAssumption]:
        return [a for a in self.assumptions(advocate) if isinstance(a, PeptideAssumption)]

    def tag_assumptions(self, advocate=None) -> tp.List[TagAssumption]:
        return [a for a in self.assumptions(advocate) if isinstance(a, TagAssumption)]

    def best_assumption(self, advocate: Advocate) -> tp.Optional[SpectrumIdentificationAssumption]:
        """Primary hit with the lowest e-value for `advocate`."""
        hits = [a for a in self.assumptions(advocate) if a.is_primary]
        if not hits:
            return None
        return min(hits, key=lambda a: (a.e_value, a.rank))

    def has_assumptions(self) -> bool:
        return any(self._assumptions.values())

    def __len__(self) -> int:
        return sum(len(hits) for hits in self._assumptions.values())

    def __eq__(self, other) -> bool:
        if not isinstance(other, SpectrumMatch):
            return NotImplemented
        return self.key == other.key and self._assumptions == other._assumptions

    def __repr__(self) -> str:
        return f"SpectrumMatch({self.key!r}, {len(self)} hits)"
