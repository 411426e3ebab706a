"""Classification of localized modifications as fixed or variable.

Locations follow the mzIdentML convention: 0 is the N-terminus,
``len(sequence) + 1`` the C-terminus and 1..len(sequence) the residues.
"""

import typing as tp

import numpy as np

from .config import SearchConfig, SearchModification, SpecificityRule, specificity_rule
from .matches import ModificationMatch

# "unknown modification", never used to match a fixed modification
UNKNOWN_MODIFICATION_ACCESSION = "MS:1001460"


def location_residue(sequence: str, location: int) -> str:
    """Residue carrying a modification at `location` (termini included)."""
    if location == 0:
        return sequence[0]
    if location == len(sequence) + 1:
        return sequence[-1]
    if not 1 <= location <= len(sequence):
        raise ValueError(f"Modification location {location} is outside of sequence {sequence}")
    return sequence[location - 1]


def remap_terminal_site(location: int, length: int) -> int:
    """Move terminal locations onto the first or last residue."""
    if location == 0:
        return 1
    if location == length + 1:
        return length
    return location


def modification_tag(mass_delta: float, residue: str) -> str:
    """Represent a modification as `{mass}@{residue}` string."""
    return f"{mass_delta}@{residue}"


def _same_modification(rule: SearchModification, accession, mass_delta, tolerance) -> bool:
    if (
        accession is not None
        and rule.accession is not None
        and accession != UNKNOWN_MODIFICATION_ACCESSION
        and accession == rule.accession
    ):
        return True
    if mass_delta is None:
        return False
    return bool(np.isclose(rule.mass_delta, mass_delta, rtol=0.0, atol=tolerance))


def _location_allowed(rule: SpecificityRule, location: int, length: int) -> bool:
    if rule.n_terminal:
        return location == 0
    if rule.c_terminal:
        return location == length + 1
    return True


def find_fixed_rule(
    sequence: str,
    location: int,
    fixed_modifications: tp.Sequence[SearchModification],
    mass_delta: tp.Optional[float] = None,
    accession: tp.Optional[str] = None,
    tolerance: float = 0.01,
) -> tp.Optional[SearchModification]:
    """
    Find the first fixed modification rule explaining a modification.

    A rule applies when the accession or the mass delta matches,
    every specificity rule accepts the location and the residue
    at the location is one of the rule residues.

    Parameters
    ----------
    sequence : str
        Unmodified peptide sequence.
    location : int
        Modification location, 0 and len(sequence) + 1 for the termini.
    fixed_modifications : Sequence[SearchModification]
        Fixed modifications of the search.
    mass_delta : float, optional
        Mass difference of the modification.
    accession : str, optional
        CV or Unimod accession of the modification.
    tolerance : float
        Max difference between two matching mass deltas (Da).

    Returns
    -------
    rule : SearchModification or None
        The matching rule, None for a variable modification.
    """
    residue = location_residue(sequence, location)
    for rule in fixed_modifications:
        if not _same_modification(rule, accession, mass_delta, tolerance):
            continue
        rules = [specificity_rule(code) for code in rule.specificity_rules]
        if not all(_location_allowed(r, location, len(sequence)) for r in rules):
            continue
        if not rule.residues or "." in rule.residues or residue in rule.residues:
            return rule
    return None


def resolve_modification(
    sequence: str,
    location: int,
    search_config: tp.Optional[SearchConfig],
    mass_delta: tp.Optional[float] = None,
    accession: tp.Optional[str] = None,
    tag: tp.Optional[str] = None,
) -> ModificationMatch:
    """Build the modification match of a located modification.

    Parameters
    ----------
    sequence : str
        Unmodified peptide sequence.
    location : int
        Modification location, 0 and len(sequence) + 1 for the termini.
    search_config : SearchConfig, optional
        Search settings with the fixed modifications.
        Without settings every modification is variable.
    mass_delta : float, optional
        Mass difference of the modification.
    accession : str, optional
        Accession of the modification.
    tag : str, optional
        Identifier of the modification. Defaults to `{mass}@{residue}`.

    Returns
    -------
    modification_match : ModificationMatch
        Modification with its terminal location moved onto a residue.
    """
    if mass_delta is None and accession is None:
        raise ValueError("A modification needs a mass delta or an accession")
    if search_config is None:
        search_config = SearchConfig()
    rule = find_fixed_rule(
        sequence,
        location,
        search_config.fixed_modifications,
        mass_delta=mass_delta,
        accession=accession,
        tolerance=search_config.mass_tolerance,
    )
    if tag is None:
        residue = location_residue(sequence, location)
        tag = modification_tag(mass_delta, residue) if mass_delta is not None else f"{accession}@{residue}"
    site = remap_terminal_site(location, len(sequence))
    return ModificationMatch(tag, site, variable=rule is None)
