"""Tabular representation of spectrum matches."""

import numpy as np
import pandas as pd

from .matches import PeptideAssumption, TagAssumption

COLUMNS = [
    "spectrum_id",
    "spectrum_file",
    "spectrum_title",
    "advocate",
    "assumption",
    "rank",
    "is_primary",
    "charge",
    "sequence",
    "e_value",
    "raw_score",
    "proteins",
    "n_gap",
    "c_gap",
    "identification_file",
]


def _format_modification(modification):
    # "15.9949@M" is written as a delta mass, other tags as they are
    mass, separator, _ = modification.partition("@")
    if not separator:
        return modification
    try:
        float(mass)
    except ValueError:
        return modification
    if not mass.startswith("-"):
        mass = "+" + mass
    return mass


def format_proforma(sequence, modification_matches, include_fixed=True):
    """
    Write a sequence with its modifications in ProForma notation,
    e.g. `TAM[+15.9949]AGK`.

    Parameters
    ----------
    sequence : str
        Unmodified sequence.
    modification_matches : list of ModificationMatch
        Modifications localized on the sequence.
    include_fixed : bool
        Also write the fixed modifications.

    Returns
    -------
    proforma_sequence : str
        Sequence in ProForma notation.
    """
    by_site = {}
    for modification_match in modification_matches:
        if modification_match.variable or include_fixed:
            by_site.setdefault(modification_match.site, []).append(modification_match.modification)
    tokens = []
    for site, aa in enumerate(sequence, start=1):
        tokens.append(aa + "".join(f"[{_format_modification(m)}]" for m in by_site.get(site, [])))
    return "".join(tokens)


def to_dataframe(spectrum_matches, include_fixed=True):
    """
    Collect the assumptions of spectrum matches in a dataframe,
    one row per assumption.

    Parameters
    ----------
    spectrum_matches : iterable of SpectrumMatch
        Spectrum matches returned by a reader.
    include_fixed : bool
        Write the fixed modifications in the sequences.

    Returns
    -------
    output_data : pd.DataFrame
        Dataframe with the `COLUMNS` columns.
    """
    rows = []
    for spectrum_match in spectrum_matches:
        for assumption in spectrum_match.assumptions():
            row = {
                "spectrum_id": spectrum_match.key,
                "spectrum_file": spectrum_match.spectrum_file,
                "spectrum_title": spectrum_match.spectrum_title,
                "advocate": assumption.advocate.name,
                "rank": assumption.rank,
                "is_primary": assumption.is_primary,
                "charge": assumption.charge.signed,
                "sequence": format_proforma(
                    assumption.sequence, assumption.modification_matches, include_fixed
                ),
                "e_value": assumption.e_value,
                "raw_score": assumption.raw_score if assumption.raw_score is not None else np.nan,
                "identification_file": assumption.identification_file,
            }
            if isinstance(assumption, PeptideAssumption):
                row["assumption"] = "peptide"
                row["proteins"] = ";".join(assumption.peptide.protein_accessions)
                row["n_gap"] = row["c_gap"] = np.nan
            elif isinstance(assumption, TagAssumption):
                row["assumption"] = "tag"
                row["proteins"] = ""
                row["n_gap"] = assumption.tag.n_gap
                row["c_gap"] = assumption.tag.c_gap
            rows.append(row)
    return pd.DataFrame(rows, columns=COLUMNS)
