"""Expansion of sequences with ambiguous residues into concrete peptides."""

import itertools
import typing as tp

from pyteomics.parser import std_amino_acids

from .matches import Peptide, PeptideAssumption

# Residues each ambiguity code stands for
AMBIGUITY_CODES = {
    "B": ("D", "N"),
    "J": ("I", "L"),
    "Z": ("E", "Q"),
    "X": tuple(sorted(std_amino_acids)),
}


def has_combination(sequence: str) -> bool:
    """Check whether `sequence` contains at least one ambiguity code."""
    return any(aa in AMBIGUITY_CODES for aa in sequence)


class SequenceCombinations:
    """Concrete sequences explained by a sequence with ambiguity codes.

    Iterating yields the cartesian product of the residues of every
    ambiguous position, lazily and as many times as needed.
    A sequence without ambiguity codes yields only itself.
    """

    def __init__(self, sequence: str) -> None:
        self.sequence = sequence
        self._choices = [AMBIGUITY_CODES.get(aa, (aa,)) for aa in sequence]

    def __iter__(self) -> tp.Iterator[str]:
        for residues in itertools.product(*self._choices):
            yield "".join(residues)

    def __len__(self) -> int:
        n_combinations = 1
        for choices in self._choices:
            n_combinations *= len(choices)
        return n_combinations


def expand_peptide(peptide: Peptide) -> tp.Iterator[Peptide]:
    """Concrete peptides of `peptide`, with copies of its modifications."""
    for sequence in SequenceCombinations(peptide.sequence):
        yield Peptide(
            sequence,
            [modification_match.copy() for modification_match in peptide.modification_matches],
            peptide.protein_accessions,
        )


def expand_assumption(assumption: PeptideAssumption) -> tp.Iterator[PeptideAssumption]:
    """Assumptions for every concrete peptide of `assumption`."""
    for peptide in expand_peptide(assumption.peptide):
        yield PeptideAssumption(
            peptide,
            assumption.rank,
            assumption.advocate,
            assumption.charge,
            assumption.e_value,
            assumption.raw_score,
            assumption.identification_file,
        )
