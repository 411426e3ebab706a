import pytest

from psm_mappers.combinations import (
    SequenceCombinations,
    expand_assumption,
    expand_peptide,
    has_combination,
)
from psm_mappers.matches import ModificationMatch, Peptide


def test_x_expands_to_every_amino_acid():
    combinations = SequenceCombinations("PEPXIDE")
    sequences = list(combinations)
    assert len(sequences) == 20
    assert len(combinations) == 20
    assert len(set(sequences)) == 20
    assert "PEPTIDE" in sequences
    assert all(s.startswith("PEP") and s.endswith("IDE") for s in sequences)


@pytest.mark.parametrize(
    "sequence, n_combinations",
    [("PEPBIDE", 2), ("JBZ", 8), ("XX", 400), ("PEPTIDE", 1)],
)
def test_number_of_combinations(sequence, n_combinations):
    assert len(list(SequenceCombinations(sequence))) == n_combinations


def test_sequence_without_ambiguity_yields_itself():
    assert not has_combination("PEPTIDE")
    assert has_combination("PEPJIDE")
    assert list(SequenceCombinations("PEPTIDE")) == ["PEPTIDE"]


def test_iteration_restarts():
    combinations = SequenceCombinations("BJ")
    assert list(combinations) == list(combinations) == ["DI", "DL", "NI", "NL"]


def test_expanded_peptides_own_their_modifications():
    peptide = Peptide("MEPBK", [ModificationMatch("15.9949@M", 1)], ["P1"])
    first, second = expand_peptide(peptide)
    assert [first.sequence, second.sequence] == ["MEPDK", "MEPNK"]
    first.modification_matches[0].site = 2
    assert second.modification_matches[0].site == 1
    assert peptide.modification_matches[0].site == 1
    assert second.protein_accessions == ["P1"]


def test_expand_assumption(peptide_assumption):
    assumption = peptide_assumption("PEPZK", rank=2, e_value=0.5)
    expanded = list(expand_assumption(assumption))
    assert [a.sequence for a in expanded] == ["PEPEK", "PEPQK"]
    assert {a.rank for a in expanded} == {2}
    assert {a.e_value for a in expanded} == {0.5}
