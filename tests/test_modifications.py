import pytest

from psm_mappers.config import SearchConfig, SearchModification
from psm_mappers.exceptions import UnknownSpecificityRuleError
from psm_mappers.modifications import (
    SpecificityRule,
    find_fixed_rule,
    location_residue,
    remap_terminal_site,
    resolve_modification,
    specificity_rule,
)

CARBAMIDOMETHYL = SearchModification(
    name="Carbamidomethyl", accession="UNIMOD:4", mass_delta=57.021464, residues="C"
)
ACETYL_N_TERM = SearchModification(
    name="Acetyl", accession="UNIMOD:1", mass_delta=42.010565, specificity_rules=["MS:1002057"]
)
AMIDATED_C_TERM = SearchModification(
    name="Amidated", mass_delta=-0.984016, residues=".", specificity_rules=["peptide_c_term"]
)


@pytest.fixture
def search_config():
    return SearchConfig(fixed_modifications=[CARBAMIDOMETHYL, ACETYL_N_TERM, AMIDATED_C_TERM])


def test_fixed_and_variable_modifications(search_config):
    fixed = resolve_modification("TAMCGK", 4, search_config, mass_delta=57.021464)
    assert fixed.variable is False
    assert fixed.site == 4
    assert fixed.modification == "57.021464@C"

    variable = resolve_modification("TAMCGK", 3, search_config, mass_delta=15.9949)
    assert variable.variable is True
    assert variable.modification == "15.9949@M"


def test_mass_tolerance(search_config):
    assert not resolve_modification("TAMCGK", 4, search_config, mass_delta=57.03).variable
    assert resolve_modification("TAMCGK", 4, search_config, mass_delta=57.05).variable

    strict = SearchConfig(fixed_modifications=[CARBAMIDOMETHYL], mass_tolerance=0.001)
    assert resolve_modification("TAMCGK", 4, strict, mass_delta=57.03).variable


def test_residue_must_match(search_config):
    assert resolve_modification("TAMCGK", 6, search_config, mass_delta=57.021464).variable


def test_terminal_specificity(search_config):
    n_term = resolve_modification("TAMCGK", 0, search_config, mass_delta=42.010565)
    assert n_term.variable is False
    assert n_term.site == 1
    assert n_term.modification == "42.010565@T"

    # same mass on a residue is not an N-terminal modification
    assert resolve_modification("TAMCGK", 2, search_config, mass_delta=42.010565).variable

    c_term = resolve_modification("TAMCGK", 7, search_config, mass_delta=-0.984016)
    assert c_term.variable is False
    assert c_term.site == 6
    assert resolve_modification("TAMCGK", 6, search_config, mass_delta=-0.984016).variable


def test_accession_match(search_config):
    match = resolve_modification("TAMCGK", 4, search_config, accession="UNIMOD:4")
    assert match.variable is False
    assert match.modification == "UNIMOD:4@C"


def test_unknown_modification_accession_never_matches():
    rule = SearchModification(accession="MS:1001460", mass_delta=100.0)
    assert find_fixed_rule("PEPTIDE", 1, [rule], mass_delta=3.0, accession="MS:1001460") is None


def test_without_search_config_everything_is_variable():
    assert resolve_modification("TAMCGK", 4, None, mass_delta=57.021464).variable


def test_modification_needs_mass_or_accession():
    with pytest.raises(ValueError):
        resolve_modification("TAMCGK", 4, None)


def test_unknown_specificity_rule():
    with pytest.raises(UnknownSpecificityRuleError) as error:
        SearchModification(mass_delta=57.021464, residues="C", specificity_rules=["MS:0000000"])
    assert error.value.code == "MS:0000000"


def test_unknown_specificity_rule_of_unvalidated_rule():
    rule = SearchModification.model_construct(mass_delta=57.021464, residues="C", specificity_rules=["MS:0000000"])
    with pytest.raises(UnknownSpecificityRuleError) as error:
        find_fixed_rule("TAMCGK", 4, [rule], mass_delta=57.021464)
    assert "MS:0000000" in str(error.value)


def test_specificity_rule_codes():
    assert specificity_rule("MS:1002057") is SpecificityRule.protein_n_term
    assert specificity_rule("MS:1001190") is SpecificityRule.peptide_c_term
    assert specificity_rule("none") is SpecificityRule.none


def test_locations():
    assert location_residue("PEPTIDE", 0) == "P"
    assert location_residue("PEPTIDE", 8) == "E"
    assert location_residue("PEPTIDE", 4) == "T"
    with pytest.raises(ValueError):
        location_residue("PEPTIDE", 9)
    assert remap_terminal_site(0, 7) == 1
    assert remap_terminal_site(8, 7) == 7
    assert remap_terminal_site(5, 7) == 5
