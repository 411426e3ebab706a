"""This module contains DTO for parsing configuration."""
import enum
import yaml
import typing as tp
from pydantic import BaseModel, field_validator

from .exceptions import UnknownSpecificityRuleError


class MissingColumnPolicy(str, enum.Enum):
    # Log a warning and read the file without the column
    warn = "warn"
    # Fail before reading any record
    fail = "fail"


class SpecificityRule(str, enum.Enum):
    protein_n_term = "protein_n_term"
    peptide_n_term = "peptide_n_term"
    protein_c_term = "protein_c_term"
    peptide_c_term = "peptide_c_term"
    none = "none"

    @property
    def n_terminal(self) -> bool:
        return self in (SpecificityRule.protein_n_term, SpecificityRule.peptide_n_term)

    @property
    def c_terminal(self) -> bool:
        return self in (SpecificityRule.protein_c_term, SpecificityRule.peptide_c_term)


CV_SPECIFICITY_RULES = {
    "MS:1001189": SpecificityRule.peptide_n_term,
    "MS:1002057": SpecificityRule.protein_n_term,
    "MS:1001190": SpecificityRule.peptide_c_term,
    "MS:1002058": SpecificityRule.protein_c_term,
    "MS:1001875": SpecificityRule.none,
    "MS:1001876": SpecificityRule.none,
}


def specificity_rule(code: str) -> SpecificityRule:
    """Interpret a specificity rule code.

    Parameters
    ----------
    code : str
        CV accession or SpecificityRule name.

    Returns
    -------
    rule : SpecificityRule
        The rule the code stands for.
    """
    if code in CV_SPECIFICITY_RULES:
        return CV_SPECIFICITY_RULES[code]
    try:
        return SpecificityRule(code)
    except ValueError:
        raise UnknownSpecificityRuleError(code) from None


class SearchModification(BaseModel):
    # Modification name, e.g. "Carbamidomethylation of C"
    name: str = ""
    # CV or Unimod accession, e.g. "UNIMOD:4"
    accession: tp.Optional[str] = None
    # Monoisotopic mass difference (Da)
    mass_delta: float
    # Residues the modification applies to.
    # Empty string or "." means any residue
    residues: str = ""
    # Specificity rule codes: CV accessions (e.g. "MS:1002057")
    # or protein_n_term, peptide_n_term, protein_c_term, peptide_c_term, none
    specificity_rules: tp.List[str] = []

    @field_validator("specificity_rules")
    @classmethod
    def check_specificity_rules(cls, codes):
        # UnknownSpecificityRuleError is not a ValueError and is raised as is
        for code in codes:
            specificity_rule(code)
        return codes


class ModificationCode(BaseModel):
    # Unmodified residue
    residue: str
    # Modification tag carried by the residue
    modification: str


class SearchConfig(BaseModel):
    """Search settings needed to interpret modifications."""
    # Modifications applied to every matching residue
    fixed_modifications: tp.List[SearchModification] = []
    # Symbols used by de novo engines for modified residues
    modification_codes: tp.Dict[str, ModificationCode] = {}
    # Max difference (Da) between two mass deltas of the same modification
    mass_tolerance: float = 0.01


class SequenceMatchingConfig(BaseModel):
    # Length of the sequence keys used to index de novo tags
    tag_key_length: int = 3
    # Treat I and L as the same residue in sequence keys
    isoleucine_to_leucine: bool = True


class ParsingConfig(BaseModel):
    # Behavior when an optional column (e.g. retention time) is missing
    missing_optional_columns: MissingColumnPolicy = MissingColumnPolicy.warn
    # Read buffer size (bytes)
    buffer_size: int = 100 * 1024


class Config(BaseModel):
    """Keeps all result parsing options."""
    search: SearchConfig = SearchConfig()
    sequence_matching: SequenceMatchingConfig = SequenceMatchingConfig()
    parsing: ParsingConfig = ParsingConfig()


def get_config(config_path: str) -> Config:
    """Parse .YAML file with parsing options and build options object.

    Parameters:
        config_path: Path to configuration .YAML file.

    Returns:
        Options serialized in object.
    """
    with open(config_path, "r") as yf:
        yml_file = yaml.safe_load(yf) or {}
        config = Config.model_validate(yml_file)
    return config
