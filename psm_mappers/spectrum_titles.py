"""Lookup of spectrum titles for result files that only store spectrum indexes."""

import logging
import os
import typing as tp

from pyteomics import mgf

logger = logging.getLogger(__name__)


class SpectrumTitleProvider:
    """Maps the index of a spectrum in a spectrum file to its title."""

    def title(self, spectrum_file: str, index: int) -> tp.Optional[str]:
        raise NotImplementedError


class DictTitleProvider(SpectrumTitleProvider):
    """Titles given as `{spectrum_file: {index: title}}`."""

    def __init__(self, titles: tp.Mapping[str, tp.Mapping[int, str]]) -> None:
        self._titles = titles

    def title(self, spectrum_file, index):
        return self._titles.get(spectrum_file, {}).get(index)


class MgfTitleProvider(SpectrumTitleProvider):
    """
    Titles read from the .mgf files of a directory.

    Each file is read once, on the first lookup of one of its spectra.
    Unknown files and indexes yield no title.
    """

    def __init__(self, mgf_dir: str) -> None:
        self.mgf_dir = mgf_dir
        self._titles: tp.Dict[str, tp.Dict[int, str]] = {}

    def _load(self, spectrum_file: str) -> tp.Dict[int, str]:
        mgf_path = os.path.join(self.mgf_dir, spectrum_file)
        if not os.path.exists(mgf_path):
            logger.warning("Spectrum file %s not found, spectra keyed by index.", mgf_path)
            return {}
        with mgf.read(mgf_path, use_index=False, read_charges=False) as spectra:
            titles = {idx: spectrum["params"]["title"] for idx, spectrum in enumerate(spectra)}
        logger.debug("Read %d spectrum titles from %s", len(titles), mgf_path)
        return titles

    def title(self, spectrum_file, index):
        if spectrum_file not in self._titles:
            self._titles[spectrum_file] = self._load(spectrum_file)
        return self._titles[spectrum_file].get(index)
