"""
Script to convert identification result files
to one table of spectrum matches.
"""

import argparse
import logging
import os

import pandas as pd
from dotenv import load_dotenv

from .config import Config, get_config
from .export import to_dataframe
from .progress import ProgressHandler
from .readers import get_reader
from .spectrum_titles import MgfTitleProvider


def build_parser():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--input", required=True, nargs="+", help="Paths to the identification result files."
    )
    parser.add_argument(
        "--output", default="outputs.csv", help="Path to the output .csv file."
    )
    parser.add_argument(
        "--config",
        default=os.environ.get("PSM_MAPPERS_CONFIG"),
        help="Path to the .yaml parsing configuration.",
    )
    parser.add_argument(
        "--mgf_dir",
        default=os.environ.get("SPECTRA_DIR"),
        help="Directory with the .mgf files, used to look up spectrum titles.",
    )
    parser.add_argument(
        "--expand_ambiguous",
        action="store_true",
        help="Replace sequences with ambiguous residues by all their concrete sequences.",
    )
    parser.add_argument("--progress", action="store_true", help="Show progress bars.")
    parser.add_argument("--log_level", default="INFO")
    return parser


def main(argv=None):
    load_dotenv()
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = get_config(args.config) if args.config else Config()
    spectrum_titles = MgfTitleProvider(args.mgf_dir) if args.mgf_dir else None

    output_frames = []
    for input_path in args.input:
        progress = ProgressHandler(desc=os.path.basename(input_path), disable=not args.progress)
        with get_reader(input_path, config.parsing) as reader:
            try:
                spectrum_matches = reader.parse(
                    progress,
                    config.search,
                    config.sequence_matching,
                    args.expand_ambiguous,
                    spectrum_titles,
                )
            finally:
                progress.close()
            print(f"{input_path}: {len(spectrum_matches)} spectrum matches")
            for software, versions in reader.software_versions().items():
                print(f"  {software} {', '.join(versions) or '(version unknown)'}")
        output_frames.append(to_dataframe(spectrum_matches))

    output_data = pd.concat(output_frames, ignore_index=True)
    output_data.to_csv(args.output, index=False)
    print(f"Wrote {len(output_data)} rows to {args.output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
