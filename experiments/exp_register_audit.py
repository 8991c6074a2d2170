"""
Experiment: Register Audit

Scans photographed attendance registers, exports their rows and scores
every signed row against the signer's trained classifier.

With --enroll, every signed row is first used as a genuine sample for its
own identity, with the other rows' signatures as forgeries. This builds the
per-identity networks from a reference register.

Outputs (one subdirectory per register image):
- <output_dir>/<image>/register.txt     tab-delimited register export
- <output_dir>/<image>/entries/*.txt    one feature file per signed entry
- <output_dir>/<image>/debug/*.png      pipeline checkpoints (--debug)
- <output_dir>/*_report.json            scores and run parameters
"""

import sys
import argparse
from dataclasses import asdict
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sigaudit.errors import StructuralError
from sigaudit.models.classifier import Classifier
from sigaudit.registers.scanner import RegisterScanner
from sigaudit.utils.config import DEFAULT_CONFIG, get_extra_config, load_config
from sigaudit.utils.io import discover_images, sanitize_id, sanitize_name, save_image
from sigaudit.utils.logger import AuditLogger, ProgressTracker, get_logger


def enroll(register, config, logger: AuditLogger) -> int:
    """
    Train one classifier per signed entry.

    Returns:
        Number of trained networks
    """
    signed = [entry for entry in register.entries if entry.is_signed]
    tracker = ProgressTracker(len(signed), logger)

    for entry in signed:
        forgeries = [other.signature for other in signed if other is not entry]
        Classifier(entry, config.classifier).train([entry.signature], forgeries)
        tracker.update()

    tracker.finish()
    return len(signed)


def audit_register(register, config, output_path: Path, logger: AuditLogger) -> dict:
    """
    Export a scanned register and score its signed rows.

    Returns:
        Counts of signed, accepted, rejected and unknown rows
    """
    counts = {'rows': len(register.entries), 'signed': 0, 'accepted': 0, 'rejected': 0, 'unknown': 0}

    for r, row in enumerate(register.rows[1:], start=1):
        entry = row.entry
        if not entry.is_signed:
            continue
        counts['signed'] += 1

        entry_file = f"{sanitize_name(entry.name)}_{sanitize_id(entry.id)}.txt"
        entry.export(output_path / "entries" / entry_file)

        result = Classifier(entry, config.classifier).run()
        logger.log_score(r, entry.display_name, result)
        if not result.is_known:
            counts['unknown'] += 1
        elif result.value > 0:
            counts['accepted'] += 1
        else:
            counts['rejected'] += 1

    return counts


def experiment_options(config, enroll_first: bool = False, debug: bool = False, expected_path: str = None) -> dict:
    """
    Combine command-line switches with the config's `experiment` section.

    A switch given on the command line always wins; otherwise the
    `experiment.enroll`, `experiment.save_debug` and `experiment.expected`
    keys are used.
    """
    return {
        'enroll_first': enroll_first or bool(get_extra_config(config, 'experiment.enroll', False)),
        'debug': debug or bool(get_extra_config(config, 'experiment.save_debug', False)),
        'expected_path': expected_path or get_extra_config(config, 'experiment.expected'),
    }


def run_experiment(
    image_path: str,
    output_dir: str,
    config_path: str = None,
    columns: int = None,
    expected_path: str = None,
    enroll_first: bool = False,
    debug: bool = False
):
    """
    Run the register audit.

    Args:
        image_path: Register photograph, or a directory of photographs
        output_dir: Path for output files
        config_path: Optional path to config file
        columns: Number of register columns (overrides the config)
        expected_path: Optional register export to compare against
        enroll_first: Train classifiers from each register before scoring
        debug: Save the scanner's intermediate images
    """
    config = load_config(config_path) if config_path else DEFAULT_CONFIG
    options = experiment_options(config, enroll_first, debug, expected_path)
    enroll_first = options['enroll_first']
    debug = options['debug']
    expected_path = options['expected_path']

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    logger = get_logger("register_audit", str(output_path), config.logging.level)
    logger.log_params({
        'image': image_path,
        'columns': columns or config.scan.columns,
        'enroll': enroll_first,
        'scan': asdict(config.scan),
        'classifier': asdict(config.classifier),
    })

    source = Path(image_path)
    images = discover_images(source) if source.is_dir() else [source]
    logger.info(f"Found {len(images)} register images")

    totals = {'registers': 0, 'failed': 0}
    registers = []
    for image in images:
        register_dir = output_path / image.stem

        observer = None
        if debug:
            def observer(checkpoint, picture, _dir=register_dir):
                save_image(picture, _dir / "debug" / f"{checkpoint}.png")

        scanner = RegisterScanner(config.scan, config.signature, observer=observer)
        try:
            register = scanner.scan_file(image, columns=columns)
        except StructuralError as e:
            logger.error(f"{image.name}: {e}")
            totals['failed'] += 1
            continue

        logger.info(f"{image.name}: scanned {len(register.entries)} entries")
        register.export(register_dir / "register.txt")

        if expected_path:
            differences = register.compare(expected_path)
            if differences:
                logger.warning(f"Rows differing from {expected_path}:\n{differences}")
            else:
                logger.info(f"Register matches {expected_path}")

        if enroll_first:
            trained = enroll(register, config, logger)
            logger.info(f"Trained {trained} networks")

        counts = audit_register(register, config, register_dir, logger)
        for key, value in counts.items():
            totals[key] = totals.get(key, 0) + value
        totals['registers'] += 1
        registers.append(register)

    logger.log_results(totals)

    if config.logging.save_results:
        logger.save_report()

    return registers


def main():
    parser = argparse.ArgumentParser(
        description="Scan registers and verify their signatures"
    )
    parser.add_argument(
        "--image",
        type=str,
        required=True,
        help="Path to a register photograph or a directory of photographs"
    )
    parser.add_argument(
        "--output_dir",
        type=str,
        default="results/register_audit",
        help="Output directory for results"
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--columns",
        type=int,
        default=None,
        help="Number of register columns"
    )
    parser.add_argument(
        "--expected",
        type=str,
        default=None,
        help="Register export to compare the scan against"
    )
    parser.add_argument(
        "--enroll",
        action="store_true",
        help="Train classifiers from each register before scoring"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Save intermediate pipeline images"
    )

    args = parser.parse_args()

    run_experiment(
        image_path=args.image,
        output_dir=args.output_dir,
        config_path=args.config,
        columns=args.columns,
        expected_path=args.expected,
        enroll_first=args.enroll,
        debug=args.debug
    )


if __name__ == "__main__":
    main()
