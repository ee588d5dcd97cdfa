"""
LeafScan-Hybrid: Command Line Interface
========================================
Analyze leaf images from the terminal.

Usage:
    leafscan analyze leaf.jpg [--fallback] [--model-dir DIR] [--output result.json]
    leafscan fingerprint leaf.jpg other.png
"""

import argparse
import json
import logging
import sys

from leafscan.config import get_config
from leafscan.exceptions import LeafScanError
from leafscan.logger_config import setup_from_config
from leafscan.services import ContentFingerprinter, InferenceService, ModelRuntime
from leafscan.services.severity import severity_level

logger = logging.getLogger('leafscan.cli')


def build_service(args) -> InferenceService:
    cfg = get_config()
    runtime = None
    if args.model_dir:
        runtime = ModelRuntime(
            args.model_dir,
            classifier_file=cfg.CLASSIFIER_MODEL,
            segmentation_file=cfg.SEGMENTATION_MODEL,
            num_threads=cfg.NUM_THREADS,
        )
    return InferenceService(config=cfg, runtime=runtime)


def analyze_images(args) -> int:
    """Analyze one or more image files and print the results."""
    service = build_service(args)
    results = []

    try:
        if args.fallback:
            service.use_fallback()
        else:
            service.load_models(fallback_on_failure=args.allow_fallback)

        for path in args.images:
            result = service.analyze(path)
            results.append({'image': path, **result.to_dict()})

            print("\n" + "=" * 50)
            print(f"🌿 {path}")
            print("=" * 50)
            print(f"📋 Disease: {result.disease}")
            print(f"🎯 Confidence: {result.confidence:.1%}")
            print(f"🩺 Severity: {result.severity:.1f}% ({severity_level(result.severity)})")
            print(f"⚙️ Source: {result.source}")
    finally:
        service.dispose()

    if args.output:
        with open(args.output, 'w') as f:
            json.dump(results, f, indent=2)
        print(f"\n✓ Results saved to: {args.output}")
    return 0


def print_fingerprints(args) -> int:
    fingerprinter = ContentFingerprinter()
    for path in args.images:
        print(f"{fingerprinter.fingerprint(path)}  {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='leafscan',
        description="LeafScan-Hybrid: plant leaf disease detection",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    analyze_parser = subparsers.add_parser('analyze', help='Analyze leaf images')
    analyze_parser.add_argument('images', nargs='+', help='Image files')
    analyze_parser.add_argument('--model-dir', '-m', type=str, default=None,
                                help='Directory holding the .tflite models')
    analyze_parser.add_argument('--fallback', action='store_true',
                                help='Skip the models and use deterministic fallback predictions')
    analyze_parser.add_argument('--allow-fallback', action='store_true', default=None,
                                help='Fall back if the models cannot be loaded')
    analyze_parser.add_argument('--output', '-o', type=str, help='Output JSON file')

    fp_parser = subparsers.add_parser('fingerprint', help='Print content fingerprints')
    fp_parser.add_argument('images', nargs='+', help='Image files')

    return parser


def main(argv=None) -> int:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_from_config(get_config())

    try:
        if args.command == 'analyze':
            return analyze_images(args)
        if args.command == 'fingerprint':
            return print_fingerprints(args)
    except LeafScanError as e:
        logger.error(str(e))
        return 1

    parser.print_help()
    return 2


if __name__ == '__main__':
    sys.exit(main())
