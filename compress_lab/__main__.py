"""
Entry point for running the compression experiments as a module.

Usage:
    python -m compress_lab --neural       # Train the complex block autoencoder
    python -m compress_lab --kronecker    # Evolve a Kronecker factorization
    python -m compress_lab                # Show help

Options:
    --image PATH        Input image (default: images/image01.png)
    --output-dir DIR    Where artifacts are written (default: output)
    --scale N           Shrink the input by an integer factor first
    --seed N            Random seed (default: 7)
    --iterations N      Training iterations (default: 2048)
    --generations N     Generation budget (default: 256)
    --workers N         Parallel fitness workers (default: cpu_count - 1)
    --checkpoint-dir    Save evolution checkpoints here
    --quiet             Suppress per-iteration output
"""

import argparse
import sys

from .core.training import TrainingConfig
from .evolution.engine import EvolutionConfig
from .pipelines import DEFAULT_IMAGE, run_neural, run_kronecker


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='compress_lab',
        description='Experimental image compression: complex autoencoder or Kronecker evolution',
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        '--neural', action='store_true',
        help='neural compress mode'
    )
    mode.add_argument(
        '--kronecker', action='store_true',
        help='kronecker compress mode'
    )
    parser.add_argument(
        '--image', type=str, default=DEFAULT_IMAGE,
        help=f'Input image (default: {DEFAULT_IMAGE})'
    )
    parser.add_argument(
        '--output-dir', type=str, default='output',
        help='Directory for output artifacts (default: output)'
    )
    parser.add_argument(
        '--scale', type=int, default=1,
        help='Shrink the input image by this factor (default: 1)'
    )
    parser.add_argument(
        '--seed', type=int, default=7,
        help='Random seed for reproducibility (default: 7)'
    )
    parser.add_argument(
        '--iterations', type=int, default=2048,
        help='Training iterations for --neural (default: 2048)'
    )
    parser.add_argument(
        '--generations', type=int, default=256,
        help='Generation budget for --kronecker (default: 256)'
    )
    parser.add_argument(
        '--workers', type=int, default=None,
        help='Number of parallel workers (default: cpu_count - 1)'
    )
    parser.add_argument(
        '--checkpoint-dir', type=str, default=None,
        help='Directory for evolution checkpoints'
    )
    parser.add_argument(
        '--quiet', action='store_true',
        help='Suppress progress output'
    )
    return parser, parser.parse_args(argv)


def main(argv=None) -> int:
    parser, args = parse_args(argv)
    verbose = not args.quiet

    if args.neural:
        config = TrainingConfig(iterations=args.iterations, seed=args.seed)
        run_neural(args.image, args.output_dir, scale=args.scale, config=config, verbose=verbose)
    elif args.kronecker:
        config = EvolutionConfig(
            n_generations=args.generations,
            seed=args.seed,
            n_workers=args.workers,
            checkpoint_dir=args.checkpoint_dir,
            checkpoint_every=10 if args.checkpoint_dir else 0,
        )
        run_kronecker(args.image, args.output_dir, scale=args.scale, config=config, verbose=verbose)
    else:
        parser.print_help()
    return 0


if __name__ == '__main__':
    sys.exit(main())
