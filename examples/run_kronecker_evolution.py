#!/usr/bin/env python3
"""
Kronecker Factorization Search

Evolves a chain of 2x2 factor matrices whose Kronecker product approximates
the grayscale window of an image, with periodic checkpoints and resume.

Usage:
    python examples/run_kronecker_evolution.py [options]

Options:
    --image PATH        Input image (default: images/image01.png)
    --size N            Target window side, a power of two (default: 1024)
    --generations N     Generation budget (default: 256)
    --workers N         Parallel workers (default: cpu_count - 1)
    --seed N            Random seed (default: 7)
    --resume PATH       Resume from checkpoint file
    --checkpoint-every N  Generations between checkpoints (default: 10)
"""

import argparse
import sys
import time
from pathlib import Path
from multiprocessing import cpu_count

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from compress_lab import imaging
from compress_lab.evolution.checkpoint import save_genome
from compress_lab.evolution.engine import EvolutionEngine, EvolutionConfig
from compress_lab.evolution.fitness import grayscale_target, normalized_fitness
from compress_lab.evolution.kronecker import reconstruct
from compress_lab.pipelines import DEFAULT_IMAGE


def parse_args():
    parser = argparse.ArgumentParser(
        description='Evolve a Kronecker factorization of an image'
    )
    parser.add_argument(
        '--image', type=str, default=DEFAULT_IMAGE,
        help=f'Input image (default: {DEFAULT_IMAGE})'
    )
    parser.add_argument(
        '--size', type=int, default=1024,
        help='Target window side, a power of two (default: 1024)'
    )
    parser.add_argument(
        '--generations', type=int, default=256,
        help='Generation budget (default: 256)'
    )
    parser.add_argument(
        '--workers', type=int, default=None,
        help='Number of parallel workers (default: cpu_count - 1)'
    )
    parser.add_argument(
        '--seed', type=int, default=7,
        help='Random seed for reproducibility (default: 7)'
    )
    parser.add_argument(
        '--resume', type=str, default=None,
        help='Path to checkpoint file to resume from'
    )
    parser.add_argument(
        '--checkpoint-every', type=int, default=10,
        help='Generations between checkpoints (default: 10)'
    )
    return parser.parse_args()


def print_banner():
    print("=" * 70)
    print("   COMPRESS LAB - Kronecker Factorization Search")
    print("=" * 70)


def print_config(config: EvolutionConfig, n_workers: int, image_path: str):
    print("\nConfiguration:")
    print(f"   Image:              {image_path}")
    print(f"   Target window:      {config.target_size}x{config.target_size}")
    print(f"   Factors per genome: {config.n_factors}")
    print(f"   Population size:    {config.population_size}")
    print(f"   Survivors:          {config.n_survivors}")
    print(f"   Generations:        {config.n_generations}")
    print(f"   Workers:            {n_workers}")
    print(f"   Checkpoints:        every {config.checkpoint_every} generations")


def progress_callback(gen: int, total: int, stats: dict):
    """Print progress during evolution."""
    pct = 100 * gen / total if total else 100.0
    fitness = stats.get('best_fitness', 0)
    evals = stats.get('evaluations', 0)
    print(
        f"\r   Gen {gen:3d}/{total} ({pct:5.1f}%) | "
        f"Best fitness: {fitness:.4f} | "
        f"Evaluations: {evals:,}",
        end='', flush=True
    )


def main():
    args = parse_args()

    print_banner()

    output_dir = project_root / 'data' / 'evolution'
    config = EvolutionConfig(
        target_size=args.size,
        n_generations=args.generations,
        seed=args.seed,
        n_workers=args.workers,
        checkpoint_every=args.checkpoint_every,
        checkpoint_dir=str(output_dir),
    )
    n_workers = args.workers or max(1, cpu_count() - 1)
    print_config(config, n_workers, args.image)

    image = imaging.crop_to_multiple(imaging.load_image(args.image), config.target_size)
    target = grayscale_target(imaging.to_array(image), size=config.target_size)

    engine = EvolutionEngine(config, target)

    if args.resume:
        print(f"\n   Resuming from: {args.resume}")
        engine.load_checkpoint(Path(args.resume))
        print(f"   Resumed at generation {engine.generation}")
    else:
        print("\n   Initializing population...")
        engine.initialize_population()
        print(f"   Population initialized: {len(engine.population)} genomes")

    print(f"\n   Starting evolution...")
    start_time = time.time()

    result = engine.evolve(progress_callback=progress_callback)

    elapsed = time.time() - start_time
    print()  # New line after progress

    print(f"\n   Results:")
    print(f"   --------")
    print(f"   Generations completed: {result.generations_completed}")
    print(f"   Total evaluations:     {result.total_evaluations:,}")
    print(f"   Best fitness:          {result.best_fitness:.4f}")
    print(f"   Per pixel:             {result.best_normalized_fitness:.6f}")
    print(f"   Runtime:               {elapsed:.1f}s")

    print(f"\n   Top 5 genomes:")
    for i, genome in enumerate(result.final_population[:5], 1):
        print(f"   {i}. {genome.genome_id:28s} | {normalized_fitness(genome.fitness, target):.6f}")

    coded = imaging.gray_from_unit(reconstruct(result.best_genome), side=config.target_size)
    imaging.save_png(coded, output_dir / f"{result.run_id}_coded.png")
    save_genome(result.best_genome, output_dir / f"{result.run_id}_best.json")

    print(f"\n   Checkpoints and reconstruction saved to: {output_dir}")


if __name__ == '__main__':
    main()
