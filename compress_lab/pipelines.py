"""
End-to-end runs of the two compression experiments.

Each run decodes the input image, writes a baseline crop and a JPEG reference,
runs its engine and writes the reconstruction next to them. Any I/O failure
propagates and ends the run; files written before the failure are kept.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

import numpy as np

from .core.autoencoder import BlockAutoencoder, AutoencoderConfig
from .core.sampler import BlockSampler
from .core.training import Trainer, TrainingConfig
from .evolution.checkpoint import save_genome
from .evolution.engine import EvolutionEngine, EvolutionConfig, EvolutionResult
from .evolution.fitness import grayscale_target
from .evolution.kronecker import reconstruct
from . import imaging
from .visualization.plots import plot_training_cost, plot_fitness_trajectory, save_figure

DEFAULT_IMAGE = 'images/image01.png'
JPEG_QUALITY = 45


@dataclass
class NeuralRun:
    """Outputs of an autoencoder run."""
    model: BlockAutoencoder
    history: Dict[str, List]
    compressed_bytes: int
    artifacts: Dict[str, Path]


@dataclass
class KroneckerRun:
    """Outputs of a Kronecker run."""
    result: EvolutionResult
    reconstruction: np.ndarray
    artifacts: Dict[str, Path]


def _write_baseline(image, name: str, output_dir: Path) -> Dict[str, Path]:
    return {
        'baseline': imaging.save_png(image, output_dir / f"{name}.png"),
        'reference': imaging.save_jpeg(image, output_dir / f"{name}.jpg", quality=JPEG_QUALITY),
    }


def run_neural(
    image_path: Union[str, Path] = DEFAULT_IMAGE,
    output_dir: Union[str, Path] = 'output',
    scale: int = 1,
    config: Optional[TrainingConfig] = None,
    verbose: bool = True,
) -> NeuralRun:
    """
    Train the block autoencoder on an image and write its reconstruction.

    Artifacts: <name>.png, <name>.jpg, epochs.png, <name>_coded.png
    """
    config = config or TrainingConfig()
    image_path, output_dir = Path(image_path), Path(output_dir)
    name = image_path.name.split('.')[0]

    image = imaging.load_image(image_path, scale=scale)
    image = imaging.crop_to_multiple(image, config.block_size)
    artifacts = _write_baseline(image, name, output_dir)

    rng = np.random.default_rng(config.seed)
    sampler = BlockSampler(imaging.to_array(image), block_size=config.block_size, rng=rng)
    model = BlockAutoencoder(
        sampler,
        AutoencoderConfig(block_size=config.block_size, hiddens=config.hiddens),
        rng=rng,
    )
    trainer = Trainer(model, config)
    history = trainer.train(verbose=verbose)

    fig = plot_training_cost(history)
    artifacts['cost_plot'] = save_figure(fig, output_dir / 'epochs.png')

    coded = imaging.rgb_from_unit(model.reconstruct_image())
    artifacts['reconstruction'] = imaging.save_png(coded, output_dir / f"{name}_coded.png")

    compressed = model.compressed_size_bytes()
    if verbose:
        print(compressed)

    return NeuralRun(model=model, history=history, compressed_bytes=compressed, artifacts=artifacts)


def run_kronecker(
    image_path: Union[str, Path] = DEFAULT_IMAGE,
    output_dir: Union[str, Path] = 'output',
    scale: int = 1,
    config: Optional[EvolutionConfig] = None,
    verbose: bool = True,
) -> KroneckerRun:
    """
    Evolve a Kronecker factorization of an image's grayscale window.

    Artifacts: <name>.png, <name>.jpg, image_coded.png, best_genome.json,
    fitness.png
    """
    config = config or EvolutionConfig()
    image_path, output_dir = Path(image_path), Path(output_dir)
    name = image_path.name.split('.')[0]

    image = imaging.load_image(image_path, scale=scale)
    image = imaging.crop_to_multiple(image, config.target_size)
    artifacts = _write_baseline(image, name, output_dir)

    target = grayscale_target(imaging.to_array(image), size=config.target_size)
    if verbose:
        width, height = image.size
        print(f"{width}x{height} image, {config.n_factors} factors, "
              f"{4 * config.n_factors} genes for {target.size} pixels")

    engine = EvolutionEngine(config, target)
    engine.initialize_population()
    result = engine.evolve(verbose=verbose)

    reconstruction = reconstruct(result.best_genome)
    coded = imaging.gray_from_unit(reconstruction, side=config.target_size)
    artifacts['reconstruction'] = imaging.save_png(coded, output_dir / 'image_coded.png')
    artifacts['genome'] = save_genome(
        result.best_genome,
        output_dir / 'best_genome.json',
        metadata={'run_id': result.run_id, 'target_size': config.target_size},
    )
    fig = plot_fitness_trajectory(result.history.fitness_trajectory, pixels=target.size)
    artifacts['fitness_plot'] = save_figure(fig, output_dir / 'fitness.png')

    if verbose:
        print(result.summary())

    return KroneckerRun(result=result, reconstruction=reconstruction, artifacts=artifacts)
