"""
Tests for the Kronecker factorization search.

Run with: python -m pytest tests/test_evolution.py -v
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from compress_lab.evolution.genome import (
    Genome,
    create_random_genome,
    constant_genome,
    generate_genome_id,
)
from compress_lab.evolution.kronecker import kronecker_product, chain, reconstruct
from compress_lab.evolution.fitness import (
    grayscale_target,
    compute_fitness,
    normalized_fitness,
)
from compress_lab.evolution.operators import (
    rank_population,
    truncation_selection,
    swap_crossover,
    point_mutation,
    reproduce,
)
from compress_lab.evolution.population import (
    create_initial_population,
    is_sorted,
)
from compress_lab.evolution.checkpoint import (
    EvolutionCheckpoint,
    EvolutionHistory,
    save_genome,
    load_genome,
)
from compress_lab.evolution.engine import EvolutionEngine, EvolutionConfig


GRAY = 128 / 255


def small_config(**overrides):
    """16x16 target, serial evaluation."""
    params = dict(target_size=16, n_generations=5, n_workers=1, seed=7)
    params.update(overrides)
    return EvolutionConfig(**params)


@pytest.fixture
def gradient_target():
    """16x16 horizontal ramp in [0, 1]."""
    return np.tile(np.linspace(0, 1, 16), (16, 1))


class TestGenome:
    """Tests for Genome class."""

    def test_genome_creation(self):
        genome = Genome(genes=np.arange(8), genome_id='test_001')
        assert len(genome) == 8
        assert genome.n_factors == 2
        assert genome.side == 4
        assert genome.factors().shape == (2, 2, 2)
        assert genome.fitness == 0.0

    def test_genome_validation(self):
        with pytest.raises(ValueError):
            Genome(genes=np.arange(6))
        with pytest.raises(ValueError):
            Genome(genes=np.array([]))

    def test_genome_serialization(self):
        genome = Genome(genes=np.array([0.1, -2.5, 3.0, 1e-7]), fitness=1.5,
                        genome_id='test_002', generation=3, parents=('a', 'b'))
        restored = Genome.from_dict(genome.to_dict())

        assert np.array_equal(restored.genes, genome.genes)
        assert restored.fitness == 1.5
        assert restored.genome_id == 'test_002'
        assert restored.generation == 3
        assert restored.parents == ('a', 'b')

    def test_copy_is_deep(self):
        genome = Genome(genes=np.ones(4))
        clone = genome.copy()
        clone.genes[0] = 5.0
        assert genome.genes[0] == 1.0

    def test_create_random_genome(self):
        rng = np.random.default_rng(0)
        genome = create_random_genome(10, rng, generation=2)
        assert len(genome) == 40
        assert genome.generation == 2
        assert genome.genome_id.startswith('rand_gen2_')

    def test_generate_genome_id(self):
        assert generate_genome_id(5).startswith('gen5_')
        assert generate_genome_id(5) != generate_genome_id(5)

    def test_constant_genome_rejects_negative(self):
        with pytest.raises(ValueError):
            constant_genome(4, -0.5)


class TestKronecker:
    """Tests for the Kronecker chain."""

    def test_identity_factors(self):
        identity = [1, 0, 0, 1]
        image = chain(np.array(identity + identity))
        np.testing.assert_array_equal(image, np.eye(4))

    def test_block_structure(self):
        a = np.array([[1, 2], [3, 4]])
        b = np.array([[0, 5], [6, 7]])
        product = kronecker_product(a, b)

        np.testing.assert_array_equal(product, np.kron(a, b))
        np.testing.assert_array_equal(product[2:, :2], 3 * b)

    def test_chain_order(self):
        rng = np.random.default_rng(1)
        f0, f1, f2 = (rng.normal(size=(2, 2)) for _ in range(3))
        genes = np.concatenate([f0.ravel(), f1.ravel(), f2.ravel()])

        expected = np.kron(f2, np.kron(f0, f1))
        np.testing.assert_allclose(chain(genes), expected)

    def test_single_factor(self):
        genes = np.array([1.0, 2.0, 3.0, 4.0])
        np.testing.assert_array_equal(chain(genes), [[1, 2], [3, 4]])

    def test_reconstruct_flattened(self):
        genome = create_random_genome(3, np.random.default_rng(2))
        buffer = reconstruct(genome)
        assert buffer.shape == (64,)
        np.testing.assert_array_equal(buffer, chain(genome).reshape(-1))

    def test_flat_matrices_accepted(self):
        np.testing.assert_array_equal(
            kronecker_product([1, 0, 0, 1], [2, 0, 0, 2]),
            2 * np.eye(4),
        )

    def test_non_square_rejected(self):
        with pytest.raises(ValueError):
            kronecker_product(np.arange(3), np.eye(2))


class TestFitness:
    """Tests for fitness evaluation."""

    def test_constant_target_exact(self):
        target = np.full((16, 16), GRAY)
        genome = constant_genome(4, GRAY)
        assert compute_fitness(genome, target) == pytest.approx(0.0, abs=1e-9)

    def test_fitness_approaches_zero(self):
        target = np.full((16, 16), GRAY)
        gene = GRAY ** 0.25
        fitnesses = [
            compute_fitness(np.full(16, gene * (1 + eps)), target)
            for eps in (0.5, 0.1, 0.01, 0.001)
        ]
        assert fitnesses == sorted(fitnesses, reverse=True)
        assert fitnesses[-1] < fitnesses[0] / 100

    def test_fitness_non_negative(self, gradient_target):
        rng = np.random.default_rng(0)
        for _ in range(5):
            genome = create_random_genome(4, rng)
            assert compute_fitness(genome, gradient_target) >= 0

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            compute_fitness(np.ones(12), np.zeros((16, 16)))

    def test_normalized_fitness(self):
        target = np.zeros((16, 16))
        assert normalized_fitness(256.0, target) == pytest.approx(1.0)

    def test_grayscale_target(self):
        pixels = np.zeros((20, 24, 3), dtype=np.uint8)
        pixels[..., 0] = 255
        target = grayscale_target(pixels, size=16)

        assert target.shape == (16, 16)
        assert target[0, 0] == pytest.approx(1 / 3)

    def test_grayscale_target_validation(self):
        pixels = np.zeros((16, 16, 3), dtype=np.uint8)
        with pytest.raises(ValueError):
            grayscale_target(pixels, size=12)
        with pytest.raises(ValueError):
            grayscale_target(pixels, size=32)

    def test_grayscale_target_requires_three_channels(self):
        for channels in (2, 4):
            pixels = np.zeros((16, 16, channels), dtype=np.uint8)
            with pytest.raises(ValueError):
                grayscale_target(pixels, size=16)


class TestOperators:
    """Tests for evolutionary operators."""

    @pytest.fixture
    def sample_population(self, gradient_target):
        rng = np.random.default_rng(3)
        population = create_initial_population(20, 4, rng)
        for genome in population:
            genome.fitness = compute_fitness(genome, gradient_target)
        return population

    def test_rank_population(self, sample_population):
        ranked = rank_population(sample_population)
        assert ranked is sample_population
        assert is_sorted(ranked)

    def test_rank_is_stable(self):
        population = [Genome(genes=np.ones(4), fitness=1.0, genome_id=f"g{i}") for i in range(5)]
        rank_population(population)
        assert [g.genome_id for g in population] == ['g0', 'g1', 'g2', 'g3', 'g4']

    def test_truncation_selection(self, sample_population):
        rank_population(sample_population)
        survivors = truncation_selection(sample_population, 5)
        assert len(survivors) == 5
        assert survivors[0] is sample_population[0]

    def test_swap_crossover(self):
        rng = np.random.default_rng(0)
        p1 = Genome(genes=np.array([1.0, 2.0, 3.0, 4.0]), genome_id='p1')
        p2 = Genome(genes=np.array([5.0, 6.0, 7.0, 8.0]), genome_id='p2')

        c1, c2 = swap_crossover(p1, p2, rng, generation=1)

        # Parents untouched
        np.testing.assert_array_equal(p1.genes, [1, 2, 3, 4])
        np.testing.assert_array_equal(p2.genes, [5, 6, 7, 8])
        # Children do not alias parent storage
        assert not np.shares_memory(c1.genes, p1.genes)
        assert not np.shares_memory(c2.genes, p2.genes)
        # Exactly one gene moved each way
        assert np.sum(c1.genes != p1.genes) == 1
        assert np.sum(c2.genes != p2.genes) == 1
        assert sorted(np.concatenate([c1.genes, c2.genes])) == list(range(1, 9))
        assert c1.parents == ('p1', 'p2')
        assert c1.generation == 1

    def test_point_mutation(self):
        rng = np.random.default_rng(0)
        parent = Genome(genes=np.zeros(8), genome_id='parent')
        child = point_mutation(parent, rng, generation=2)

        assert np.all(parent.genes == 0)
        assert np.sum(child.genes != 0) == 1
        assert child.parents == ('parent', 'mutation')

    def test_reproduce_count(self, sample_population):
        rank_population(sample_population)
        survivors = truncation_selection(sample_population, 8)
        before = [g.genes.copy() for g in survivors]

        offspring = reproduce(survivors, np.random.default_rng(0), generation=1, n_parents=4)

        assert len(offspring) == 24
        for genome, genes in zip(survivors, before):
            np.testing.assert_array_equal(genome.genes, genes)


class TestPopulation:
    """Tests for population management."""

    def test_create_initial_population(self):
        population = create_initial_population(10, 5, np.random.default_rng(0))
        assert len(population) == 10
        assert all(len(g) == 20 for g in population)
        assert len({g.genome_id for g in population}) == 10


class TestCheckpoint:
    """Tests for history and checkpoints."""

    def test_history_records_sorted_generation(self):
        history = EvolutionHistory()
        population = [Genome(genes=np.ones(4), fitness=f) for f in (1.0, 2.0, 6.0)]
        stats = history.record_generation(0, population)

        assert stats.best_fitness == 1.0
        assert stats.worst_fitness == 6.0
        assert stats.mean_fitness == pytest.approx(3.0)
        assert history.fitness_trajectory == [1.0]

        restored = EvolutionHistory.from_dict(history.to_dict())
        assert restored.fitness_trajectory == [1.0]
        assert restored.generations[0].population_size == 3

    def test_evolution_checkpoint(self, tmp_path):
        population = create_initial_population(4, 2, np.random.default_rng(0))
        checkpoint = EvolutionCheckpoint(
            run_id='kron_test',
            generation=3,
            population=[g.to_dict() for g in population],
            history=EvolutionHistory().to_dict(),
            config=small_config().to_dict(),
            rng_state=np.random.default_rng(0).bit_generator.state,
            timestamp='2024-01-01T00:00:00',
            total_evaluations=12,
        )
        checkpoint_path = tmp_path / 'checkpoint.json'
        checkpoint.save(checkpoint_path)

        loaded = EvolutionCheckpoint.load(checkpoint_path)
        assert loaded.run_id == 'kron_test'
        assert loaded.generation == 3
        assert loaded.total_evaluations == 12
        genomes = loaded.get_population()
        for original, restored in zip(population, genomes):
            np.testing.assert_array_equal(original.genes, restored.genes)

    def test_save_and_load_genome(self, tmp_path):
        genome = create_random_genome(4, np.random.default_rng(5))
        path = save_genome(genome, tmp_path / 'out' / 'best.json', metadata={'target_size': 16})
        restored = load_genome(path)
        np.testing.assert_array_equal(restored.genes, genome.genes)


class TestEngine:
    """Tests for the evolution loop."""

    def test_config_validation(self):
        with pytest.raises(ValueError):
            EvolutionConfig(target_size=100)
        with pytest.raises(ValueError):
            EvolutionConfig(population_size=10, n_survivors=20)
        with pytest.raises(ValueError):
            EvolutionConfig(population_size=64, n_survivors=32)
        assert EvolutionConfig(population_size=64, n_survivors=16).population_size == 64
        assert EvolutionConfig().n_factors == 10
        assert small_config().n_factors == 4

    def test_target_shape_checked(self):
        with pytest.raises(ValueError):
            EvolutionEngine(small_config(), np.zeros((8, 8)))

    def test_caller_target_stays_writable(self, gradient_target):
        EvolutionEngine(small_config(), gradient_target)
        gradient_target[0, 0] = 0.5

    def test_population_invariants(self, gradient_target):
        engine = EvolutionEngine(small_config(), gradient_target)
        engine.initialize_population()
        assert len(engine.population) == 128

        engine.evaluate_population()
        survivors = engine.select_survivors()
        assert len(survivors) == 32
        assert is_sorted(survivors)

        engine.reproduce()
        assert len(engine.population) == 128
        assert all(a is b for a, b in zip(engine.population[:32], survivors))

    def test_run_generation_terminates(self, gradient_target):
        engine = EvolutionEngine(small_config(n_generations=1), gradient_target)
        engine.initialize_population()

        assert engine.run_generation() is False
        assert engine.generation == 1
        assert engine.run_generation() is True
        assert len(engine.population) == 32
        assert len(engine.history.generations) == 2

    def test_best_fitness_never_increases(self, gradient_target):
        engine = EvolutionEngine(small_config(n_generations=8), gradient_target)
        result = engine.evolve()

        trajectory = result.history.fitness_trajectory
        assert len(trajectory) == 9
        assert all(b <= a for a, b in zip(trajectory, trajectory[1:]))
        assert result.best_fitness == trajectory[-1]
        assert result.total_evaluations == 9 * 128

    def test_deterministic_with_seed(self, gradient_target):
        results = [
            EvolutionEngine(small_config(), gradient_target).evolve()
            for _ in range(2)
        ]
        assert results[0].history.fitness_trajectory == results[1].history.fitness_trajectory
        np.testing.assert_array_equal(results[0].best_genome.genes, results[1].best_genome.genes)

    def test_parallel_matches_serial(self, gradient_target):
        serial = EvolutionEngine(small_config(n_generations=3), gradient_target).evolve()
        parallel = EvolutionEngine(small_config(n_generations=3, n_workers=2), gradient_target).evolve()
        assert serial.history.fitness_trajectory == parallel.history.fitness_trajectory

    def test_progress_callback(self, gradient_target):
        seen = []
        engine = EvolutionEngine(small_config(n_generations=2), gradient_target)
        engine.evolve(progress_callback=lambda gen, total, stats: seen.append((gen, total)))
        assert seen == [(0, 2), (1, 2), (2, 2)]

    def test_verbose_reports_top_genomes(self, gradient_target, capsys):
        engine = EvolutionEngine(small_config(n_generations=0), gradient_target)
        engine.evolve(verbose=True)
        lines = capsys.readouterr().out.strip().splitlines()
        assert lines[0] == '0'
        assert len(lines) == 11

    def test_resume_from_checkpoint(self, gradient_target, tmp_path):
        config = small_config(n_generations=4, checkpoint_dir=str(tmp_path))
        reference = EvolutionEngine(small_config(n_generations=4), gradient_target).evolve()

        engine = EvolutionEngine(config, gradient_target, run_id='kron_resume')
        engine.initialize_population()
        engine.run_generation()
        engine.run_generation()
        path = engine.save_checkpoint()
        assert path.exists()

        resumed = EvolutionEngine(config, gradient_target)
        resumed.load_checkpoint(path)
        assert resumed.run_id == 'kron_resume'
        assert resumed.generation == 2
        result = resumed.evolve()

        assert result.history.fitness_trajectory == reference.history.fitness_trajectory

    def test_resume_finished_run_does_not_rescore(self, gradient_target, tmp_path):
        config = small_config(n_generations=2, checkpoint_dir=str(tmp_path))
        engine = EvolutionEngine(config, gradient_target, run_id='kron_done')
        original = engine.evolve()
        final_checkpoint = tmp_path / 'kron_done_gen002.json'
        assert final_checkpoint.exists()

        resumed = EvolutionEngine(config, gradient_target)
        resumed.load_checkpoint(final_checkpoint)
        result = resumed.evolve()

        assert result.history.fitness_trajectory == original.history.fitness_trajectory
        assert result.total_evaluations == original.total_evaluations == 3 * 128
        assert len(result.final_population) == 32
        assert result.best_fitness == original.best_fitness

    def test_extending_finished_run_matches_longer_run(self, gradient_target):
        reference = EvolutionEngine(small_config(n_generations=4), gradient_target).evolve()

        engine = EvolutionEngine(small_config(n_generations=2), gradient_target)
        engine.evolve()
        result = engine.evolve(n_generations=4)

        assert result.history.fitness_trajectory == reference.history.fitness_trajectory
        assert result.total_evaluations == reference.total_evaluations

    def test_checkpoint_target_size_checked(self, gradient_target, tmp_path):
        engine = EvolutionEngine(small_config(n_generations=0, checkpoint_dir=str(tmp_path)), gradient_target)
        engine.evolve()
        path = engine.save_checkpoint()

        other = EvolutionEngine(small_config(target_size=8), np.zeros((8, 8)))
        with pytest.raises(ValueError):
            other.load_checkpoint(path)

    def test_population_size_held_across_generations(self, gradient_target):
        config = small_config(population_size=64, n_survivors=16, n_generations=3)
        engine = EvolutionEngine(config, gradient_target)
        engine.initialize_population()
        sizes = [len(engine.population)]
        while not engine.run_generation():
            sizes.append(len(engine.population))

        assert sizes == [64, 64, 64, 64]
        assert all(s.population_size == 64 for s in engine.history.generations)

    def test_constant_target_converges(self):
        target = np.full((16, 16), GRAY)
        engine = EvolutionEngine(small_config(n_generations=30), target)
        result = engine.evolve()
        assert result.best_fitness < result.history.fitness_trajectory[0]
        assert result.best_normalized_fitness == pytest.approx(result.best_fitness / 256)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
