"""
Hyperparameter tuning and optimization modules.

Includes:
- search_space: Sampling specs and bounded search spaces
- candidates: Immutable evaluated candidates and the append-only candidate set
- sampler: Random grid seeding
- gaussian_process: Gaussian-process surrogate of the score
- acquisition: Upper-confidence-bound acquisition optimizer
- bayes_loop: Bayesian optimization loop
- tracking: MLflow experiment tracking
"""
