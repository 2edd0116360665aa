"""
Model evaluation modules.

Includes:
- folds: Fold cutoffs and chronological train/test splits
- rolling_origin: Rolling-origin cross-validation scored by MAPE
"""
