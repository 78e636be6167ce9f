"""Learntrail - learner progress tracking for hierarchical course catalogs."""
