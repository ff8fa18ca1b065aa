"""Evaluator side: the per-regime calculation pipeline and regime comparison."""
