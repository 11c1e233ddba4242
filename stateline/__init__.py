"""Parallel-tempering MCMC sampling with adaptive proposals, diagnostics and CSV chain output."""

__version__ = "0.1.0"