"""Vouch - structured-output enforcement and validation gateway for LLM APIs."""

__version__ = "0.1.0"
