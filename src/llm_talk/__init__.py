"""LLM-Talk: orchestrated multi-model conversations that evolve their own shorthand."""

__version__ = "0.1.0"
