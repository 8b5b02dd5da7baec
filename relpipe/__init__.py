"""relpipe - release pipeline with reversible dry runs."""

__version__ = "0.3.0"
