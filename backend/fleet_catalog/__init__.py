"""Air France / KLM fleet catalog updater."""

__version__ = "1.0.0"
