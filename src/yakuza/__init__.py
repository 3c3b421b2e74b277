"""Yakuza: plan-driven job runtime for scraping agents."""

__version__ = "0.1.0"
