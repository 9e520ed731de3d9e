"""DigitalBloom: questionnaire-driven AI website generator."""

__version__ = "0.1.0"
