"""stackforge -- compose Next.js projects from independent feature templates."""

__version__ = "0.1.0"
