"""
kaictl - Kai platform control

A CLI tool that sets up, starts, stops and updates the Kai development
sandbox platform and manages its sandbox image.
"""

__version__ = "0.1.0"

# Re-export core models for convenience
from kaictl.core.config.models import KaiConfig

__all__ = ["KaiConfig", "__version__"]
