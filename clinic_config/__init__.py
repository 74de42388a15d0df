"""
clinic_config -- pipeline configuration.

``load_pipeline_config()`` is the single runtime entry point.  It reads an
optional YAML file and applies environment overrides; see
``clinic_config.loader`` for precedence.
"""

from clinic_config.loader import build_config, load_pipeline_config
from clinic_config.schema import PipelineConfig

__all__ = [
    "PipelineConfig",
    "build_config",
    "load_pipeline_config",
]
