"""File and resource loading utilities.

This subpackage handles loading various file types and resources
used throughout the application.

Key modules:
    - prompts: Packaged prompt template loading
    - models: Model definition file loading
    - context: Context file gathering
"""

from .prompts import load_prompt
from .models import ModelsFile, load_models_file, parse_models_data
from .context import (
    filter_paths,
    filter_reason,
    iter_context_files,
    read_context_files,
    render_context_files,
)

__all__ = [
    "load_prompt",
    "ModelsFile",
    "load_models_file",
    "parse_models_data",
    "read_context_files",
    "iter_context_files",
    "render_context_files",
    "filter_paths",
    "filter_reason",
]
