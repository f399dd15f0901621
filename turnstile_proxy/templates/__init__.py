"""
Templates Module
================
Host- and path-specific challenge and failure pages.
"""

from .resolver import (
    TemplateResolver,
    split_path,
    CORE_NAMESPACE,
    CORE_TEMPLATE_DIR,
    TEMPLATE_SUFFIX,
)
from .renderer import TemplateRenderer

__all__ = [
    "TemplateResolver",
    "TemplateRenderer",
    "split_path",
    "CORE_NAMESPACE",
    "CORE_TEMPLATE_DIR",
    "TEMPLATE_SUFFIX",
]
