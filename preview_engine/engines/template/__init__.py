"""
Template engine: Handlebars-style dialect rendered with Jinja2.

Exports: TemplateRenderer, render_template, TemplateError, HelperRegistry,
preprocess_template, scan_missing_functions.
"""

from .errors import MissingHelperError, TemplateError
from .helpers import HelperRegistry
from .preprocessor import preprocess_template
from .scanner import scan_missing_functions
from .template_engine import TemplateRenderer, render_template

__all__ = [
    "TemplateRenderer",
    "render_template",
    "TemplateError",
    "MissingHelperError",
    "HelperRegistry",
    "preprocess_template",
    "scan_missing_functions",
]
