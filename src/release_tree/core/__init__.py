"""Core domain layer: entities and the classification engine."""

from release_tree.core.categories import CategoryConfig, UnmatchedConfig, parse_categories
from release_tree.core.entities import (
    Asset,
    Category,
    ClassificationResult,
    Release,
    ReleaseData,
)
from release_tree.core.errors import ConfigError, ReleaseSourceError
from release_tree.core.interfaces import MarkdownRenderer, ReleaseSource, SiteGenerator
from release_tree.core.matcher import Matcher, matches_category, matches_filter
from release_tree.core.settings import ClassificationDefaults, Setting, resolve_setting
from release_tree.core.tree_builder import classify_releases

__all__ = [
    "Asset",
    "Release",
    "ReleaseData",
    "Category",
    "ClassificationResult",
    "CategoryConfig",
    "UnmatchedConfig",
    "parse_categories",
    "ClassificationDefaults",
    "Setting",
    "resolve_setting",
    "Matcher",
    "matches_category",
    "matches_filter",
    "classify_releases",
    "ConfigError",
    "ReleaseSourceError",
    "ReleaseSource",
    "MarkdownRenderer",
    "SiteGenerator",
]
