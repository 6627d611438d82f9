"""Configuration management."""

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

import httpx
import yaml

from release_tree.core import (
    CategoryConfig,
    ClassificationDefaults,
    ConfigError,
    Matcher,
    UnmatchedConfig,
    parse_categories,
)
from release_tree.core.categories import parse_filter
from release_tree.core.settings import (
    Setting,
    SettingState,
    normalize_max_displayed,
    resolve_setting,
    validate_max_displayed,
)

DEFAULT_CONFIG_PATH = ".github/categorized-releases/config.yaml"
DEFAULT_MAX_RELEASES = 1000
DEFAULT_PAGE_SIZE = 50
DEFAULT_MAIN_PAGE_FILE = "MAIN.md"


@dataclass
class SiteConfig:
    """Site settings."""
    title: str = "Releases"
    description: str = ""
    max_releases: Optional[int] = DEFAULT_MAX_RELEASES

    # Markdown shown at the top of the index page
    main_page: str = ""
    # Icon href as written into pages, and the local file to copy next to them
    favicon_url: str = ""
    favicon_path: Optional[Path] = None
    # Appended to the default stylesheet
    custom_css: str = ""


@dataclass
class MultiPageConfig:
    """Multi-page output settings."""
    enabled: bool = False
    page_size: Optional[int] = DEFAULT_PAGE_SIZE


@dataclass
class LatestPageConfig:
    """View of every release marked latest, with their downloadable assets."""
    enabled: bool = False
    title: str = "Latest"
    description: str = ""
    max_displayed: Setting = field(default_factory=Setting.absent)
    assets_max_displayed: Setting = field(default_factory=Setting.absent)

    def resolve_limits(self, default_max_displayed: Optional[int]) -> tuple[Optional[int], Optional[int]]:
        """Effective release and asset limits (None means unlimited).

        Releases fall back to the default max-displayed. Assets follow the
        release limit when absent; null resets them to the release limit, or
        to the default when releases are unlimited.
        """
        releases = resolve_setting(self.max_displayed, default_max_displayed, default_max_displayed)
        if self.assets_max_displayed.state is SettingState.ABSENT:
            return releases, releases
        if self.assets_max_displayed.state is SettingState.RESET:
            return releases, releases if releases is not None else default_max_displayed
        return releases, self.assets_max_displayed.value


@dataclass
class Settings:
    """Application settings."""

    # API token (from environment or CLI)
    github_token: Optional[str] = None

    # Config sections
    site: SiteConfig = field(default_factory=SiteConfig)
    multi_page: MultiPageConfig = field(default_factory=MultiPageConfig)
    latest_page: LatestPageConfig = field(default_factory=LatestPageConfig)
    defaults: ClassificationDefaults = field(default_factory=ClassificationDefaults)
    unmatched: UnmatchedConfig = field(default_factory=UnmatchedConfig)
    categories: tuple[CategoryConfig, ...] = ()
    include: Optional[Matcher] = None
    exclude: Optional[Matcher] = None

    @property
    def max_releases(self) -> Optional[int]:
        return self.site.max_releases

    @property
    def page_size(self) -> Optional[int]:
        return self.multi_page.page_size

    @property
    def has_filters(self) -> bool:
        return self.include is not None or self.exclude is not None


def is_url(value: Union[str, Path]) -> bool:
    return str(value).startswith(("http://", "https://"))


def load_config(config_path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> dict:
    """Load configuration from a YAML file or URL."""
    if is_url(config_path):
        response = httpx.get(str(config_path), timeout=30.0, follow_redirects=True)
        if response.status_code != 200:
            raise ConfigError(f"Failed to fetch {config_path}: HTTP {response.status_code}")
        content = response.text
    else:
        path = Path(config_path)
        if not path.exists():
            print(f"⚠️  Config file not found: {path} (all releases will be unmatched)")
            return {}
        content = path.read_text(encoding="utf-8")

    try:
        config = yaml.safe_load(content) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    if not isinstance(config, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the top level")
    return config


def _resolve_reference(reference: str, config_path: Union[str, Path]) -> Union[str, Path]:
    """Resolve a file referenced by the config: a URL, or a path relative to the config."""
    if is_url(reference):
        return reference
    if is_url(config_path):
        return f"{str(config_path).rsplit('/', 1)[0]}/{reference}"
    path = Path(reference)
    if path.is_absolute():
        return path
    return Path(config_path).parent / path


def load_site_resource(
    reference: str, config_path: Union[str, Path], label: str
) -> Optional[str]:
    """Load a text file referenced by the config, or None with a warning."""
    location = _resolve_reference(reference, config_path)
    if isinstance(location, str):
        try:
            response = httpx.get(location, timeout=30.0, follow_redirects=True)
        except httpx.HTTPError as e:
            print(f"⚠️  Could not load {label} from {location}: {e}")
            return None
        if response.status_code != 200:
            print(f"⚠️  Could not load {label} from {location}: HTTP {response.status_code}")
            return None
        print(f"  ✓ Loaded {label} from {location}")
        return response.text

    if not location.exists():
        print(f"⚠️  {label.capitalize()} file not found: {location}")
        return None
    print(f"  ✓ Loaded {label} from {location}")
    return location.read_text(encoding="utf-8")


def resolve_favicon(favicon: str, config_path: Union[str, Path]) -> tuple[str, Optional[Path]]:
    """Href for the favicon and, for a local file, the path to copy.

    Remote icons are linked directly. A local icon is copied next to
    index.html under its own file name.
    """
    location = _resolve_reference(favicon, config_path)
    if isinstance(location, str):
        return location, None
    if not location.exists():
        print(f"⚠️  Favicon not found: {location}")
        return "", None
    return location.name, location


def _parse_limit(value: Any, default: int, context: str) -> Optional[int]:
    """Positive integer, or None for ``false`` (unlimited)."""
    if value is None:
        return default
    if value is False:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{context} must be false or a positive integer, got: {value}")
    return value


def _parse_max_displayed(value: Any, context: str) -> Optional[int]:
    validate_max_displayed(value, context)
    return normalize_max_displayed(value)


def _parse_site_resources(site: dict, settings: Settings, config_path: Union[str, Path]) -> None:
    """Main page, favicon and custom style referenced from ``site:``."""
    main_page = site.get("main-page") or {}
    if not isinstance(main_page, dict):
        raise ConfigError(f"site.main-page must be a mapping, got: {main_page!r}")
    if main_page.get("render"):
        if main_page.get("content"):
            settings.site.main_page = str(main_page["content"])
        else:
            content_file = str(main_page.get("content-file") or DEFAULT_MAIN_PAGE_FILE)
            settings.site.main_page = load_site_resource(content_file, config_path, "main page") or ""

    if site.get("favicon"):
        settings.site.favicon_url, settings.site.favicon_path = resolve_favicon(
            str(site["favicon"]), config_path
        )

    if site.get("style"):
        settings.site.custom_css = load_site_resource(str(site["style"]), config_path, "custom style") or ""


def _parse_latest_page(data: Any) -> LatestPageConfig:
    if data is None:
        return LatestPageConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"latest-page must be a mapping, got: {data!r}")
    return LatestPageConfig(
        enabled=data.get("enable") is True,
        title=str(data.get("title") or "Latest"),
        description=str(data.get("description") or ""),
        max_displayed=Setting.from_mapping(
            data, "max-displayed", lambda v: _parse_max_displayed(v, "latest-page.max-displayed")
        ),
        assets_max_displayed=Setting.from_mapping(
            data,
            "assets-max-displayed",
            lambda v: _parse_max_displayed(v, "latest-page.assets-max-displayed"),
        ),
    )


def settings_from_dict(
    config: dict,
    github_token: Optional[str] = None,
    now: Optional[datetime] = None,
    config_path: Union[str, Path] = DEFAULT_CONFIG_PATH,
) -> Settings:
    """Build settings from a parsed config mapping.

    Files the config references (main page, favicon, style) are resolved
    relative to config_path.

    Raises:
        ConfigError: If any section is invalid.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    settings = Settings(github_token=github_token)

    site = config.get("site") or {}
    if "title" in site:
        settings.site.title = str(site["title"])
    if "description" in site:
        settings.site.description = str(site["description"] or "")
    settings.site.max_releases = _parse_limit(
        site.get("max-releases"), DEFAULT_MAX_RELEASES, "site.max-releases"
    )
    _parse_site_resources(site, settings, config_path)

    multi_page = config.get("multi-page") or {}
    settings.multi_page.enabled = multi_page.get("enabled") is True
    settings.multi_page.page_size = _parse_limit(
        multi_page.get("page-size"), DEFAULT_PAGE_SIZE, "multi-page.page-size"
    )
    settings.latest_page = _parse_latest_page(config.get("latest-page"))

    settings.defaults = ClassificationDefaults.from_config(config.get("defaults"), now)
    settings.unmatched = UnmatchedConfig.from_config(config.get("unmatched"), now)
    settings.categories = parse_categories(config.get("categories"), now)
    settings.include = parse_filter(config.get("include"), "include")
    settings.exclude = parse_filter(config.get("exclude"), "exclude")

    return settings


def get_settings(
    config_path: Union[str, Path] = DEFAULT_CONFIG_PATH,
    github_token: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Settings:
    """Get application settings from YAML config and environment."""
    config = load_config(config_path)
    token = github_token or os.getenv("GITHUB_TOKEN")
    return settings_from_dict(config, github_token=token, now=now, config_path=config_path)
