# config.py
import copy
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Optional

import toml

from .errors import ConfigurationError

GITHUB_AUTH_ENV_KEY = "GITHUB_AUTH_KEY"

# check id -> AuditConfig toggle, in execution order
CHECK_TOGGLES: Dict[str, str] = {
    "two_factor": "enforces_2fa",
    "admin_commit_activity": "admins_have_no_commit_activity",
    "master_branch_protection": "all_repos_master_is_protected",
    "installed_apps_allowlist": "installed_apps_match_allowlist",
    "admin_allowlist": "admins_match_allowlist",
    "member_allowlist": "members_match_allowlist",
}

# allow-list toggle -> (allow-list field, key under [allowlists])
ALLOWLIST_TOGGLES: Dict[str, tuple] = {
    "installed_apps_match_allowlist": ("installed_app_allowlist", "installed_apps"),
    "admins_match_allowlist": ("admin_allowlist", "admins"),
    "members_match_allowlist": ("member_allowlist", "members"),
}

TOGGLE_NAMES = frozenset(CHECK_TOGGLES.values())


class Config:
    """Configuration file for gh_auditor, read from ``[tool.gh_auditor]``."""

    DEFAULT_CONFIG: Dict[str, Any] = {
        "checks": {
            "enforces_2fa": True,
            "admins_have_no_commit_activity": True,
            "all_repos_master_is_protected": True,
            "installed_apps_match_allowlist": False,
            "admins_match_allowlist": False,
            "members_match_allowlist": False,
        },
        "allowlists": {},
        "github": {
            "api_url": "https://api.github.com",
            "timeout": 30.0,
        },
    }

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from file and merge with defaults.

        Args:
            config_path: Path to a TOML configuration file

        Returns:
            Config instance

        Raises:
            ConfigurationError: If the file cannot be read or parsed
        """
        config_dict = copy.deepcopy(cls.DEFAULT_CONFIG)

        if config_path and config_path.exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    user_config = toml.loads(f.read())
            except (OSError, toml.TomlDecodeError) as e:
                raise ConfigurationError(f"Cannot read config file {config_path}: {e}")
            if "tool" in user_config and "gh_auditor" in user_config["tool"]:
                cls._merge_configs(config_dict, user_config["tool"]["gh_auditor"])

        return cls(config_dict)

    def __init__(self, config_dict: dict):
        self._config = config_dict

    @staticmethod
    def _merge_configs(base: dict, override: dict) -> None:
        """Recursively merge override dictionary into base dictionary."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                Config._merge_configs(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value using dot notation.

        Args:
            key: Configuration key (e.g., "checks.enforces_2fa").
            default: Default value if key not found.

        Returns:
            Configuration value or default.
        """
        current = self._config
        try:
            for part in key.split("."):
                if isinstance(current, dict):
                    current = current[part]
                else:
                    return default
            return current
        except KeyError:
            return default

    def audit_config(self) -> "AuditConfig":
        """Build the audit toggles and allow-lists from this configuration.

        Keys under ``checks`` may be toggle names or check ids (as accepted
        by ``--enable``/``--disable``); a check id wins over its toggle name.

        Raises:
            ConfigurationError: For an unknown key or a value of the wrong type
        """
        checks = self.get("checks", {})
        if not isinstance(checks, dict):
            raise ConfigurationError("checks must be a table")
        unknown = sorted(
            key for key in checks if key not in CHECK_TOGGLES and key not in TOGGLE_NAMES
        )
        if unknown:
            raise ConfigurationError(
                f"Unknown key(s) under checks: {', '.join(unknown)}. "
                f"Known checks: {', '.join(CHECK_TOGGLES)}"
            )

        toggles = {}
        for check_id, toggle in CHECK_TOGGLES.items():
            key = check_id if check_id in checks else toggle
            value = checks.get(key)
            if not isinstance(value, bool):
                raise ConfigurationError(f"checks.{key} must be true or false")
            toggles[toggle] = value

        allowlist_section = self.get("allowlists", {})
        if not isinstance(allowlist_section, dict):
            raise ConfigurationError("allowlists must be a table")
        known_allowlists = [key for _, key in ALLOWLIST_TOGGLES.values()]
        unknown = sorted(key for key in allowlist_section if key not in known_allowlists)
        if unknown:
            raise ConfigurationError(
                f"Unknown key(s) under allowlists: {', '.join(unknown)}. "
                f"Known allow-lists: {', '.join(known_allowlists)}"
            )

        allowlists = {}
        for allowlist_field, key in ALLOWLIST_TOGGLES.values():
            value = allowlist_section.get(key)
            if value is None:
                continue
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ConfigurationError(f"allowlists.{key} must be a list of strings")
            allowlists[allowlist_field] = frozenset(value)

        return AuditConfig(**toggles, **allowlists)


@dataclass(frozen=True)
class AuditConfig:
    """Which audits to run, and the allow-lists some of them compare against.

    Defaults: 2FA, admin commit activity and default-branch protection are
    on; the allow-list audits are off. An allow-list is only consulted when
    its toggle is on, and turning a toggle on without its allow-list is a
    configuration error.
    """

    # Toggles
    enforces_2fa: bool = True
    admins_have_no_commit_activity: bool = True
    all_repos_master_is_protected: bool = True
    installed_apps_match_allowlist: bool = False
    admins_match_allowlist: bool = False
    members_match_allowlist: bool = False

    # Allow-lists
    installed_app_allowlist: Optional[FrozenSet[str]] = None
    admin_allowlist: Optional[FrozenSet[str]] = None
    member_allowlist: Optional[FrozenSet[str]] = None

    def __post_init__(self):
        for toggle, (allowlist_field, key) in ALLOWLIST_TOGGLES.items():
            value = getattr(self, allowlist_field)
            if value is not None and not isinstance(value, frozenset):
                object.__setattr__(self, allowlist_field, frozenset(value))
            if getattr(self, toggle) and getattr(self, allowlist_field) is None:
                raise ConfigurationError(
                    f"'{toggle}' is enabled but no '{key}' allow-list was given"
                )

    @classmethod
    def all_disabled(cls) -> "AuditConfig":
        return cls(**{toggle: False for toggle in CHECK_TOGGLES.values()})

    def is_enabled(self, check_id: str) -> bool:
        return getattr(self, CHECK_TOGGLES[check_id])

    def with_checks(
        self, enable: Iterable[str] = (), disable: Iterable[str] = ()
    ) -> "AuditConfig":
        """Return a copy with the given check ids switched on or off.

        Raises:
            ConfigurationError: For an unknown check id
        """
        changes = {}
        for check_id, value in [(c, True) for c in enable] + [(c, False) for c in disable]:
            if check_id not in CHECK_TOGGLES:
                raise ConfigurationError(
                    f"Unknown check '{check_id}'. Known checks: {', '.join(CHECK_TOGGLES)}"
                )
            changes[CHECK_TOGGLES[check_id]] = value
        return replace(self, **changes)


@dataclass(frozen=True)
class AuditorSettings:
    """Everything needed to run one audit, validated on construction."""

    organisation: str
    token: str
    api_url: str = "https://api.github.com"
    timeout: float = 30.0
    audit: AuditConfig = field(default_factory=AuditConfig)

    def __post_init__(self):
        if not self.organisation or not self.organisation.strip():
            raise ConfigurationError("No GitHub organisation provided.")
        if not self.token:
            raise ConfigurationError(
                f"No authentication key for GitHub provided. "
                f"Use --token or set {GITHUB_AUTH_ENV_KEY}."
            )
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be a positive number of seconds")

    @classmethod
    def create(
        cls,
        organisation: str,
        token: Optional[str] = None,
        config: Optional[Config] = None,
        audit: Optional[AuditConfig] = None,
        **overrides: Any,
    ) -> "AuditorSettings":
        """Assemble settings from explicit values, the environment and a config file.

        The token falls back to the ``GITHUB_AUTH_KEY`` environment variable.
        """
        config = config or Config(copy.deepcopy(Config.DEFAULT_CONFIG))
        token = token or os.environ.get(GITHUB_AUTH_ENV_KEY)
        timeout = config.get("github.timeout", 30.0)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise ConfigurationError("github.timeout must be a number of seconds")
        values = {
            "api_url": config.get("github.api_url", "https://api.github.com"),
            "timeout": float(timeout),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(
            organisation=organisation,
            token=token or "",
            audit=audit if audit is not None else config.audit_config(),
            **values,
        )
