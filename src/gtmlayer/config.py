"""Tag manager configuration.

GTMConfig is a frozen dataclass — immutable after creation, read once
at startup and shared by every request.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from gtmlayer.errors import ConfigurationError

_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off", ""})


def _env_flag(value: str, *, name: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    msg = f"{name} must be a boolean flag, got {value!r}"
    raise ConfigurationError(msg)


@dataclass(frozen=True, slots=True)
class GTMConfig:
    """Tag manager configuration. Immutable after creation.

    ``id`` is passed through untouched; an empty id still renders so the
    caller can notice via ``DataLayer.get_id()``::

        config = GTMConfig(id="GTM-XXXXXX", enabled=not debug)
    """

    # Container
    id: str = ""
    enabled: bool = True
    domain: str = "www.googletagmanager.com"

    # Extensions file executed once at startup
    macro_path: str | Path | None = None

    # Flash handoff
    session_key: str = "gtm_flash"

    # Insert head/body fragments into HTML responses automatically
    auto_inject: bool = False

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "GTMConfig":
        """Build a config from ``GOOGLE_TAG_MANAGER_*`` environment variables.

        Unset variables keep the dataclass defaults.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, object] = {}
        if "GOOGLE_TAG_MANAGER_ID" in env:
            kwargs["id"] = env["GOOGLE_TAG_MANAGER_ID"].strip()
        if "GOOGLE_TAG_MANAGER_ENABLED" in env:
            kwargs["enabled"] = _env_flag(
                env["GOOGLE_TAG_MANAGER_ENABLED"], name="GOOGLE_TAG_MANAGER_ENABLED"
            )
        if env.get("GOOGLE_TAG_MANAGER_DOMAIN"):
            kwargs["domain"] = env["GOOGLE_TAG_MANAGER_DOMAIN"].strip()
        if env.get("GOOGLE_TAG_MANAGER_MACRO_PATH"):
            kwargs["macro_path"] = env["GOOGLE_TAG_MANAGER_MACRO_PATH"]
        if env.get("GOOGLE_TAG_MANAGER_SESSION_KEY"):
            kwargs["session_key"] = env["GOOGLE_TAG_MANAGER_SESSION_KEY"]
        if "GOOGLE_TAG_MANAGER_AUTO_INJECT" in env:
            kwargs["auto_inject"] = _env_flag(
                env["GOOGLE_TAG_MANAGER_AUTO_INJECT"], name="GOOGLE_TAG_MANAGER_AUTO_INJECT"
            )
        return cls(**kwargs)  # type: ignore[arg-type]
