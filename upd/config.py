"""Run configuration — the validated caller option bag."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from upd.errors import ConfigError
from upd.planner.selection import validate_patterns

DEFAULT_MANIFEST = "package.json"
DEFAULT_CONCURRENCY = 8
DEFAULT_TIMEOUT = 30.0

Mode = Literal["latest", "greatest"]


class UpdateConfig(BaseModel):
    """Options for a single run, constructed once before any processing."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    file: Path = Path(DEFAULT_MANIFEST)
    patterns: list[str] = Field(default_factory=list)
    concurrency: int = Field(default=DEFAULT_CONCURRENCY, ge=1)
    mode: Mode = "latest"
    dry_run: bool = False
    show_all: bool = False
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    # None -> project .npmrc beside the manifest, then the user config.
    npmrc_paths: list[Path] | None = None

    @classmethod
    def build(cls, **options: Any) -> UpdateConfig:
        """Validate *options* and return a config, raising :class:`ConfigError`.

        Selection patterns are checked first so that a bad pattern surfaces
        as :class:`~upd.errors.PatternError`.
        """
        validate_patterns(options.get("patterns") or [])
        if options.get("file") in ("-", None, ""):
            options["file"] = DEFAULT_MANIFEST
        try:
            return cls.model_validate(options)
        except ValidationError as exc:
            messages = []
            for err in exc.errors():
                loc = ".".join(str(part) for part in err["loc"])
                messages.append(f"{loc}: {err['msg']}")
            raise ConfigError("invalid options: " + "; ".join(messages)) from exc
