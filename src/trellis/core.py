"""Project directory discovery, configuration, and the Trellis facade.

A project keeps its settings in a ``.trellis/`` directory (found by walking
up from the working directory): ``config.json``, project-local templates
under ``templates/``, and the ``trellis.log`` structured log.
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from trellis.engine import execute
from trellis.importer import import_project
from trellis.models import GeneratedProject
from trellis.policies import IdFactory, new_id, prefixed_id_factory
from trellis.registry import TemplateEntry, TemplateRegistry
from trellis.schema import load_import_schema
from trellis.types.core import TrellisConfig

logger = logging.getLogger(__name__)

TRELLIS_DIR_NAME = ".trellis"
CONFIG_FILENAME = "config.json"
TEMPLATES_DIRNAME = "templates"
CONFIG_VERSION = 1


def find_trellis_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for .trellis/ directory.

    Returns the .trellis/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / TRELLIS_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {TRELLIS_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def read_config(trellis_dir: Path) -> TrellisConfig:
    """Read .trellis/config.json. Returns defaults if missing or corrupt."""
    defaults = TrellisConfig(version=CONFIG_VERSION, template_dirs=[])
    config_path = trellis_dir / CONFIG_FILENAME
    if not config_path.exists():
        return defaults
    try:
        result = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return defaults
    if not isinstance(result, dict):
        logger.warning("%s must contain a JSON object, using defaults", config_path)
        return defaults
    config: TrellisConfig = result
    return config


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


def write_config(trellis_dir: Path, config: dict[str, Any] | TrellisConfig) -> None:
    """Write .trellis/config.json."""
    write_atomic(trellis_dir / CONFIG_FILENAME, json.dumps(config, indent=2) + "\n")


def init_trellis(project_root: Path) -> tuple[Path, bool]:
    """Create .trellis/ with a default config and templates directory.

    Returns ``(trellis_dir, created)``; an existing directory is left as is.
    """
    trellis_dir = project_root / TRELLIS_DIR_NAME
    if trellis_dir.is_dir():
        return trellis_dir, False
    trellis_dir.mkdir(parents=True)
    (trellis_dir / TEMPLATES_DIRNAME).mkdir()
    write_config(trellis_dir, TrellisConfig(version=CONFIG_VERSION, template_dirs=[]))
    logger.info("Initialized %s", trellis_dir)
    return trellis_dir, True


def _template_dirs(trellis_dir: Path, config: TrellisConfig) -> list[Path]:
    raw = config.get("template_dirs", [])
    if not isinstance(raw, list):
        logger.warning("template_dirs has invalid type %s, ignoring", type(raw).__name__)
        return []
    dirs = []
    for entry in raw:
        if not isinstance(entry, str):
            logger.warning("Ignoring non-string template_dirs entry: %r", entry)
            continue
        path = Path(entry).expanduser()
        # relative entries are anchored at the project root
        dirs.append(path if path.is_absolute() else trellis_dir.parent / path)
    return dirs


class Trellis:
    """Template lookup, project generation and import for one workspace.

    Works with or without a ``.trellis/`` directory; without one only the
    built-in templates are available and identifiers are plain UUIDs.
    """

    def __init__(
        self,
        trellis_dir: Path | None = None,
        *,
        config: TrellisConfig | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self.trellis_dir = trellis_dir
        if config is None:
            config = read_config(trellis_dir) if trellis_dir is not None else TrellisConfig()
        self.config = config
        if id_factory is None:
            prefix = config.get("id_prefix")
            id_factory = prefixed_id_factory(prefix) if isinstance(prefix, str) and prefix else new_id
        self.id_factory = id_factory
        self._registry: TemplateRegistry | None = None

    @classmethod
    def from_project(cls, project_path: Path | None = None) -> Trellis:
        """Create a Trellis by discovering .trellis/ from project_path (or cwd); fall back to no project."""
        try:
            trellis_dir = find_trellis_root(project_path)
        except FileNotFoundError:
            logger.debug("No %s directory found; using built-in templates only", TRELLIS_DIR_NAME)
            return cls()
        return cls(trellis_dir)

    @property
    def registry(self) -> TemplateRegistry:
        if self._registry is None:
            registry = TemplateRegistry()
            dirs = _template_dirs(self.trellis_dir, self.config) if self.trellis_dir is not None else []
            registry.load(self.trellis_dir, template_dirs=dirs)
            self._registry = registry
        return self._registry

    def list_templates(self) -> list[TemplateEntry]:
        return self.registry.list_templates()

    def get_template(self, name: str) -> TemplateEntry:
        return self.registry.resolve(name)

    def generate(
        self,
        template_name: str,
        project_name: str,
        start_date: str,
        due_date: str | None = None,
        variables: Mapping[str, str | int] | None = None,
        *,
        short_id: str = "",
    ) -> GeneratedProject:
        entry = self.registry.resolve(template_name)
        return execute(
            entry.schema,
            project_name,
            start_date,
            due_date,
            variables,
            short_id=short_id,
            id_factory=self.id_factory,
        )

    def import_file(self, path: Path) -> GeneratedProject:
        return import_project(load_import_schema(path), id_factory=self.id_factory)
