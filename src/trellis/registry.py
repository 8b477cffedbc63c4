"""Template registry: built-in templates plus on-disk template files.

Layer 1: Built-in templates from templates_data.BUILT_IN_TEMPLATES
Layer 2: Each configured template directory (config ``template_dirs``)
Layer 3: Project-local templates from .trellis/templates/*.json

Later layers override earlier ones by template id. Files that fail to parse
or validate are skipped with a warning.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from trellis.errors import SchemaError
from trellis.schema import TemplateSchema, load_template_schema, parse_template_schema
from trellis.validation import validate_template_schema

logger = logging.getLogger(__name__)


class TemplateNotFoundError(KeyError):
    """Raised when no template matches a name, file name, or numeric index."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"template '{self.name}' not found"


@dataclass(frozen=True)
class TemplateEntry:
    """One loaded template with its 1-based listing index and origin."""

    index: int
    source: str
    schema: TemplateSchema

    @property
    def stem(self) -> str:
        return Path(self.source).stem

    @property
    def filename(self) -> str:
        return Path(self.source).name

    def matches(self, name: str) -> bool:
        needle = name.casefold()
        return needle in {
            self.stem.casefold(),
            self.filename.casefold(),
            self.schema.id.casefold(),
            self.schema.name.casefold(),
        }


class TemplateRegistry:
    """Loads and resolves project templates.

    Templates are loaded once per instance; a second ``load()`` is a no-op.
    """

    def __init__(self) -> None:
        self._templates: dict[str, tuple[str, TemplateSchema]] = {}
        self._entries: list[TemplateEntry] = []
        self._loaded = False

    def _register(self, source: str, schema: TemplateSchema) -> None:
        if schema.id in self._templates:
            logger.info("Template %s from %s overrides %s", schema.id, source, self._templates[schema.id][0])
            del self._templates[schema.id]
        self._templates[schema.id] = (source, schema)

    def _load_dir(self, directory: Path) -> None:
        if not directory.is_dir():
            logger.debug("Template directory %s does not exist, skipping", directory)
            return
        for tpl_file in sorted(directory.glob("*.json")):
            try:
                schema = load_template_schema(tpl_file)
            except (SchemaError, OSError) as exc:
                logger.warning("Skipping invalid template file %s: %s", tpl_file.name, exc)
                continue
            errors = validate_template_schema(schema)
            if errors:
                logger.warning("Skipping invalid template %s: %s", tpl_file.name, errors)
                continue
            self._register(str(tpl_file), schema)
            logger.debug("Loaded template %s from %s", schema.id, tpl_file)

    def load(self, trellis_dir: Path | None = None, *, template_dirs: Iterable[Path] = ()) -> None:
        """Load templates from all three layers.

        Args:
            trellis_dir: Path to the .trellis/ directory, or None outside a project.
            template_dirs: Extra template directories, searched in order.
        """
        if self._loaded:
            return

        from trellis.templates_data import BUILT_IN_TEMPLATES

        for key, raw in BUILT_IN_TEMPLATES.items():
            self._register(f"{key}.json", parse_template_schema(raw))

        for directory in template_dirs:
            self._load_dir(Path(directory))

        if trellis_dir is not None:
            self._load_dir(trellis_dir / "templates")

        self._entries = [
            TemplateEntry(index=i, source=source, schema=schema)
            for i, (source, schema) in enumerate(self._templates.values(), start=1)
        ]
        self._loaded = True
        logger.info("Template loading complete: %d templates", len(self._entries))

    def list_templates(self) -> list[TemplateEntry]:
        return list(self._entries)

    def resolve(self, name: str) -> TemplateEntry:
        """Find a template by file stem, file name, id, or display name, then by numeric index.

        Raises:
            TemplateNotFoundError: if nothing matches.
        """
        needle = name.strip()
        if not needle:
            raise TemplateNotFoundError(name)
        for entry in self._entries:
            if entry.matches(needle):
                return entry
        if needle.isdigit():
            index = int(needle)
            for entry in self._entries:
                if entry.index == index:
                    return entry
        raise TemplateNotFoundError(name)
