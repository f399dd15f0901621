"""
Template Resolver
=================
Maps (host, path, template name) to the most specific registered template.

Built-in templates live under the ``core/`` namespace. Operator overrides are
read from a directory tree laid out as::

    <root>/<hostname>/<path segment>/.../<name>.html

and registered as ``<hostname>/<segments...>/<name>``. A lookup walks from
the full request path toward the root and the longest registered prefix
wins, so one override can theme a whole subtree while deeper directories
refine it further.
"""

import os
import posixpath
from pathlib import Path
from typing import Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)

CORE_NAMESPACE = "core"
TEMPLATE_SUFFIX = ".html"
CORE_TEMPLATE_DIR = Path(__file__).parent / "core"


def split_path(path: str) -> List[str]:
    """Normalize a URL path and split it into segments."""
    path = posixpath.normpath("/" + path)
    return [segment for segment in path.split("/") if segment]


class TemplateResolver:
    """
    In-memory index of template names to files.

    Read-only once loaded, so it can be shared between concurrent requests.
    """

    def __init__(self):
        self._index: Dict[str, Path] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._index

    @property
    def names(self) -> List[str]:
        return sorted(self._index)

    def source(self, name: str) -> Optional[Path]:
        """Return the file backing a registered template name."""
        return self._index.get(name)

    def load(self, core_dir: Path = CORE_TEMPLATE_DIR, override_path: Optional[str] = None) -> "TemplateResolver":
        """
        Index built-in templates, then the operator's override tree.

        Args:
            core_dir: Directory of built-in ``<name>.html`` files
            override_path: Root of the override tree; skipped when empty

        Returns:
            self, for chaining
        """
        for path in sorted(Path(core_dir).glob(f"*{TEMPLATE_SUFFIX}")):
            name = f"{CORE_NAMESPACE}/{path.name[:-len(TEMPLATE_SUFFIX)]}"
            logger.debug("adding_core_template", name=name, path=str(path))
            self._index[name] = path

        if override_path:
            self._load_overrides(Path(override_path))
        return self

    def _load_overrides(self, root: Path) -> None:
        if not root.is_dir():
            logger.warning("custom_template_path_missing", path=str(root))
            return

        for dirpath, _, filenames in os.walk(root):
            for filename in filenames:
                path = Path(dirpath) / filename
                if not filename.endswith(TEMPLATE_SUFFIX) or not path.is_file():
                    continue

                relative = path.relative_to(root).as_posix()[:-len(TEMPLATE_SUFFIX)]
                parts = relative.split("/")
                if len(parts) < 2:
                    # A template directly under the root has no hostname
                    logger.warning("custom_template_without_host", path=str(path))
                    continue

                parts[0] = parts[0].lower()
                name = "/".join(parts)
                logger.debug("adding_custom_template", name=name, path=str(path))
                self._index[name] = path

    def register(self, name: str, path: Path) -> None:
        """Register a single template file under an explicit name."""
        self._index[name] = Path(path)

    def resolve(self, host: str, path: str, template_name: str) -> str:
        """
        Find the template to render for a public host and request path.

        Args:
            host: Hostname the client connected to, without port
            path: Request path
            template_name: Short name, e.g. "challenge" or "failed"

        Returns:
            A registered template name; ``core/<template_name>`` if no
            override matches
        """
        host = (host or "").lower()
        parts = split_path(path)

        if host:
            for i in range(len(parts), -1, -1):
                name = "/".join([host, *parts[:i], template_name])
                if name in self._index:
                    logger.debug("found_custom_template", name=name)
                    return name

        return f"{CORE_NAMESPACE}/{template_name}"
