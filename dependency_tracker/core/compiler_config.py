"""
Compiler configuration lookup for path alias resolution.

Reads `compilerOptions.baseUrl` and `compilerOptions.paths` from the first of
tsconfig.json / jsconfig.json found at the project root. Both files are JSON
with comments and trailing commas, and may `extends` another config.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


CONFIG_FILE_NAMES = ("tsconfig.json", "jsconfig.json")

# Strings are kept, comments and trailing commas are dropped
_JSONC_TOKEN = re.compile(
    r'"(?:\\.|[^"\\])*"|//[^\n]*|/\*.*?\*/|,(?=\s*[}\]])',
    re.DOTALL,
)

# Guards against `extends` cycles
MAX_EXTENDS_DEPTH = 10


@dataclass
class CompilerPaths:
    """
    Alias table taken from a compiler configuration file.

    Attributes:
        config_file: The config file that was found at the project root
        base_url: Absolute directory alias targets are resolved against
        paths: Alias pattern -> target patterns, in file order
    """
    config_file: str
    base_url: str
    paths: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "config_file": self.config_file,
            "base_url": self.base_url,
            "paths": self.paths,
        }


def strip_json_comments(text: str) -> str:
    """Turn JSON-with-comments into plain JSON."""
    def _keep_strings(match: "re.Match") -> str:
        token = match.group(0)
        return token if token.startswith('"') else ""

    return _JSONC_TOKEN.sub(_keep_strings, text)


def load_jsonc(path: str) -> Dict:
    """Load a JSON-with-comments file into a dict."""
    with open(path, "r", encoding="utf8") as f:
        raw = f.read()
    if raw.startswith("\ufeff"):
        raw = raw[1:]
    data = json.loads(strip_json_comments(raw) or "{}")
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a JSON object")
    return data


def find_config_file(project_root: str) -> Optional[str]:
    """Return the first conventional compiler config file at the root."""
    for name in CONFIG_FILE_NAMES:
        candidate = os.path.join(project_root, name)
        if os.path.isfile(candidate):
            return candidate
    return None


def _resolve_extends(spec: str, config_dir: str, project_root: str) -> Optional[str]:
    """Locate the file named by an `extends` entry."""
    if spec.startswith(".") or os.path.isabs(spec):
        base = os.path.normpath(os.path.join(config_dir, spec))
        candidates = [base, base + ".json"]
    else:
        # Package configs such as "@tsconfig/next" or "next/tsconfig.json"
        base = os.path.join(project_root, "node_modules", spec)
        candidates = [base, base + ".json", os.path.join(base, "tsconfig.json")]

    for candidate in candidates:
        if os.path.isfile(candidate):
            return candidate
    return None


def read_compiler_paths(config_file: str, project_root: str) -> CompilerPaths:
    """
    Read baseUrl and paths from a config file, following `extends`.

    Options from the extending file override the extended one. A relative
    baseUrl is resolved against the directory of the file that declares it;
    without any baseUrl, paths are resolved against the file that declares
    them.
    """
    chain: List[str] = []
    current: Optional[str] = config_file
    while current and len(chain) < MAX_EXTENDS_DEPTH:
        if current in chain:
            logger.warning("Ignoring circular extends in %s", current)
            break
        chain.append(current)
        data = load_jsonc(current)
        extends = data.get("extends")
        if isinstance(extends, list):
            # Later entries win; only follow the last one to keep a single chain
            extends = extends[-1] if extends else None
        if not isinstance(extends, str):
            break
        resolved = _resolve_extends(extends, os.path.dirname(current), project_root)
        if resolved is None:
            logger.warning("Could not find extended config '%s' from %s", extends, current)
            break
        current = resolved

    base_url: Optional[str] = None
    paths: Optional[Dict[str, List[str]]] = None
    paths_dir: Optional[str] = None

    # Walk from the most basic config to the most specific one
    for path in reversed(chain):
        options = load_jsonc(path).get("compilerOptions") or {}
        if not isinstance(options, dict):
            logger.warning("Ignoring compilerOptions in %s: not a JSON object", path)
            options = {}
        config_dir = os.path.dirname(path)
        if isinstance(options.get("baseUrl"), str):
            base_url = os.path.normpath(os.path.join(config_dir, options["baseUrl"]))
        if isinstance(options.get("paths"), dict):
            paths = {
                str(key): [str(t) for t in targets if isinstance(t, str)]
                for key, targets in options["paths"].items()
                if isinstance(targets, list)
            }
            paths_dir = config_dir

    if base_url is None:
        base_url = paths_dir or os.path.dirname(config_file)

    return CompilerPaths(config_file=config_file, base_url=base_url, paths=paths or {})


class CompilerConfigCache:
    """
    Caches the alias table per project root.

    The cache lives as long as its owner (normally the analysis service) and
    is invalidated explicitly at the start of every run, since the config file
    may have changed in between.
    """

    def __init__(self):
        self._entries: Dict[str, Optional[CompilerPaths]] = {}
        self.reads = 0

    def get(self, project_root: str) -> Optional[CompilerPaths]:
        """Return the alias table for a root, reading it at most once per run."""
        root = os.path.normpath(project_root)
        if root in self._entries:
            return self._entries[root]

        self.reads += 1
        config = None
        config_file = find_config_file(root)
        if config_file is None:
            logger.info("No tsconfig.json or jsconfig.json found in %s", root)
        else:
            try:
                config = read_compiler_paths(config_file, root)
                logger.info("Using baseUrl %s from %s", config.base_url, config_file)
                if config.paths:
                    logger.debug("Found paths: %s", json.dumps(config.paths))
            except (OSError, ValueError, TypeError) as e:
                logger.error("Error processing compiler config %s: %s", config_file, e)
                config = None

        self._entries[root] = config
        return config

    def invalidate(self) -> None:
        """Forget everything read so far."""
        self._entries.clear()
