# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""YAML configuration file loader utilities.

Taxonomy definitions are authored as YAML, either as one file or as a
directory holding one file per protocol. YAML anchors may be used inside a
file to share a rubric between protocols.

Example:
    >>> from pathlib import Path
    >>> from sonoreview.core.config.yaml_loader import load_yaml, load_yaml_directory
    >>> definition = load_yaml(Path("taxonomy/default.yaml"))
    >>> per_protocol = load_yaml_directory(Path("taxonomy/protocols"))
"""

from pathlib import Path
from typing import Any

import yaml


class YAMLLoadError(Exception):
    """Raised when YAML file cannot be loaded or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        """Initialize YAMLLoadError.

        Args:
            path: Path to the YAML file that failed to load.
            reason: Description of why the file failed to load.
        """
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load YAML file '{path}': {reason}")


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dictionary.

    Args:
        path: Path to the YAML file to load.

    Returns:
        Dictionary containing the parsed YAML contents.
        Empty dict if file is empty.

    Raises:
        YAMLLoadError: If the file doesn't exist, cannot be read,
            or contains invalid YAML.
    """
    if not path.exists():
        raise YAMLLoadError(path, "File does not exist")

    if not path.is_file():
        raise YAMLLoadError(path, "Path is not a file")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise YAMLLoadError(path, f"Cannot read file: {e}") from e

    try:
        parsed = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise YAMLLoadError(path, f"Invalid YAML syntax: {e}") from e

    if parsed is None:
        return {}

    if not isinstance(parsed, dict):
        raise YAMLLoadError(
            path, f"YAML root must be a mapping, got {type(parsed).__name__}"
        )

    return parsed


def load_yaml_directory(path: Path) -> dict[str, dict[str, Any]]:
    """Load all YAML files from a directory.

    Files are keyed by their stem and returned in filename order, so a
    directory of protocol files seeds deterministically.

    Args:
        path: Path to the directory containing YAML files.

    Returns:
        Dictionary mapping file stems to their parsed contents.

    Raises:
        YAMLLoadError: If the path is not a directory, if two files share
            a stem (e.g. `cardiac.yaml` and `cardiac.yml`) or if any
            YAML file fails to load.
    """
    if not path.exists():
        raise YAMLLoadError(path, "Directory does not exist")

    if not path.is_dir():
        raise YAMLLoadError(path, "Path is not a directory")

    yaml_files = sorted(
        [*path.glob("*.yaml"), *path.glob("*.yml")],
        key=lambda p: p.name,
    )

    documents: dict[str, dict[str, Any]] = {}
    for yaml_file in yaml_files:
        if not yaml_file.is_file():
            continue
        if yaml_file.stem in documents:
            raise YAMLLoadError(
                yaml_file, f"Duplicate document name '{yaml_file.stem}' in {path}"
            )
        documents[yaml_file.stem] = load_yaml(yaml_file)

    return documents
