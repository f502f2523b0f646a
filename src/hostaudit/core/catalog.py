"""Check catalog loading.

A catalog lives under ``<base>/checks/``; every immediate subdirectory that
contains a ``check.toml`` defines one check. Directories without a
definition are skipped, but a definition that cannot be read or parsed fails
the whole load.
"""

from __future__ import annotations

import logging
import os
import sys
import tomllib
from collections.abc import Iterable, Mapping
from pathlib import Path

from pydantic import ValidationError

from hostaudit.core.errors import CatalogError
from hostaudit.core.models import CheckDefinition, PhaseInfo

logger = logging.getLogger(__name__)

CHECKS_DIRNAME = "checks"
DEFINITION_FILENAME = "check.toml"
PLATFORM_ALL = "all"
RESOURCES_ENV = "HOSTAUDIT_RESOURCES"

PHASE_LABELS: Mapping[str, str] = {
    "host_hardening": "Host Hardening",
    "network": "Network",
    "prerequisites": "Prerequisites",
    "security_audit": "Security Audit",
}

PHASE_ORDER: Mapping[str, int] = {
    "host_hardening": 1,
    "network": 2,
    "prerequisites": 3,
    "security_audit": 4,
}

UNKNOWN_PHASE_ORDER = 99

_PLATFORM_TAGS: Mapping[str, str] = {
    "darwin": "macos",
    "linux": "linux",
    "win32": "windows",
    "cygwin": "windows",
}


def phase_label(phase_id: str) -> str:
    """Display label for a phase, falling back to the raw id."""
    return PHASE_LABELS.get(phase_id, phase_id)


def phase_order(phase_id: str) -> int:
    """Sort key for a phase; unknown phases sort last."""
    return PHASE_ORDER.get(phase_id, UNKNOWN_PHASE_ORDER)


def host_platform() -> str:
    """Platform tag of the running host, as used in check.toml files."""
    return _PLATFORM_TAGS.get(sys.platform, sys.platform)


def is_applicable(check: CheckDefinition, platform: str) -> bool:
    return check.platform in (PLATFORM_ALL, platform)


def resolve_resource_base(explicit: Path | None = None) -> Path:
    """Find the directory that contains ``checks/``.

    Probes, in order: the explicit path, $HOSTAUDIT_RESOURCES, the current
    working directory.
    """
    candidates: list[Path] = []
    if explicit is not None:
        candidates.append(explicit)
    env_base = os.environ.get(RESOURCES_ENV)
    if env_base:
        candidates.append(Path(env_base))
    candidates.append(Path.cwd())

    for candidate in candidates:
        if (candidate / CHECKS_DIRNAME).is_dir():
            logger.debug(f"Resolved resource base: {candidate}")
            return candidate.resolve()

    probed = ", ".join(str(c) for c in candidates)
    raise CatalogError(f"Could not find {CHECKS_DIRNAME}/ in any of: {probed}")


def parse_definition(path: Path) -> CheckDefinition:
    """Parse a single check.toml file."""
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise CatalogError(f"Failed to read {path}: {e}", path) from e

    try:
        data = tomllib.loads(content)
        return CheckDefinition.model_validate(data)
    except (tomllib.TOMLDecodeError, ValidationError) as e:
        raise CatalogError(f"Failed to parse {path}: {e}", path) from e


def discover_definitions(checks_dir: Path) -> list[CheckDefinition]:
    """Parse every check.toml directly below ``checks_dir``, in name order."""
    try:
        entries = sorted(checks_dir.iterdir(), key=lambda p: p.name)
    except OSError as e:
        raise CatalogError(f"Failed to read {checks_dir}: {e}", checks_dir) from e

    definitions: list[CheckDefinition] = []
    for entry in entries:
        if not entry.is_dir():
            continue
        definition_path = entry / DEFINITION_FILENAME
        if not definition_path.exists():
            logger.debug(f"Skipping {entry}: no {DEFINITION_FILENAME}")
            continue
        definitions.append(parse_definition(definition_path))
    return definitions


def load_catalog(base: Path, platform: str | None = None) -> list[CheckDefinition]:
    """Load the applicable checks under ``base``, sorted by order.

    Args:
        base: Resource base directory containing ``checks/``
        platform: Host platform tag; defaults to host_platform()

    Returns:
        Applicable check definitions, stable-sorted by their ``order`` field.

    Raises:
        CatalogError: If ``checks/`` is missing or any definition is bad.
    """
    checks_dir = base / CHECKS_DIRNAME
    if not checks_dir.is_dir():
        raise CatalogError(f"{CHECKS_DIRNAME}/ directory not found at {checks_dir}", checks_dir)

    host = platform or host_platform()
    definitions = discover_definitions(checks_dir)
    applicable = [d for d in definitions if is_applicable(d, host)]
    skipped = len(definitions) - len(applicable)
    if skipped:
        logger.debug(f"Filtered out {skipped} checks not applicable to {host}")

    # sorted() is stable, so equal orders keep discovery order
    return sorted(applicable, key=lambda d: d.order)


def build_phase_list(checks: Iterable[CheckDefinition]) -> list[PhaseInfo]:
    """Derive the ordered, deduplicated phase list from sorted checks."""
    seen: set[str] = set()
    phases: list[PhaseInfo] = []
    for check in checks:
        if check.phase in seen:
            continue
        seen.add(check.phase)
        phases.append(
            PhaseInfo(
                id=check.phase,
                label=phase_label(check.phase),
                order=phase_order(check.phase),
            )
        )
    return sorted(phases, key=lambda p: p.order)
