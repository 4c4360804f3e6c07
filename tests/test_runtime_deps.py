# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""Test that all third-party imports in garagewatch/ are runtime deps.

Statically scans the package sources for imports and verifies each one
is either stdlib, internal, or provided by a declared runtime dependency
(including transitive deps).
"""

import ast
import re
import sys
import tomllib
from importlib.metadata import (
    PackageNotFoundError,
    packages_distributions,
    requires,
)
from pathlib import Path


PROJECT_ROOT = Path(__file__).parent.parent
PACKAGE_DIR = PROJECT_ROOT / "garagewatch"


def _collect_imports(source_dir: Path) -> set[str]:
    """Collect top-level import names from all .py files under source_dir."""
    imports: set[str] = set()
    for py_file in source_dir.rglob("*.py"):
        tree = ast.parse(py_file.read_text(), filename=str(py_file))
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    imports.add(alias.name.split(".")[0])
            elif isinstance(node, ast.ImportFrom):
                if node.module and node.level == 0:
                    imports.add(node.module.split(".")[0])
    return imports


def _normalize(name: str) -> str:
    """Normalize a distribution name for comparison."""
    return re.sub(r"[-_.]+", "-", name).lower()


def _requirement_name(req: str) -> str:
    return _normalize(re.split(r"[<>=!~;\[\s]", req)[0].strip())


def _resolve_runtime_distributions() -> set[str]:
    """Resolve all distribution names reachable from runtime deps."""
    with open(PROJECT_ROOT / "pyproject.toml", "rb") as f:
        config = tomllib.load(f)

    resolved: set[str] = set()
    queue = [_requirement_name(d) for d in config["project"]["dependencies"]]
    while queue:
        dist = queue.pop()
        if dist in resolved:
            continue
        resolved.add(dist)
        try:
            reqs = requires(dist) or []
        except PackageNotFoundError:
            # Marker-gated dependency not installed on this interpreter
            continue
        for req in reqs:
            if "extra ==" in req:
                continue
            name = _requirement_name(req)
            if name not in resolved:
                queue.append(name)

    return resolved


def test_imports_covered_by_runtime_deps() -> None:
    """All third-party imports in garagewatch/ come from runtime deps."""
    stdlib = sys.stdlib_module_names | {"_thread", "_io"}
    third_party = {
        name
        for name in _collect_imports(PACKAGE_DIR)
        if name not in stdlib and name != "garagewatch"
    }

    import_to_dist = packages_distributions()
    runtime_dists = _resolve_runtime_distributions()

    missing = []
    for imp in sorted(third_party):
        dists = import_to_dist.get(imp, [])
        if not dists:
            missing.append(f"{imp} (no distribution found)")
            continue
        if not any(_normalize(d) in runtime_dists for d in dists):
            missing.append(f"{imp} (from {', '.join(dists)})")

    assert not missing, (
        "garagewatch/ imports third-party packages not declared as runtime "
        "dependencies:\n"
        + "\n".join(f"  - {m}" for m in missing)
        + "\n\nAdd them to [project] dependencies in pyproject.toml."
    )


def test_declared_deps_are_imported() -> None:
    """Every declared runtime dependency is actually used."""
    with open(PROJECT_ROOT / "pyproject.toml", "rb") as f:
        config = tomllib.load(f)
    declared = {_requirement_name(d) for d in config["project"]["dependencies"]}

    import_to_dist = packages_distributions()
    used = {
        _normalize(dist)
        for name in _collect_imports(PACKAGE_DIR)
        for dist in import_to_dist.get(name, [])
    }
    assert declared <= used, f"Unused runtime deps: {sorted(declared - used)}"
