"""Package dependency graph and build ordering.

Packages live in an arena keyed by id, edges are id lookups pointing from a
package to each of its internal dependencies. Build order is computed with
Kahn's algorithm on the reversed edges; ties resolve by discovery order so
the result is stable for a given workspace.
"""

from __future__ import annotations

import heapq
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from .errors import CyclicDependency, MetadataUnavailable
from .models import Package

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Read-only DAG of workspace packages."""

    def __init__(self, packages: Iterable[Package]) -> None:
        self._packages: Dict[str, Package] = {}
        for package in packages:
            if package.package_id in self._packages:
                raise ValueError(f"Duplicate package id: {package.package_id}")
            self._packages[package.package_id] = package

        for package in self._packages.values():
            for dep in package.dependencies:
                if dep not in self._packages:
                    raise ValueError(f"{package.name} depends on unknown package id {dep}")

    def __len__(self) -> int:
        return len(self._packages)

    def __contains__(self, package_id: object) -> bool:
        return package_id in self._packages

    @property
    def packages(self) -> List[Package]:
        """Packages in discovery order."""
        return list(self._packages.values())

    def package(self, package_id: str) -> Package:
        return self._packages[package_id]

    def dependencies(self, package_id: str) -> Tuple[str, ...]:
        return self._packages[package_id].dependencies

    def dependents(self, package_id: str) -> List[str]:
        return [p.package_id for p in self._packages.values() if package_id in p.dependencies]

    def edges(self) -> List[Tuple[str, str]]:
        """All ``(dependent, dependency)`` pairs."""
        return [(p.package_id, dep) for p in self._packages.values() for dep in p.dependencies]


def _unique(items: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(items))


def build_dependency_graph(
    metadata: Mapping[str, Any],
    exclude: Sequence[str] = ("xtask",),
) -> DependencyGraph:
    """Build the graph of workspace-local packages from cargo metadata.

    Dependencies on packages outside the workspace are dropped; only
    internal edges matter for ordering.

    Args:
        metadata: Parsed ``cargo metadata`` output.
        exclude: Package names to leave out (the orchestrator itself).

    Raises:
        MetadataUnavailable: If a package entry is malformed or listed twice.
    """
    members = set(metadata.get("workspace_members", []))
    local: List[Dict[str, Any]] = []
    seen = set()
    for entry in metadata.get("packages", []):
        if not isinstance(entry, dict):
            raise MetadataUnavailable(f"Malformed package entry: {entry!r}")
        missing = [key for key in ("id", "name", "manifest_path") if not entry.get(key)]
        if missing:
            raise MetadataUnavailable(
                f"Package entry {entry.get('name', '?')!r} is missing {', '.join(missing)}"
            )
        if entry["id"] in seen:
            raise MetadataUnavailable(f"Duplicate package id in metadata: {entry['id']}")
        seen.add(entry["id"])
        if entry["id"] not in members or entry["name"] in exclude:
            continue
        local.append(entry)

    name_lookup = {entry["name"]: entry["id"] for entry in local}

    packages = []
    for entry in local:
        declared = [
            dep.get("name") if isinstance(dep, dict) else dep
            for dep in entry.get("dependencies", [])
        ]
        internal = _unique(name_lookup[name] for name in declared if name in name_lookup)
        packages.append(
            Package(
                package_id=entry["id"],
                name=entry["name"],
                manifest_path=Path(entry["manifest_path"]),
                dependencies=internal,
            )
        )
        logger.debug("package %s -> [%s]", entry["name"], ", ".join(internal))

    return DependencyGraph(packages)


def resolve_build_order(graph: DependencyGraph) -> List[Package]:
    """Return packages ordered so every dependency precedes its dependents.

    Raises:
        CyclicDependency: If the graph has a cycle. No partial order is returned.
    """
    packages = graph.packages
    index = {p.package_id: i for i, p in enumerate(packages)}
    pending = {p.package_id: len(p.dependencies) for p in packages}

    # Reversed edges: dependency -> dependents
    dependents: Dict[str, List[str]] = {p.package_id: [] for p in packages}
    for src, dst in graph.edges():
        dependents[dst].append(src)

    ready = [index[pid] for pid, count in pending.items() if count == 0]
    heapq.heapify(ready)

    order: List[Package] = []
    while ready:
        package = packages[heapq.heappop(ready)]
        order.append(package)
        for dependent in dependents[package.package_id]:
            pending[dependent] -= 1
            if pending[dependent] == 0:
                heapq.heappush(ready, index[dependent])

    if len(order) != len(packages):
        stuck = [graph.package(pid).name for pid, count in pending.items() if count > 0]
        raise CyclicDependency(stuck)

    logger.debug("build order: %s", ", ".join(p.name for p in order))
    return order
