"""Import dependency graph over a project snapshot."""

from __future__ import annotations

import logging
import posixpath
import re

import networkx as nx

logger = logging.getLogger("ctxopt.graph")

_IMPORT_RE = re.compile(r"""import\s+(?:[\w\s{},*]+\s+from\s+)?['"]([^'"]+)['"]""")
_EXPORT_RE = re.compile(
    r"export\s+(?:default\s+)?(?:function|const|class|interface|type|enum)\s+(\w+)"
)
_EXPORT_DEFAULT_RE = re.compile(r"export\s+default")
_SCRIPT_SUFFIX_RE = re.compile(r"\.(tsx?|jsx?)$")

_RESOLVE_EXTENSIONS = (".tsx", ".ts", ".jsx", ".js")
_CRITICAL_PATTERNS = (
    "App.tsx", "main.tsx", "index.tsx", "router", "routes", "config", "constants", "types",
)

_KIND_BONUS = {"component": 5, "hook": 8, "page": 15, "config": 20}


def detect_kind(path: str) -> str:
    """Coarse role of a file from its directory names."""
    if "/components/" in path and "/ui/" not in path:
        return "component"
    if "/hooks/" in path:
        return "hook"
    if "/pages/" in path:
        return "page"
    if any(d in path for d in ("/utils/", "/lib/", "/services/")):
        return "util"
    if any(p in path for p in ("config", "constants", "types")):
        return "config"
    return "other"


def extract_exports(content: str) -> list[str]:
    """Exported names, plus "default" when the module has a default export."""
    exports = list(dict.fromkeys(m.group(1) for m in _EXPORT_RE.finditer(content)))
    if _EXPORT_DEFAULT_RE.search(content) and "default" not in exports:
        exports.append("default")
    return exports


class DependencyGraph:
    """File-level import graph.

    Nodes are file paths; an edge A -> B means A imports B. Only relative
    (``./``, ``../``) and alias (``@/`` -> ``src/``) specifiers are followed;
    package imports are ignored.

    Usage:
        deps = DependencyGraph()
        deps.build(project_files)
        related = deps.related_files(["src/components/Header.tsx"])
    """

    def __init__(self) -> None:
        self.graph = nx.DiGraph()

    def build(self, files: dict[str, str]) -> nx.DiGraph:
        """Build the graph from a {path -> content} snapshot."""
        self.graph = nx.DiGraph()
        known = set(files)

        for path, content in files.items():
            text = content if isinstance(content, str) else ""
            self.graph.add_node(
                path,
                imports=self._resolve_imports(text, path, known),
                exports=extract_exports(text),
                kind=detect_kind(path),
                importance=0,
            )

        # Edges only to files present in the snapshot
        for path, data in self.graph.nodes(data=True):
            for target in data["imports"]:
                if target in known and target != path:
                    self.graph.add_edge(path, target)

        for path, data in self.graph.nodes(data=True):
            data["importance"] = self._importance(path, data)

        logger.debug(
            f"Dependency graph: {self.graph.number_of_nodes()} files, "
            f"{self.graph.number_of_edges()} import edges"
        )
        return self.graph

    def used_by(self, path: str) -> list[str]:
        if path not in self.graph:
            return []
        return sorted(self.graph.predecessors(path))

    def imports_of(self, path: str) -> list[str]:
        if path not in self.graph:
            return []
        return sorted(self.graph.successors(path))

    def importance(self, path: str) -> int:
        if path not in self.graph:
            return 0
        return self.graph.nodes[path]["importance"]

    def related_files(
        self, targets: list[str], max_files: int = 15, depth: int = 2
    ) -> list[str]:
        """Targets plus files within `depth` import hops in either direction.

        Sorted by importance descending, then path.
        """
        undirected = self.graph.to_undirected(as_view=True)
        relevant: set[str] = set()
        for target in targets:
            if target not in self.graph:
                logger.debug(f"Unknown target {target}, skipping")
                continue
            reachable = nx.single_source_shortest_path_length(undirected, target, cutoff=depth)
            relevant.update(reachable)

        ranked = sorted(relevant, key=lambda p: (-self.importance(p), p))
        return ranked[:max_files]

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    def _resolve_imports(self, content: str, from_path: str, known: set[str]) -> list[str]:
        resolved: list[str] = []
        for match in _IMPORT_RE.finditer(content):
            target = resolve_import_path(match.group(1), from_path, known)
            if target and target not in resolved:
                resolved.append(target)
        return resolved

    def _importance(self, path: str, data: dict) -> int:
        score = 10 * self.graph.in_degree(path)
        score += 5 * len(data["exports"])
        if any(p in path for p in _CRITICAL_PATTERNS):
            score += 50
        score += _KIND_BONUS.get(data["kind"], 0)
        if "src/components/" in path:
            score += 3
        return score


def resolve_import_path(specifier: str, from_path: str, known: set[str]) -> str | None:
    """Resolve an import specifier to a snapshot path, or None for packages.

    Extensionless specifiers try .tsx, .ts, .jsx, .js against the snapshot
    and default to .tsx.
    """
    if specifier.startswith("@/"):
        base = "src/" + specifier[2:]
    elif specifier.startswith("./") or specifier.startswith("../"):
        from_dir = posixpath.dirname(from_path)
        base = posixpath.normpath(posixpath.join(from_dir, specifier))
        if base == ".." or base.startswith("../"):
            return None
    else:
        return None

    if _SCRIPT_SUFFIX_RE.search(base):
        return base
    for ext in _RESOLVE_EXTENSIONS:
        if base + ext in known:
            return base + ext
    return base + ".tsx"
