"""
Publish Planner - Derives the publish order from the dependency graph.

1. Restrict the graph to publishable workspace packages (dev-dependencies
   never constrain publish order)
2. Validate the graph is a DAG
3. Topologically sort it (dependencies first)
4. If the workspace declares a hand-maintained order, check it against the
   graph and reject it if it has drifted, instead of publishing in a stale
   order
"""

from collections import defaultdict, deque
from typing import Dict, List, Optional

import structlog

from shipyard.exceptions import CycleDetectedError, PlanDriftError, UnknownDependencyError
from shipyard.models.workspace import Package, Workspace

logger = structlog.get_logger()


class PublishPlanner:
    """
    Resolves a Workspace into a validated publish plan.

    Stateless: each resolve() call is independent.
    """

    def resolve(self, workspace: Workspace) -> List[Package]:
        """
        Compute the publish plan.

        Args:
            workspace: The workspace to publish

        Returns:
            Publishable packages, every dependency before its dependents.
            The declared order is used when it is consistent with the graph.

        Raises:
            UnknownDependencyError: If a package depends on an unpublished workspace package
            CycleDetectedError: If dependencies contain a cycle
            PlanDriftError: If the declared order contradicts the graph
        """
        packages = workspace.publishable
        graph = self._build_graph(workspace)

        self._validate_no_cycles(packages, graph)
        computed = self._topological_sort(packages, graph)

        if workspace.publish_order is None:
            plan = computed
        else:
            self._validate_declared_order(workspace.publish_order, packages, graph)
            by_name = {p.name: p for p in packages}
            plan = [by_name[name] for name in workspace.publish_order]

        logger.info("planner.resolved", packages=[p.name for p in plan], declared=workspace.publish_order is not None)
        return plan

    def _build_graph(self, workspace: Workspace) -> Dict[str, List[str]]:
        """Map each publishable package to the workspace packages it depends on."""
        publishable = {p.name for p in workspace.publishable}
        members = set(workspace.package_names)
        graph: Dict[str, List[str]] = {}

        for package in workspace.publishable:
            internal = [d for d in package.dependencies if d in members]
            unpublished = [d for d in internal if d not in publishable]
            if unpublished:
                raise UnknownDependencyError(package.name, unpublished)
            graph[package.name] = internal
        return graph

    def _validate_no_cycles(self, packages: List[Package], graph: Dict[str, List[str]]) -> None:
        """
        Depth-first search with three-color marking.

        A GRAY neighbour is on the current path, so reaching it closes a cycle.
        """
        WHITE, GRAY, BLACK = 0, 1, 2
        color = {p.name: WHITE for p in packages}
        path: List[str] = []

        def dfs(node: str) -> Optional[List[str]]:
            color[node] = GRAY
            path.append(node)
            for neighbor in graph.get(node, []):
                if color[neighbor] == GRAY:
                    return path[path.index(neighbor):] + [neighbor]
                if color[neighbor] == WHITE:
                    cycle = dfs(neighbor)
                    if cycle:
                        return cycle
            color[node] = BLACK
            path.pop()
            return None

        for package in packages:
            if color[package.name] == WHITE:
                cycle = dfs(package.name)
                if cycle:
                    raise CycleDetectedError(cycle)

    def _topological_sort(self, packages: List[Package], graph: Dict[str, List[str]]) -> List[Package]:
        """Kahn's algorithm; ties keep manifest order."""
        dependents: Dict[str, List[str]] = defaultdict(list)
        in_degree = {p.name: 0 for p in packages}
        by_name = {p.name: p for p in packages}

        for package in packages:
            for dep in graph[package.name]:
                dependents[dep].append(package.name)
                in_degree[package.name] += 1

        queue = deque(p.name for p in packages if in_degree[p.name] == 0)
        result: List[Package] = []
        while queue:
            node = queue.popleft()
            result.append(by_name[node])
            for dependent in dependents[node]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    queue.append(dependent)

        if len(result) != len(packages):
            remaining = [p.name for p in packages if in_degree[p.name] > 0]
            raise CycleDetectedError(remaining)
        return result

    def _validate_declared_order(
        self,
        declared: List[str],
        packages: List[Package],
        graph: Dict[str, List[str]],
    ) -> None:
        publishable = [p.name for p in packages]
        unknown = [name for name in declared if name not in graph]
        missing = [name for name in publishable if name not in declared]
        violations: List[str] = []

        duplicates = sorted({n for n in declared if declared.count(n) > 1})
        if duplicates:
            violations.append(f"listed more than once: {', '.join(duplicates)}")

        position = {}
        for i, name in enumerate(declared):
            position.setdefault(name, i)
        for name in dict.fromkeys(declared):
            for dep in graph.get(name, []):
                if dep in position and position[dep] > position[name]:
                    violations.append(f"'{name}' is listed before its dependency '{dep}'")

        if violations or missing or unknown:
            logger.error("planner.drift", violations=violations, missing=missing, unknown=unknown)
            raise PlanDriftError(violations, missing=missing, unknown=unknown)
