"""Dependency graph of resources derived from their reference bindings."""

import heapq
from typing import Dict, Iterable, Iterator, List, Optional, Set
from dataclasses import dataclass
from collections import defaultdict, deque

from strata_deploy.config.models import ResourceSpec
from strata_deploy.utils.errors import CycleDetected, DuplicateResource, UnresolvedReference


@dataclass(frozen=True)
class DependencyNode:
    """Node in the dependency graph."""

    name: str
    spec: ResourceSpec
    index: int  # Declaration position in the source graph
    dependencies: frozenset  # Names this node references


class ResourceGraph:
    """Immutable set of ResourceSpecs plus the edges implied by their references.

    Declaration order is preserved; the planner uses it to break ties between
    resources that have no ordering constraint.
    """

    def __init__(self, specs: Iterable[ResourceSpec]):
        """Build the graph.

        Args:
            specs: Resource specs in declaration order

        Raises:
            DuplicateResource: If two specs share a name
        """
        self._nodes: Dict[str, DependencyNode] = {}
        self._dependents: Dict[str, Set[str]] = defaultdict(set)

        for index, spec in enumerate(specs):
            if spec.name in self._nodes:
                raise DuplicateResource(spec.name)
            dependencies = frozenset(spec.references)
            self._nodes[spec.name] = DependencyNode(
                name=spec.name,
                spec=spec,
                index=index,
                dependencies=dependencies
            )
            for dep_name in dependencies:
                self._dependents[dep_name].add(spec.name)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, name: object) -> bool:
        return name in self._nodes

    def __iter__(self) -> Iterator[ResourceSpec]:
        """Iterate specs in declaration order."""
        return (node.spec for node in self._nodes.values())

    @property
    def names(self) -> List[str]:
        """Resource names in declaration order."""
        return list(self._nodes)

    def get(self, name: str) -> Optional[ResourceSpec]:
        node = self._nodes.get(name)
        return node.spec if node else None

    def get_dependencies(self, name: str) -> Set[str]:
        """Get direct dependencies of a resource.

        Args:
            name: Resource name

        Returns:
            Set of names this resource references
        """
        if name not in self._nodes:
            return set()
        return set(self._nodes[name].dependencies)

    def get_dependents(self, name: str) -> Set[str]:
        """Get resources that reference the given resource directly."""
        return set(self._dependents.get(name, set()))

    def get_all_dependents(self, name: str) -> Set[str]:
        """Get all transitive dependents of a resource.

        Args:
            name: Resource name

        Returns:
            Set of all resource names that depend on this resource
        """
        visited = set()
        queue = deque([name])

        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            for dependent in self._dependents.get(current, ()):
                if dependent not in visited:
                    queue.append(dependent)

        visited.discard(name)
        return visited

    def find_unresolved_reference(self) -> Optional[UnresolvedReference]:
        """Return the first reference to an undeclared name, in declaration order."""
        for node in self._nodes.values():
            for dep_name in node.spec.references:
                if dep_name not in self._nodes:
                    return UnresolvedReference(node.name, dep_name)
        return None

    def detect_circular_dependencies(self) -> Optional[List[str]]:
        """Detect circular dependencies in the graph.

        Only edges between declared resources are followed.

        Returns:
            Names forming a cycle, first name repeated at the end, or None
        """
        # White (0): unvisited, Gray (1): on the stack, Black (2): done
        color = {name: 0 for name in self._nodes}
        parent: Dict[str, str] = {}

        def dependents_of(name: str) -> Iterator[str]:
            return iter(sorted(self._dependents.get(name, ()), key=self._index))

        for root in self._nodes:
            if color[root] != 0:
                continue

            color[root] = 1
            stack = [(root, dependents_of(root))]
            while stack:
                name, dependents = stack[-1]

                for dependent in dependents:
                    if dependent not in color:
                        continue

                    if color[dependent] == 1:
                        # Back edge: walk parents from here to the cycle start
                        cycle = [dependent]
                        current = name
                        while current != dependent:
                            cycle.append(current)
                            current = parent[current]
                        cycle.append(dependent)
                        return list(reversed(cycle))

                    if color[dependent] == 0:
                        parent[dependent] = name
                        color[dependent] = 1
                        stack.append((dependent, dependents_of(dependent)))
                        break
                else:
                    color[name] = 2
                    stack.pop()

        return None

    def validate(self) -> None:
        """Validate the dependency graph.

        Raises:
            UnresolvedReference: If a reference names an undeclared resource
            CycleDetected: If the reference relation is cyclic
        """
        unresolved = self.find_unresolved_reference()
        if unresolved:
            raise unresolved

        cycle = self.detect_circular_dependencies()
        if cycle:
            raise CycleDetected(cycle)

    def topological_sort(self) -> List[str]:
        """Order resources so every resource follows everything it references.

        Ties are broken by declaration order, so the same graph always yields
        the same order.

        Returns:
            Resource names in deployment order

        Raises:
            UnresolvedReference: If a reference names an undeclared resource
            CycleDetected: If the graph contains a cycle
        """
        self.validate()

        # Kahn's algorithm with a heap keyed on declaration index
        in_degree = {name: len(node.dependencies) for name, node in self._nodes.items()}
        ready = [node.index for name, node in self._nodes.items() if in_degree[name] == 0]
        heapq.heapify(ready)
        by_index = {node.index: name for name, node in self._nodes.items()}
        result = []

        while ready:
            name = by_index[heapq.heappop(ready)]
            result.append(name)

            for dependent in self._dependents.get(name, ()):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(ready, self._nodes[dependent].index)

        if len(result) != len(self._nodes):
            remaining = [name for name in self._nodes if name not in set(result)]
            raise CycleDetected(remaining)

        return result

    def _index(self, name: str) -> int:
        node = self._nodes.get(name)
        return node.index if node else len(self._nodes)
