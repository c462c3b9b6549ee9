"""Post-resolution graph analysis (dependency cycles)."""

from __future__ import annotations

from compartmap.model import Graph


def _edges(graph: Graph, location: str) -> list[str]:
    return sorted(
        target
        for target in set(graph[location].dependency_locations.values())
        if target in graph
    )


def find_cycles(graph: Graph) -> list[list[str]]:
    """Return strongly-connected components of size ≥ 2 using Tarjan's algorithm.

    Each returned list is a group of package locations that are mutually
    reachable via ``dependency_locations`` edges, i.e. a dependency cycle.
    Locations are visited in sorted order and each group is sorted, so the
    result does not depend on graph insertion order.

    The traversal keeps an explicit work stack because ``node_modules``
    chains can be deeper than the interpreter's recursion limit.
    """
    index: dict[str, int] = {}
    lowlink: dict[str, int] = {}
    on_stack: set[str] = set()
    stack: list[str] = []
    sccs: list[list[str]] = []

    for root in sorted(graph):
        if root in index:
            continue
        # (location, iterator over its remaining successors)
        work = [(root, iter(_edges(graph, root)))]
        index[root] = lowlink[root] = len(index)
        stack.append(root)
        on_stack.add(root)

        while work:
            location, successors = work[-1]
            for successor in successors:
                if successor not in index:
                    index[successor] = lowlink[successor] = len(index)
                    stack.append(successor)
                    on_stack.add(successor)
                    work.append((successor, iter(_edges(graph, successor))))
                    break
                if successor in on_stack:
                    lowlink[location] = min(lowlink[location], index[successor])
            else:
                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[location])
                if lowlink[location] == index[location]:
                    component: list[str] = []
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.append(member)
                        if member == location:
                            break
                    if len(component) >= 2:
                        sccs.append(sorted(component))

    return sccs
