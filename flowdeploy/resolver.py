"""
Tag graph resolver.

Selects the deployment requests matching a set of tags and orders them so
that every request is scheduled after the requests whose addresses it takes
as constructor arguments.
"""
import heapq
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .artifacts import ArtifactRegistry
from .exceptions import CyclicDependency
from .models import DeploymentRequest

logger = logging.getLogger(__name__)

ALL_TAG = "all"


def select(selected_tags: Iterable[str], all_requests: Sequence[DeploymentRequest]) -> List[DeploymentRequest]:
    """
    Pick the requests matching the tags, plus the declared requests they depend on.

    Results keep declaration order.
    """
    tags = set(selected_tags)
    by_name = {request.name: request for request in all_requests}

    if ALL_TAG in tags:
        chosen = set(by_name)
    else:
        chosen = {request.name for request in all_requests if request.tags & tags}

    # Pull in declared dependencies transitively
    pending = list(chosen)
    while pending:
        name = pending.pop()
        for dependency in by_name[name].dependencies():
            if dependency in by_name and dependency not in chosen:
                logger.debug(f"Including '{dependency}' required by '{name}'")
                chosen.add(dependency)
                pending.append(dependency)

    return [request for request in all_requests if request.name in chosen]


def _find_cycle(remaining: Set[str], edges: Dict[str, List[str]], order: Dict[str, int]) -> List[str]:
    """Return the names forming one cycle among the unscheduled requests"""
    for start in sorted(remaining, key=order.__getitem__):
        path: List[str] = []
        on_path: Dict[str, int] = {}
        node = start
        # Each unscheduled node has at least one unscheduled dependency
        while node not in on_path:
            on_path[node] = len(path)
            path.append(node)
            node = next(dep for dep in edges[node] if dep in remaining)
        return path[on_path[node]:]
    return []


def resolve(
    selected_tags: Iterable[str],
    all_requests: Sequence[DeploymentRequest],
    registry: Optional[ArtifactRegistry] = None,
) -> List[DeploymentRequest]:
    """
    Resolve the ordered list of deployments to run.

    Args:
        selected_tags: Tags to deploy; "all" selects every request
        all_requests: Every declared request, in declaration order
        registry: If given, every scheduled request must name a registered artifact

    Returns:
        Requests in dependency order, ties broken by declaration order

    Raises:
        ValueError: If two requests share a name
        CyclicDependency: If the selected requests reference each other in a cycle
        UnknownArtifact: If a scheduled request has no registered artifact
    """
    seen: Set[str] = set()
    for request in all_requests:
        if request.name in seen:
            raise ValueError(f"Duplicate deployment name: '{request.name}'")
        seen.add(request.name)

    requests = select(selected_tags, all_requests)
    order = {request.name: index for index, request in enumerate(requests)}
    by_name = {request.name: request for request in requests}

    # Only edges inside the selection count; other references are resolved from the ledger
    edges = {
        request.name: [dep for dep in request.dependencies() if dep in by_name]
        for request in requests
    }
    in_degree = {name: len(deps) for name, deps in edges.items()}
    dependents: Dict[str, List[str]] = {name: [] for name in by_name}
    for name, deps in edges.items():
        for dep in deps:
            dependents[dep].append(name)

    ready = [order[name] for name, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)
    ordered: List[DeploymentRequest] = []
    while ready:
        request = requests[heapq.heappop(ready)]
        ordered.append(request)
        for dependent in dependents[request.name]:
            in_degree[dependent] -= 1
            if in_degree[dependent] == 0:
                heapq.heappush(ready, order[dependent])

    if len(ordered) != len(requests):
        remaining = {name for name, degree in in_degree.items() if degree > 0}
        raise CyclicDependency(_find_cycle(remaining, edges, order))

    if registry is not None:
        for request in ordered:
            registry.get(request.name)

    logger.debug(f"Resolved deployment order: {[request.name for request in ordered]}")
    return ordered
