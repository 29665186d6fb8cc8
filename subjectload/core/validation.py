from typing import Dict, Iterable, List

from subjectload.core.exceptions import ConfigurationError
from subjectload.core.models import CurriculumSubject


def validate_prerequisite_graph(curriculum_subjects: Iterable[CurriculumSubject]) -> None:
    """Raise ConfigurationError if the prerequisite links contain a cycle."""
    graph: Dict[int, List[int]] = {cs.id: [int(p) for p in cs.prerequisite_ids] for cs in curriculum_subjects}

    # 0 = unvisited, 1 = on the current path, 2 = done
    state: Dict[int, int] = {}
    for root in sorted(graph):
        if state.get(root):
            continue
        path: List[int] = [root]
        stack = [(root, iter(graph.get(root, [])))]
        state[root] = 1
        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                state[node] = 2
                stack.pop()
                path.pop()
                continue
            if state.get(child) == 1:
                cycle = path[path.index(child):] + [child]
                raise ConfigurationError(
                    "Prerequisite cycle: " + " -> ".join(str(c) for c in cycle),
                    error_code="prerequisite_cycle",
                    details={"cycle": cycle},
                )
            if not state.get(child):
                state[child] = 1
                path.append(child)
                stack.append((child, iter(graph.get(child, []))))
