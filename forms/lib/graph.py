"""Computed-field dependency graph.

Built once per installed descriptor from every computed field's
``compute_from`` edges. Construction rejects cycles with the full path;
afterwards the graph answers "which computed fields must be re-derived, and
in what order, when these fields change?".
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Set, Tuple

from forms.lib.errors import ConfigError
from forms.models.descriptors import FieldDescriptor

logger = logging.getLogger(__name__)

__all__ = ["DependencyGraph"]


class DependencyGraph:
    """Adjacency lists keyed by field name plus a global topological order.

    Only computed fields are nodes with outgoing edges; plain fields (and
    undeclared names, which structural validation reports separately) are
    leaves.

    Raises:
        ConfigError: If the ``compute_from`` edges form a cycle
    """

    def __init__(self, fields: Iterable[FieldDescriptor]):
        # computed field -> the names it reads
        self._depends_on: Dict[str, Tuple[str, ...]] = {}
        # any field -> computed fields that read it
        self._dependents: Dict[str, List[str]] = {}

        for f in fields:
            if not f.is_computed:
                continue
            self._depends_on[f.name] = f.compute_from
            for source in f.compute_from:
                self._dependents.setdefault(source, []).append(f.name)

        self._order: List[str] = self._topological_order()
        self._rank: Dict[str, int] = {name: i for i, name in enumerate(self._order)}

        if self._order:
            logger.debug("Dependency graph order: %s", " -> ".join(self._order))

    @property
    def order(self) -> List[str]:
        """Every computed field, dependencies before dependents."""
        return list(self._order)

    def is_computed(self, name: str) -> bool:
        return name in self._depends_on

    def depends_on(self, name: str) -> Tuple[str, ...]:
        return self._depends_on.get(name, ())

    def dependents(self, name: str) -> List[str]:
        """Computed fields that read ``name`` directly."""
        return list(self._dependents.get(name, ()))

    def affected(self, changed: Iterable[str]) -> List[str]:
        """Transitive computed dependents of ``changed``, in topological order.

        Each returned field appears once and only after every computed field
        it depends on, so evaluating the list front to back reaches the
        fixpoint in a single pass.
        """
        seen: Set[str] = set()
        frontier = list(changed)
        while frontier:
            name = frontier.pop()
            for dependent in self._dependents.get(name, ()):
                if dependent not in seen:
                    seen.add(dependent)
                    frontier.append(dependent)
        return sorted(seen, key=self._rank.__getitem__)

    def __iter__(self) -> Iterator[str]:
        return iter(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def _topological_order(self) -> List[str]:
        # Iterative post-order DFS over "reads" edges; the explicit path and
        # on-stack set give the offending cycle when a back-edge appears.
        order: List[str] = []
        done: Set[str] = set()

        for root in self._depends_on:
            if root in done:
                continue
            path: List[str] = [root]
            on_stack: Set[str] = {root}
            stack: List[Tuple[str, Iterator[str]]] = [(root, iter(self._depends_on[root]))]

            while stack:
                node, edges = stack[-1]
                nxt = next(edges, None)
                if nxt is None:
                    stack.pop()
                    path.pop()
                    on_stack.discard(node)
                    done.add(node)
                    order.append(node)
                    continue
                if nxt in on_stack:
                    cycle = path[path.index(nxt):] + [nxt]
                    raise ConfigError(
                        "Circular computed-field dependency",
                        field=nxt,
                        cycle=cycle,
                        suggestion="Remove one of the compute_from edges in the cycle.",
                    )
                if nxt in done or nxt not in self._depends_on:
                    continue
                path.append(nxt)
                on_stack.add(nxt)
                stack.append((nxt, iter(self._depends_on[nxt])))

        return order
