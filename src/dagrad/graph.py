import logging

import rustworkx as rx

logger = logging.getLogger(__name__)


class AutogradGraph:
    """
    Arena view of the part of the computation graph a root depends on.

    Every distinct tensor reachable from the root through ``parents`` is
    stored once, under a stable integer index, no matter how many consumers
    reach it. Edges run from operand to result and carry the operand slot.
    Tensors only ever reference tensors built before them, so the arena is a
    DAG by construction.
    """
    __slots__ = ('graph', 'root_index', '_index')

    def __init__(self):
        self.graph = rx.PyDiGraph()
        self.root_index = None
        self._index = {}

    @classmethod
    def from_root(cls, root):
        arena = cls()
        arena.root_index = arena._add(root)
        stack = [root]
        while stack:
            node = stack.pop()
            child = arena._index[id(node)]
            for slot, parent in enumerate(getattr(node, "parents", ())):
                seen = id(parent) in arena._index
                parent_index = arena._add(parent)
                arena.graph.add_edge(parent_index, child, slot)
                if not seen:
                    stack.append(parent)
        logger.debug("built %r", arena)
        return arena

    def _add(self, node):
        key = id(node)
        if key not in self._index:
            self._index[key] = self.graph.add_node(node)
        return self._index[key]

    def index_of(self, node):
        try:
            return self._index[id(node)]
        except KeyError:
            raise KeyError(f"{node!r} is not an ancestor of this graph's root") from None

    def node(self, index):
        return self.graph[index]

    def parents_of(self, index):
        """Operand indices of the node at ``index`` in operand order."""
        edges = sorted(self.graph.in_edges(index), key=lambda e: e[2])
        return [src for src, _, _ in edges]

    def reverse_toposort_indices(self):
        # every node comes after all of its consumers; the root comes first
        return list(reversed(rx.topological_sort(self.graph)))

    def reverse_toposort(self):
        return [self.graph[i] for i in self.reverse_toposort_indices()]

    def leaves(self):
        return [self.graph[i] for i in self.graph.node_indices() if self.graph.in_degree(i) == 0]

    def __contains__(self, node):
        return id(node) in self._index

    def __len__(self):
        return self.graph.num_nodes()

    def __repr__(self):
        return f"AutogradGraph(nodes={self.graph.num_nodes()}, edges={self.graph.num_edges()})"
