import logging

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Callable, Iterable

from .expression import Expression
from .operation import OperationKind
from .value import Value

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EclassID:
    id : int


class UnionFind:
    def __init__(self):
        self.parent : list[EclassID] = []
        self.rank : list[int] = []

    def __len__(self):
        return len(self.parent)

    def make_class(self) -> EclassID:
        next_id = len(self.parent)
        self.parent.append(EclassID(next_id))
        self.rank.append(0)
        return self.parent[-1]

    def find(self, x : EclassID) -> EclassID:
        # Path halving
        while self.parent[x.id] != x:
            self.parent[x.id] = self.parent[self.parent[x.id].id]
            x = self.parent[x.id]
        return x

    def union(self, x : EclassID, y : EclassID) -> EclassID:
        x = self.find(x)
        y = self.find(y)
        if x == y:
            return x

        if self.rank[x.id] < self.rank[y.id]:
            x, y = y, x

        self.parent[y.id] = x
        if self.rank[x.id] == self.rank[y.id]:
            self.rank[x.id] += 1
        return x


@dataclass(frozen=True)
class Enode:
    head : OperationKind | Value
    args : tuple[EclassID, ...] = ()

    @property
    def is_leaf(self) -> bool:
        return not isinstance(self.head, OperationKind)


@dataclass
class EquivalenceClass:
    id : EclassID
    nodes : set[Enode] = field(default_factory=set)
    expressions : set[Expression] = field(default_factory=set)

    def __contains__(self, item):
        if isinstance(item, Enode):
            return item in self.nodes
        return item in self.expressions

    def __len__(self):
        return len(self.nodes)


Rule = Callable[["EquivalenceGraph", EclassID, Enode], bool]
CostFunction = Callable[[Enode, list[int]], int]


def ast_size(enode : Enode, child_costs : list[int]) -> int:
    return 1 + sum(child_costs)


def ast_depth(enode : Enode, child_costs : list[int]) -> int:
    return 1 + max(child_costs, default=0)


class EquivalenceGraph:
    """Partition of expressions into classes of (intended) equals.

    Every distinct sub-expression gets an e-class. Classes are merged by
    ``merge`` (an external rule asserting two expressions are equal) and by
    congruence closure during ``rebuild``: two e-nodes with the same operator
    whose arguments are in the same classes end up in the same class.

    Merges are cheap; the hash-cons and congruence invariants are restored
    lazily, the next time a query needs them. Each class remembers the
    e-nodes that use it as an argument, so a rebuild only revisits the
    parents of classes that were merged since the last one.
    """

    def __init__(self, root : Expression | None = None, rules : Iterable[Rule] = ()):
        self.uf = UnionFind()
        self.eclasses : dict[EclassID, set[Enode]] = defaultdict(set)
        self.enodes : dict[Enode, EclassID] = {}
        self.parents : dict[EclassID, list[tuple[Enode, EclassID]]] = defaultdict(list)
        self.expressions : dict[Expression, EclassID] = {}
        self._class_expressions : dict[EclassID, set[Expression]] = defaultdict(set)
        self._rules : list[Rule] = list(rules)
        self._worklist : list[EclassID] = []
        self._version = 0
        self._extraction : tuple[int, CostFunction, dict] | None = None
        self.backing_root = root
        self._root_id = self.insert_expression(root) if root is not None else None

    @classmethod
    def from_expression(cls, root : Expression, rules : Iterable[Rule] = ()) -> "EquivalenceGraph":
        return cls(root, rules)

    @property
    def root_class(self) -> EquivalenceClass | None:
        if self._root_id is None:
            return None
        return self.class_of(self._root_id)

    def add_rule(self, rule : Rule):
        self._rules.append(rule)

    def _canonicalize(self, enode : Enode) -> Enode:
        return Enode(
            head=enode.head,
            args=tuple(self.uf.find(arg) for arg in enode.args),
        )

    def _resolve(self, x : EclassID | Expression) -> EclassID:
        if isinstance(x, Expression):
            return self.insert_expression(x)
        return self.uf.find(x)

    def add(self, enode : Enode) -> EclassID:
        enode = self._canonicalize(enode)
        if enode in self.enodes:
            return self.uf.find(self.enodes[enode])

        new_eclass_id = self.uf.make_class()
        self.enodes[enode] = new_eclass_id
        self.eclasses[new_eclass_id].add(enode)
        for arg in enode.args:
            self.parents[arg].append((enode, new_eclass_id))
        self._version += 1
        return new_eclass_id

    def insert_expression(self, expr : Expression) -> EclassID:
        ids : dict[int, EclassID] = {}
        for node in expr.walk():
            if node.is_leaf:
                enode = Enode(head=node.value)
            else:
                enode = Enode(
                    head=node.kind,
                    args=tuple(ids[id(child)] for child in node.children),
                )
            ids[id(node)] = self.add(enode)
            if node not in self.expressions:
                self.expressions[node] = ids[id(node)]
                self._class_expressions[self.uf.find(ids[id(node)])].add(node)
        return self.uf.find(ids[id(expr)])

    def lookup(self, expr : Expression) -> EclassID | None:
        """The class of ``expr`` if every node of it is already in the graph."""
        self.rebuild()
        ids : dict[int, EclassID] = {}
        for node in expr.walk():
            if node.is_leaf:
                enode = Enode(head=node.value)
            else:
                enode = Enode(
                    head=node.kind,
                    args=tuple(ids[id(child)] for child in node.children),
                )
            found = self.enodes.get(self._canonicalize(enode))
            if found is None:
                return None
            ids[id(node)] = self.uf.find(found)
        return ids[id(expr)]

    def find(self, x : EclassID | Expression) -> EclassID:
        return self._resolve(x)

    def merge(self, x : EclassID | Expression, y : EclassID | Expression) -> EclassID:
        root_x = self._resolve(x)
        root_y = self._resolve(y)

        if root_x == root_y:
            return root_x

        new_root = self.uf.union(root_x, root_y)
        old_root = root_x if new_root == root_y else root_y

        self.eclasses[new_root].update(self.eclasses.pop(old_root, ()))
        self.parents[new_root].extend(self.parents.pop(old_root, ()))
        self._class_expressions[new_root].update(self._class_expressions.pop(old_root, ()))

        self._worklist.append(new_root)
        self._version += 1
        return new_root

    def union_expressions(self, a : Expression, b : Expression) -> EclassID:
        """Assert that ``a`` and ``b`` are equal and union their classes."""
        new_root = self.merge(a, b)
        logger.debug("Asserted %s = %s", a, b)
        return new_root

    def _repair(self, eclass_id : EclassID) -> int:
        # Re-key every parent of a merged class under its canonical form,
        # then merge parents that became congruent.
        eclass_id = self.uf.find(eclass_id)
        parents = self.parents.pop(eclass_id, [])

        canonical = []
        for p_node, p_class in parents:
            canon_node = self._canonicalize(p_node)
            p_class = self.uf.find(p_class)
            if p_node != canon_node:
                self.enodes.pop(p_node, None)
                self.eclasses[p_class].discard(p_node)
            self.enodes[canon_node] = p_class
            self.eclasses[p_class].add(canon_node)
            canonical.append((canon_node, p_class))

        nmerges = 0
        new_parents : dict[Enode, EclassID] = {}
        for canon_node, p_class in canonical:
            if canon_node in new_parents:
                existing = self.uf.find(new_parents[canon_node])
                if existing != self.uf.find(p_class):
                    self.merge(existing, p_class)
                    nmerges += 1
            new_parents[canon_node] = self.uf.find(p_class)

        self.parents[self.uf.find(eclass_id)].extend(new_parents.items())
        return nmerges

    def rebuild(self) -> int:
        """Restore congruence closure. Returns the number of congruence merges."""
        nmerges = 0
        while self._worklist:
            todo = {self.uf.find(eclass_id) for eclass_id in self._worklist}
            self._worklist = []
            for eclass_id in todo:
                nmerges += self._repair(eclass_id)
        if nmerges:
            logger.debug("Rebuild did %d congruence merges", nmerges)
        return nmerges

    def get_enodes(self, x : EclassID | Expression) -> set[Enode]:
        root = self._resolve(x)
        self.rebuild()
        return self.eclasses.get(self.uf.find(root), set())

    def equivalent(self, x : EclassID | Expression, y : EclassID | Expression) -> bool:
        x, y = self._resolve(x), self._resolve(y)
        self.rebuild()
        return self.uf.find(x) == self.uf.find(y)

    def classes(self) -> list[EquivalenceClass]:
        self.rebuild()
        return [
            EquivalenceClass(
                eclass_id,
                set(self.eclasses[eclass_id]),
                set(self._class_expressions.get(eclass_id, ())),
            )
            for eclass_id in sorted(self.eclasses, key=lambda c: c.id)
        ]

    def class_of(self, x : EclassID | Expression) -> EquivalenceClass:
        root = self._resolve(x)
        self.rebuild()
        root = self.uf.find(root)
        return EquivalenceClass(
            root,
            set(self.eclasses[root]),
            set(self._class_expressions.get(root, ())),
        )

    def __len__(self):
        self.rebuild()
        return len(self.eclasses)

    def _best_nodes(self, cost : CostFunction) -> dict[EclassID, tuple[int, int, Expression]]:
        # Fixpoint over all classes; a class is settled once one of its
        # enodes has every argument class settled.
        best : dict[EclassID, tuple[int, int, Expression]] = {}
        changed = True
        while changed:
            changed = False
            for eclass_id, enodes in self.eclasses.items():
                for enode in enodes:
                    if any(arg not in best for arg in enode.args):
                        continue
                    child_costs = [best[arg][0] for arg in enode.args]
                    if enode.is_leaf:
                        expr = Expression.leaf(enode.head)
                    else:
                        expr = Expression.operation(
                            enode.head,
                            *(best[arg][2] for arg in enode.args),
                        )
                    candidate = (cost(enode, child_costs), expr.hash(), expr)
                    current = best.get(eclass_id)
                    if current is None or candidate[:2] < current[:2]:
                        best[eclass_id] = candidate
                        changed = True
        return best

    def representative(self, x : EclassID | Expression, cost : CostFunction = ast_size) -> Expression:
        """The cheapest expression in a class, ties broken by smallest structural hash."""
        root = self._resolve(x)
        self.rebuild()
        root = self.uf.find(root)
        # Reused until the next add or merge
        if self._extraction is None or self._extraction[:2] != (self._version, cost):
            self._extraction = (self._version, cost, self._best_nodes(cost))
        best = self._extraction[2]
        if root not in best:
            raise ValueError(f"E-class {root.id} has no finite expression")
        return best[root][2]

    def _apply_rules_to_enode(self, eclass_id : EclassID, enode : Enode) -> bool:
        current_id = self.uf.find(eclass_id)
        for rule in self._rules:
            if rule(self, current_id, enode):
                return True
        return False

    def apply_rewrites(self) -> int:
        self.rebuild()
        nmerges = 0
        all_enodes = []
        for eclass_id, enodes in self.eclasses.items():
            for enode in enodes:
                all_enodes.append((eclass_id, enode))

        for eclass_id, enode in all_enodes:
            nmerges += 1 if self._apply_rules_to_enode(eclass_id, enode) else 0
        self.rebuild()
        return nmerges

    def incrementally_check_equivalence(
        self,
        x : EclassID | Expression,
        y : EclassID | Expression,
        max_iters : int = 10,
    ) -> bool:
        x, y = self._resolve(x), self._resolve(y)
        if self.equivalent(x, y):
            return True
        for i in range(max_iters):
            merges_this_iter = self.apply_rewrites()
            logger.info("Iter %d did %d merges, %d enodes", i, merges_this_iter, len(self.enodes))
            if self.equivalent(x, y):
                return True
            if merges_this_iter == 0:
                break
        return False

    def equality_saturation(self, max_iters : int = 10) -> int:
        total_merges = 0
        iters = 0
        for i in range(max_iters):
            merges_this_iter = self.apply_rewrites()
            iters = i + 1
            logger.info("Iter %d did %d merges, %d enodes", i, merges_this_iter, len(self.enodes))
            total_merges += merges_this_iter
            if merges_this_iter == 0:
                break

        logger.info("Did %d merges after %d iters", total_merges, iters)
        return total_merges
