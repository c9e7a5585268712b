"""
Augmented AVL interval tree.

Indexes closed intervals [start, end] so that overlap and point queries
avoid scanning every stored event. Each node keeps the largest end found in
its subtree, which lets searches skip whole branches.
"""

from typing import Any, Generic, Iterator, Optional, TypeVar

# T represents the totally ordered coordinate type (datetime here)
T = TypeVar('T')


class IntervalNode(Generic[T]):
    """Tree node holding one interval and its payload."""
    __slots__ = ['start', 'end', 'data', 'left', 'right', 'parent', 'max_end', 'height']

    def __init__(self, start: T, end: T, data: Any):
        self.start: T = start
        self.end: T = end
        self.data: Any = data
        self.left: Optional['IntervalNode[T]'] = None
        self.right: Optional['IntervalNode[T]'] = None
        self.parent: Optional['IntervalNode[T]'] = None
        self.max_end: T = end
        self.height: int = 1


class IntervalTree(Generic[T]):
    """
    Interval index keyed by start.

    Intervals with equal starts are kept in insertion order, so an in-order
    walk lists them the way they were added.
    """

    def __init__(self):
        self.root: Optional[IntervalNode[T]] = None
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[Any]:
        """Yield payloads in start order."""
        stack = []
        node = self.root
        while stack or node:
            while node:
                stack.append(node)
                node = node.left
            node = stack.pop()
            yield node.data
            node = node.right

    def clear(self) -> None:
        self.root = None
        self._size = 0

    # --- Balancing ---

    @staticmethod
    def _height(node: Optional[IntervalNode[T]]) -> int:
        return node.height if node else 0

    def _update(self, node: IntervalNode[T]):
        node.height = 1 + max(self._height(node.left), self._height(node.right))
        max_end = node.end
        for child in (node.left, node.right):
            if child and child.max_end > max_end:
                max_end = child.max_end
        node.max_end = max_end

    def _replace_child(self, parent: Optional[IntervalNode[T]], old: IntervalNode[T],
                       new: Optional[IntervalNode[T]]):
        if parent is None:
            self.root = new
        elif parent.left is old:
            parent.left = new
        else:
            parent.right = new
        if new:
            new.parent = parent

    def _rotate_left(self, x: IntervalNode[T]):
        y = x.right
        x.right = y.left
        if y.left:
            y.left.parent = x
        self._replace_child(x.parent, x, y)
        y.left = x
        x.parent = y
        self._update(x)
        self._update(y)

    def _rotate_right(self, y: IntervalNode[T]):
        x = y.left
        y.left = x.right
        if x.right:
            x.right.parent = y
        self._replace_child(y.parent, y, x)
        x.right = y
        y.parent = x
        self._update(y)
        self._update(x)

    def _rebalance(self, node: Optional[IntervalNode[T]]):
        # Walk to the root, restoring heights, max_end and AVL balance
        while node:
            self._update(node)
            balance = self._height(node.left) - self._height(node.right)
            if balance > 1:
                if self._height(node.left.left) < self._height(node.left.right):
                    self._rotate_left(node.left)
                self._rotate_right(node)
                node = node.parent
            elif balance < -1:
                if self._height(node.right.right) < self._height(node.right.left):
                    self._rotate_right(node.right)
                self._rotate_left(node)
                node = node.parent
            node = node.parent

    # --- Mutation ---

    def insert(self, start: T, end: T, data: Any) -> IntervalNode[T]:
        new_node = IntervalNode(start, end, data)
        self._size += 1
        if not self.root:
            self.root = new_node
            return new_node

        parent = None
        curr = self.root
        while curr:
            parent = curr
            curr = curr.left if start < curr.start else curr.right

        new_node.parent = parent
        if start < parent.start:
            parent.left = new_node
        else:
            parent.right = new_node

        self._rebalance(parent)
        return new_node

    def remove(self, start: T, data: Any) -> bool:
        """
        Remove the interval starting at ``start`` whose payload is ``data``.

        Payloads are matched by identity. Returns False if nothing matched.
        """
        for node in self._nodes_covering(start):
            if node.start == start and node.data is data:
                self._delete(node)
                return True
        return False

    def _delete(self, node: IntervalNode[T]):
        # Nodes with two children are replaced by their in-order successor;
        # the successor is unlinked, then takes the deleted node's place.
        self._size -= 1
        if node.left and node.right:
            successor = node.right
            while successor.left:
                successor = successor.left
            rebalance_from = successor.parent if successor.parent is not node else successor
            self._replace_child(successor.parent, successor, successor.right)
            successor.left = node.left
            successor.right = node.right
            if successor.left:
                successor.left.parent = successor
            if successor.right:
                successor.right.parent = successor
            self._replace_child(node.parent, node, successor)
            successor.height = node.height
            self._rebalance(rebalance_from)
        else:
            child = node.left or node.right
            parent = node.parent
            self._replace_child(parent, node, child)
            self._rebalance(parent)
        node.left = node.right = node.parent = None

    # --- Queries ---

    def find_intersecting(self, start: T, end: T) -> list[Any]:
        """Payloads of intervals with any overlap with [start, end], in start order."""
        return [node.data for node in self._nodes_intersecting(start, end)]

    def find_covering(self, point: T) -> list[Any]:
        """Payloads of intervals that contain ``point`` (endpoints included)."""
        return [node.data for node in self._nodes_covering(point)]

    def _nodes_covering(self, point: T) -> list[IntervalNode[T]]:
        return self._nodes_intersecting(point, point)

    def _nodes_intersecting(self, start: T, end: T) -> list[IntervalNode[T]]:
        found: list[IntervalNode[T]] = []

        def _search(node):
            if not node or start > node.max_end:
                return
            _search(node.left)
            if node.start <= end and node.end >= start:
                found.append(node)
            if node.start <= end:
                _search(node.right)

        _search(self.root)
        return found

    # --- Debug Tool ---

    def verify_integrity(self):
        """Raise RuntimeError if AVL balance, max_end or parent links are violated."""
        def _walk(node, parent):
            if not node:
                return 0, None
            if node.parent is not parent:
                raise RuntimeError(f"Parent link violation at {node.start}")
            left_h, left_max = _walk(node.left, node)
            right_h, right_max = _walk(node.right, node)
            if abs(left_h - right_h) > 1:
                raise RuntimeError(f"AVL violation at {node.start}")
            expected_max = max(m for m in (node.end, left_max, right_max) if m is not None)
            if node.max_end != expected_max:
                raise RuntimeError(f"max_end violation at {node.start}")
            if node.left and node.left.start > node.start:
                raise RuntimeError(f"Order violation at {node.start}")
            if node.right and node.right.start < node.start:
                raise RuntimeError(f"Order violation at {node.start}")
            return 1 + max(left_h, right_h), expected_max

        _walk(self.root, None)
