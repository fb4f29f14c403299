"""Rebuild reply threads from a flat, chronologically ordered comment list.

The builder makes two passes over the input. The first creates one node per
comment, the second attaches every node to its parent or, when the comment
has no parent or the parent is not on the list, to the list of roots.
Because the second pass walks the input in order, replies keep the order of
the input within each sibling group. No recursion, O(n) time and space, and
no input can make it raise.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar
from uuid import UUID


class Threadable(Protocol):
    @property
    def id(self) -> UUID: ...

    @property
    def parent_comment_id(self) -> UUID | None: ...


T = TypeVar("T", bound=Threadable)


@dataclass(eq=False)
class CommentThread(Generic[T]):
    """A comment and its direct replies."""

    comment: T
    replies: list["CommentThread[T]"] = field(default_factory=list)


def _reachable(threads: Iterable[CommentThread[T]]) -> set[int]:
    seen: set[int] = set()
    stack = list(threads)
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        stack.extend(node.replies)
    return seen


def _find_cycle(
    start: CommentThread[T], parents: dict[int, CommentThread[T]]
) -> list[CommentThread[T]]:
    """Members of the parent cycle that ``start`` hangs below.

    ``start`` must be unreachable from every root, so following parents from
    it never runs out and has to come back to a node already walked.
    """
    path: dict[int, CommentThread[T]] = {}
    current = start
    while id(current) not in path:
        path[id(current)] = current
        current = parents[id(current)]

    walked = list(path.values())
    return walked[walked.index(current):]


def build_threads(comments: Iterable[T]) -> list[CommentThread[T]]:
    """Group ``comments`` into a forest of reply threads.

    Args:
        comments: Comments of a single post, oldest first.

    Returns:
        Root threads in input order. Every comment appears exactly once.
    """
    order = [CommentThread(comment=comment) for comment in comments]

    # First occurrence wins when an id repeats
    nodes: dict[UUID, CommentThread[T]] = {}
    for node in order:
        nodes.setdefault(node.comment.id, node)

    root_ids: set[int] = set()
    parents: dict[int, CommentThread[T]] = {}
    for node in order:
        parent_id = node.comment.parent_comment_id
        parent = nodes.get(parent_id) if parent_id is not None else None
        if parent is None or parent is node:
            root_ids.add(id(node))
        else:
            parent.replies.append(node)
            parents[id(node)] = parent

    # Reply cycles are unreachable from any root; each is cut at its earliest
    # member in input order, which becomes a root
    seen = _reachable(node for node in order if id(node) in root_ids)
    if len(seen) < len(order):
        position = {id(node): index for index, node in enumerate(order)}
        for node in order:
            if id(node) in seen:
                continue
            cycle = _find_cycle(node, parents)
            cut = min(cycle, key=lambda member: position[id(member)])
            parents[id(cut)].replies.remove(cut)
            root_ids.add(id(cut))
            seen |= _reachable([cut])

    return [node for node in order if id(node) in root_ids]


def count_nodes(threads: Iterable[CommentThread[T]]) -> int:
    """Total number of comments in a forest."""
    total = 0
    stack = list(threads)
    while stack:
        node = stack.pop()
        total += 1
        stack.extend(node.replies)
    return total
