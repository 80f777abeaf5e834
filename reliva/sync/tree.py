"""Nested reply trees rebuilt from a post's flat comment list."""
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from reliva.sync.records import Comment


def _resolve_parents(comments: List[Comment], index: Dict[str, Comment]) -> Dict[int, Optional[str]]:
    """Map each record position to the id of the parent it will hang under.

    Unknown and self-referencing parents resolve to ``None``. A parent chain
    that loops back on itself is cut at the member that appears first in the
    input, which becomes a root.
    """
    position = {}
    for i, comment in enumerate(comments):
        position.setdefault(comment.id, i)

    parent_of = {}
    for i, comment in enumerate(comments):
        pid = comment.parent_comment_id
        if pid and pid in index and pid != comment.id:
            parent_of[i] = pid
        else:
            parent_of[i] = None

    settled = set()
    for i in range(len(comments)):
        path = []
        on_path = set()
        current = i
        while current is not None and current not in settled and current not in on_path:
            path.append(current)
            on_path.add(current)
            pid = parent_of[current]
            current = position[pid] if pid is not None else None

        if current is not None and current in on_path:
            cycle = path[path.index(current):]
            parent_of[min(cycle)] = None

        settled.update(path)

    return parent_of


def build_comment_tree(comments: Iterable[Comment]) -> List[Comment]:
    comments = list(comments)

    nodes = [replace(comment, children=[]) for comment in comments]
    index = {}
    for node in nodes:
        index.setdefault(node.id, node)

    parent_of = _resolve_parents(comments, index)
    roots = []

    for i, node in enumerate(nodes):
        pid = parent_of[i]
        if pid is not None:
            index[pid].children.append(node)
        else:
            roots.append(node)

    return roots


def find_comment(comments: Iterable[Comment], comment_id: str) -> Optional[Comment]:
    for comment in comments:
        if comment.id == comment_id:
            return comment
        if comment.children:
            found = find_comment(comment.children, comment_id)
            if found:
                return found
    return None


def count_replies(comment: Optional[Comment]) -> int:
    if not comment:
        return 0
    return sum(1 for _ in walk(comment.children))


def walk(comments: Iterable[Comment], depth: int = 0):
    """Yield ``(depth, comment)`` pairs depth-first."""
    for comment in comments:
        yield depth, comment
        yield from walk(comment.children, depth + 1)
