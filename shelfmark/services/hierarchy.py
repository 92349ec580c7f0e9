from __future__ import annotations

from dataclasses import dataclass, field

from shelfmark.services.colors import folder_color


@dataclass
class FolderNode:
    id: int
    name: str
    parent_id: int | None
    level: int = 0
    children: list["FolderNode"] = field(default_factory=list)
    path: list[str] = field(default_factory=list)

    @property
    def color(self) -> str:
        return folder_color(self.id)

    def as_dict(self, include_children: bool = False) -> dict:
        payload = {
            "id": self.id,
            "name": self.name,
            "parent_id": self.parent_id,
            "level": self.level,
            "path": list(self.path),
            "color": self.color,
        }
        if include_children:
            payload["children"] = [
                child.as_dict(include_children=True) for child in self.children
            ]
        return payload


def _sort_key(node: FolderNode):
    return ((node.name or "").lower(), node.name or "", node.id)


def build_hierarchy(folders) -> list[FolderNode]:
    """Return the folders as a pre-order listing of decorated nodes.

    Accepts any records carrying ``id``, ``name`` and ``parent_id``. A folder
    whose parent is not among the input is a root. Siblings are ordered by
    name. Each node also keeps its children, so ``[n for n in result if
    n.level == 0]`` is the tree itself.
    """
    nodes: dict[int, FolderNode] = {}
    for folder in folders:
        nodes[folder.id] = FolderNode(
            id=folder.id, name=folder.name, parent_id=folder.parent_id
        )

    roots: list[FolderNode] = []
    for node in nodes.values():
        parent = nodes.get(node.parent_id) if node.parent_id is not None else None
        if parent is not None and parent is not node:
            parent.children.append(node)
        else:
            roots.append(node)

    ordered: list[FolderNode] = []
    visited: set[int] = set()

    def walk(node: FolderNode, level: int, path: list[str]) -> None:
        if node.id in visited:
            return
        visited.add(node.id)
        node.level = level
        node.path = path + [node.name]
        ordered.append(node)
        node.children.sort(key=_sort_key)
        for child in node.children:
            walk(child, level + 1, node.path)

    for root in sorted(roots, key=_sort_key):
        walk(root, 0, [])

    # Members of a parent loop are unreachable from any root; list them flat.
    if len(visited) != len(nodes):
        leftovers = sorted(
            (node for node in nodes.values() if node.id not in visited), key=_sort_key
        )
        for node in leftovers:
            node.children = [
                child for child in node.children if child.id not in visited
            ]
            walk(node, 0, [])

    return ordered


def hierarchy_roots(nodes: list[FolderNode]) -> list[FolderNode]:
    return [node for node in nodes if node.level == 0]


def folder_subtree_ids(folder_id: int, folders) -> list[int]:
    children_by_parent: dict[int | None, list[int]] = {}
    for folder in folders:
        children_by_parent.setdefault(folder.parent_id, []).append(folder.id)

    ordered: list[int] = []
    seen: set[int] = set()

    def walk(current_id: int) -> None:
        if current_id in seen:
            return
        seen.add(current_id)
        ordered.append(current_id)
        for child_id in children_by_parent.get(current_id, []):
            walk(child_id)

    walk(folder_id)
    return ordered
