"""Folder template structure rules.

A template structure is a JSON object ``{"folders": [{"name": ..., "children": [...]}]}``.
Applying a template creates one folder per node under a new root folder.
Structures are validated and walked breadth-first with an explicit queue,
so a deep template never recurses.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .errors import DocumentValidationError

MAX_TEMPLATE_DEPTH = 10
MAX_TEMPLATE_FOLDERS = 500


class TemplateScope(str, Enum):
    """Kind of folder a template is meant for."""
    COMPANY = "company"
    PROPERTY = "property"
    TENANT = "tenant"
    DEPARTMENT = "department"
    PROJECT = "project"
    AREA = "area"
    PERSONAL = "personal"


@dataclass(frozen=True)
class PlannedFolder:
    """One folder a template will create.

    ``key`` is the index path of the node in the structure; ``parent_key`` is
    None for top-level nodes, which go directly under the new root folder.
    """
    key: Tuple[int, ...]
    parent_key: Optional[Tuple[int, ...]]
    name: str


def _clean_name(raw: Any, key: Tuple[int, ...]) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise DocumentValidationError("Template folder names cannot be empty", node=list(key))
    name = raw.strip()
    if "/" in name:
        raise DocumentValidationError("Template folder names cannot contain '/'", name=name)
    if len(name) > 255:
        raise DocumentValidationError("Template folder names cannot exceed 255 characters", name=name[:50])
    return name


def _children_of(node: Any, key: Tuple[int, ...]) -> List[Any]:
    children = node.get("children") or []
    if not isinstance(children, list):
        raise DocumentValidationError("Template folder children must be a list", node=list(key))
    return children


def plan_folders(structure: Optional[Dict[str, Any]]) -> List[PlannedFolder]:
    """Validate a structure and list its folders, parents before children.

    Raises:
        DocumentValidationError: On a malformed node, an empty or invalid
            name, duplicate sibling names, or a structure that is too deep
            or too large
    """
    if structure is None:
        return []
    if not isinstance(structure, dict):
        raise DocumentValidationError("Template structure must be an object with a 'folders' list")
    top = structure.get("folders") or []
    if not isinstance(top, list):
        raise DocumentValidationError("Template structure 'folders' must be a list")

    planned: List[PlannedFolder] = []
    queue = deque([(None, top)])
    while queue:
        parent_key, nodes = queue.popleft()
        seen = set()
        for index, node in enumerate(nodes):
            key = (parent_key or ()) + (index,)
            if not isinstance(node, dict):
                raise DocumentValidationError("Template folders must be objects", node=list(key))
            if len(key) > MAX_TEMPLATE_DEPTH:
                raise DocumentValidationError(
                    f"Template structure is deeper than {MAX_TEMPLATE_DEPTH} levels",
                    max_depth=MAX_TEMPLATE_DEPTH,
                )
            name = _clean_name(node.get("name"), key)
            if name.lower() in seen:
                raise DocumentValidationError(f"Duplicate sibling folder '{name}' in template", name=name)
            seen.add(name.lower())

            planned.append(PlannedFolder(key=key, parent_key=parent_key, name=name))
            if len(planned) > MAX_TEMPLATE_FOLDERS:
                raise DocumentValidationError(
                    f"Template structure has more than {MAX_TEMPLATE_FOLDERS} folders",
                    max_folders=MAX_TEMPLATE_FOLDERS,
                )
            children = _children_of(node, key)
            if children:
                queue.append((key, children))
    return planned


def normalize_structure(structure: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Validated copy of a structure with trimmed names and only name/children kept."""
    planned = plan_folders(structure)
    nodes: Dict[Tuple[int, ...], Dict[str, Any]] = {}
    root: List[Dict[str, Any]] = []
    for folder in planned:
        node = {"name": folder.name, "children": []}
        nodes[folder.key] = node
        siblings = root if folder.parent_key is None else nodes[folder.parent_key]["children"]
        siblings.append(node)
    return {"folders": root}
