"""Control tree helpers shared by resolution, diffing and export."""

from typing import Iterator, List, Optional, Tuple

from oscal_workbench.models.oscal import Catalog, Control, Group


def iter_groups(groups: Optional[List[Group]], depth: int = 1) -> Iterator[Tuple[Group, int]]:
    """Yield every group depth-first with its nesting depth, top level being 1."""
    for group in groups or []:
        yield group, depth
        yield from iter_groups(group.groups, depth + 1)


def get_all_controls(catalog: Catalog) -> List[Control]:
    """Flatten top-level controls and every control reachable through groups.

    Enhancements nested under a control are not included.
    """
    controls: List[Control] = list(catalog.controls or [])
    for group, _ in iter_groups(catalog.groups):
        controls.extend(group.controls or [])
    return controls


def _count_nested(controls: Optional[List[Control]]) -> int:
    return sum(1 + _count_nested(c.controls) for c in controls or [])


def count_controls(catalog: Catalog) -> int:
    """Count every control in the catalog, enhancements included."""
    total = _count_nested(catalog.controls)
    for group, _ in iter_groups(catalog.groups):
        total += _count_nested(group.controls)
    return total
