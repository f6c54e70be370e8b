"""Reconstruct navigation menu trees from flat menu item records."""

import logging
from dataclasses import replace
from typing import Dict, List, Optional

from models import Menu, MenuItem
from .slugs import slugify


class MenuBuilder:
    """
    Builds ordered menu trees from ``nav_menu_item`` records.

    Items are grouped by their ``nav_menu`` category when the export carries
    one. Otherwise every root lands in a single default menu. Parent chains
    that loop back on themselves are broken at the first repeated item, which
    is promoted to a root.
    """

    DEFAULT_MENU_NAME = 'Main Menu'

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger('wp_cms_migrator.parsers.menu_builder')
        self.stats = {'orphans': 0, 'cycles': 0}

    def build(self, items: List[MenuItem]) -> Dict[str, Menu]:
        """
        Build named menus from flat menu items.

        Args:
            items: Flat menu items in source order

        Returns:
            Menus keyed by name, in discovery order
        """
        # Work on copies so parser output is never mutated
        nodes: List[MenuItem] = []
        by_id: Dict[str, MenuItem] = {}
        for item in items:
            if item.id in by_id:
                self.logger.warning(f"Duplicate menu item id {item.id}, keeping the first")
                continue
            node = replace(item, children=[])
            by_id[node.id] = node
            nodes.append(node)

        self._break_cycles(nodes, by_id)

        roots: List[MenuItem] = []
        for node in nodes:
            if node.is_root():
                roots.append(node)
                continue
            parent = by_id.get(node.parent_id)
            if parent is None:
                self.stats['orphans'] += 1
                self.logger.warning(
                    f"Menu item '{node.title}' ({node.id}) references missing parent "
                    f"{node.parent_id}, dropping it"
                )
                continue
            parent.children.append(node)

        menus = self._group_roots(roots)

        for menu in menus.values():
            menu.items = self._sort_level(menu.items)

        self.logger.debug(f"Built {len(menus)} menus from {len(items)} menu items")
        return menus

    def _break_cycles(self, nodes: List[MenuItem], by_id: Dict[str, MenuItem]) -> None:
        """Promote the first repeated item of any parent loop to a root."""
        for node in nodes:
            seen = set()
            current = node
            while not current.is_root():
                if id(current) in seen:
                    self.stats['cycles'] += 1
                    self.logger.warning(
                        f"Menu item '{current.title}' ({current.id}) is its own ancestor, "
                        f"breaking the cycle by making it a top-level item"
                    )
                    current.parent_id = '0'
                    break
                seen.add(id(current))
                parent = by_id.get(current.parent_id)
                if parent is None:
                    break
                current = parent

    def _group_roots(self, roots: List[MenuItem]) -> Dict[str, Menu]:
        """Assign root items to named menus."""
        menus: Dict[str, Menu] = {}
        if not roots:
            return menus
        has_names = any(root.menu_name for root in roots)

        if not has_names:
            menus[self.DEFAULT_MENU_NAME] = Menu(
                name=self.DEFAULT_MENU_NAME,
                slug=slugify(self.DEFAULT_MENU_NAME),
                items=list(roots)
            )
            return menus

        for root in roots:
            name = root.menu_name or self.DEFAULT_MENU_NAME
            if name not in menus:
                menus[name] = Menu(name=name, slug=slugify(name))
            menus[name].items.append(root)
        return menus

    def _sort_level(self, items: List[MenuItem]) -> List[MenuItem]:
        """Stable-sort one level by order, recursing into children."""
        ordered = sorted(items, key=lambda item: item.order)
        for item in ordered:
            item.children = self._sort_level(item.children)
        return ordered


__all__ = ['MenuBuilder']
