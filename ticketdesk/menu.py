from pymongo.database import Database
from typing import Dict, Iterable, List

from .models import MenuItem, MenuNode
from .repositories import MenuRepository


def build_menu_tree(items: Iterable[MenuItem]) -> List[MenuNode]:
    """Nest active menu items under their parents, sorted by title at every level.

    Items whose parent is missing (inactive or deleted) are left out.
    """
    items = [item for item in items if item.active]
    nodes: Dict[str, MenuNode] = {
        item.id: MenuNode(id=item.id, title=item.title, icon_name=item.icon_name, parent_id=item.parent_id)
        for item in items
    }

    roots = []
    for item in items:
        node = nodes[item.id]
        if item.parent_id is None:
            roots.append(node)
        elif item.parent_id in nodes:
            nodes[item.parent_id].sub_menus.append(node)

    def sort_level(level: List[MenuNode]) -> None:
        level.sort(key=lambda n: n.title)
        for n in level:
            sort_level(n.sub_menus)

    sort_level(roots)
    return roots


def load_menu(database: Database) -> List[MenuNode]:
    return build_menu_tree(MenuRepository(database).list_active())
