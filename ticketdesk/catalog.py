from pymongo.database import Database
from typing import Dict, List, Optional, Union
import logging

from .errors import NotFoundError, ValidationError
from .models import LookupCategory, LookupEntity
from .repositories import LookupRepository, MenuRepository

logger = logging.getLogger(__name__)

DEFAULT_LOOKUPS = {
    LookupCategory.PRIORITY: ["Baixo", "Normal", "Alto", "Critico"],
    LookupCategory.TYPE: ["Bug", "Melhoria", "Apoio Técnico"],
    LookupCategory.ENVIRONMENT: ["Produção", "Homologação", "Desenvolvimento"],
    LookupCategory.ORIGIN: ["Sala de Negociação", "E-mail", "Telefone"],
    LookupCategory.STATUS: [
        "Para fazer",
        "Em Análise",
        "Em Andamento",
        "Pendente de Teste",
        "Em Teste",
        "Finalizado",
        "Reaberto",
        "Aguardando BBM",
        "Abortado",
    ],
}

# (title, icon, children)
DEFAULT_MENU = [
    ("Tickets", "Ticket", [("Painel", "LayoutDashboard"), ("Gráficos", "PieChart")]),
    ("Cadastros", "FolderCog", [("Usuários", "Users")]),
]


def parse_category(value: Union[str, LookupCategory]) -> LookupCategory:
    try:
        return LookupCategory(value)
    except ValueError:
        raise NotFoundError(f"Unknown lookup category '{value}'")


class LookupCatalog:
    """Description-keyed reference tables.

    Callers name lookups by their human description; everything behind the
    catalog works with the resolved entity ids.
    """

    def __init__(self, database: Database):
        self.repo = LookupRepository(database)

    def list(self, category: Union[str, LookupCategory]) -> List[LookupEntity]:
        return self.repo.list(parse_category(category))

    def resolve(self, category: LookupCategory, description: str) -> Optional[LookupEntity]:
        return self.repo.find_by_description(category, description)

    def resolve_all(self, wanted: Dict[LookupCategory, str], fields: Optional[Dict[LookupCategory, str]] = None) -> Dict[LookupCategory, LookupEntity]:
        """Resolve every description, reporting all misses in a single error.

        ``fields`` maps a category to the request field it came from, so the
        error can point at the offending input.
        """
        fields = fields or {}
        resolved = {}
        missing = []
        errors = {}
        for category, description in wanted.items():
            entity = self.resolve(category, description)
            if entity is None:
                missing.append(f"{category.label} '{description}'")
                field = fields.get(category, category.value)
                errors.setdefault(field, []).append(f"No {category.value} named '{description}'")
            else:
                resolved[category] = entity
        if missing:
            logger.warning("Unresolved lookups: %s", ", ".join(missing))
            raise ValidationError(
                f"Could not find required lookup values: {', '.join(missing)}. "
                "Please ensure these exist in the database.",
                errors,
            )
        return resolved

    def describe(self, category: LookupCategory, entity_id: str) -> Optional[LookupEntity]:
        return self.repo.find(category, entity_id)


def seed_catalog(database: Database) -> None:
    repo = LookupRepository(database)
    for category, descriptions in DEFAULT_LOOKUPS.items():
        for description in descriptions:
            repo.ensure(category, description)

    menus = MenuRepository(database)
    for title, icon, children in DEFAULT_MENU:
        parent = menus.ensure(title, icon)
        for child_title, child_icon in children:
            menus.ensure(child_title, child_icon, parent.id)
    logger.info("Lookup catalog and menu seeded")
