'''Name-indexed registry of resolved bodies
UniverseCatalog class definition'''

from typing import Dict, List, Optional
import pandas as pd
from .entity import BodyInfo, Entity

class UniverseCatalog:
    """
    Registry mapping body names to their Entity and BodyInfo.

    Created once per application run and mutated by successive catalog
    loads. Each name has at most one entry; upsert() replaces whatever was
    registered under that name before.

    Examples
    --------
    >>> catalog = UniverseCatalog()
    >>> catalog.upsert("Earth", earth, BodyInfo(classification="planet"))
    >>> catalog.find("Earth") is earth
    True
    """

    def __init__(self):
        self._entities: Dict[str, Entity] = {}
        self._info: Dict[str, BodyInfo] = {}

    def find(self, name: str) -> Optional[Entity]:
        """Entity registered under name, or None."""
        return self._entities.get(name)

    def find_info(self, name: str) -> Optional[BodyInfo]:
        """BodyInfo registered under name, or None."""
        return self._info.get(name)

    def upsert(self, name: str, entity: Entity, info: Optional[BodyInfo] = None):
        """
        Register an entity and its info, replacing any previous entry.

        Raises
        ------
        ValueError
            If name does not match the entity's name
        """
        if entity.name != name:
            raise ValueError(f"Entity '{entity.name}' cannot be registered as '{name}'")
        self._entities[name] = entity
        if info is None:
            self._info.pop(name, None)
        else:
            self._info[name] = info

    def names(self) -> List[str]:
        return list(self._entities)

    def __contains__(self, name) -> bool:
        return name in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self):
        return iter(self._entities)

    def to_dataframe(self) -> pd.DataFrame:
        """
        Summary table of the catalog.

        Returns
        -------
        DataFrame indexed by name with columns parent, trajectory,
        period (seconds) and classification
        """
        rows = []
        for name, entity in self._entities.items():
            info = self._info.get(name)
            rows.append({
                'name': name,
                'parent': entity.parent.name if entity.parent is not None else None,
                'trajectory': type(entity.trajectory).__name__,
                'period': entity.trajectory.period,
                'classification': info.classification if info is not None else None,
            })
        columns = ['name', 'parent', 'trajectory', 'period', 'classification']
        return pd.DataFrame(rows, columns=columns).set_index('name')

    def __repr__(self):
        return f"UniverseCatalog({len(self)} bodies)"
