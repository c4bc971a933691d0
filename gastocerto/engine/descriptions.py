"""
Description Catalog

The descriptions offered when entering a transaction: a fixed default
set merged with the household's own tags. Names are unique in the
merged list (the first occurrence wins, and defaults come first), and
the list is kept sorted for display.
"""

from typing import Iterable

from gastocerto.models.transaction import DescriptionTag


DEFAULT_DESCRIPTIONS: tuple[DescriptionTag, ...] = tuple(
    DescriptionTag(id=f"d{position}", name=name, is_default=True)
    for position, name in enumerate(
        [
            "Aluguel",
            "Supermercado",
            "Conta de Luz",
            "Conta de Água",
            "Internet/Telefone",
            "Transporte/Combustível",
            "Salário",
            "Lazer",
            "Educação",
        ],
        start=1,
    )
)


def _display_key(tag: DescriptionTag) -> tuple[str, str]:
    return (tag.name.casefold(), tag.name)


def merge_descriptions(custom: Iterable[DescriptionTag]) -> list[DescriptionTag]:
    """Defaults plus custom tags, de-duplicated by exact name, sorted."""
    seen: set[str] = set()
    merged = []
    for tag in (*DEFAULT_DESCRIPTIONS, *custom):
        if tag.name in seen:
            continue
        seen.add(tag.name)
        merged.append(tag)
    merged.sort(key=_display_key)
    return merged


def contains_description(name: str, tags: Iterable[DescriptionTag]) -> bool:
    """Case-insensitive membership test used before adding a tag."""
    wanted = name.strip().casefold()
    return any(tag.name.casefold() == wanted for tag in tags)


class DescriptionCatalog:
    """Merged description list, kept current from the tag store's snapshots."""

    def __init__(self, custom: Iterable[DescriptionTag] = ()):
        self._tags: tuple[DescriptionTag, ...] = ()
        self.on_change(custom)

    @property
    def tags(self) -> tuple[DescriptionTag, ...]:
        return self._tags

    @property
    def names(self) -> list[str]:
        return [tag.name for tag in self._tags]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and contains_description(name, self._tags)

    def on_change(self, custom: Iterable[DescriptionTag]) -> None:
        self._tags = tuple(merge_descriptions(custom))
