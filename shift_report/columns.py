"""
Column specification for projecting work items into a table.

Each column is tagged once, when the spec is built, with the kind of
rendering it needs. Projection then dispatches on the tag instead of
inspecting names for every cell.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Sequence, Tuple, Iterator

from .constants import DATE_COLUMN_SUFFIX, TITLE_COLUMN, FieldNames
from .validation import ValidationError, validate_field_name


class ColumnKind(str, Enum):
    """How a column's cells are rendered"""
    IDENTIFIER = "identifier"
    DATE = "date"
    LINKED_TITLE = "linked-title"
    PLAIN = "plain"


@dataclass(frozen=True)
class Column:
    """One output column"""
    display_name: str
    source_field: str
    kind: ColumnKind


def classify_column(index: int, display_name: str, title_as_link: bool) -> ColumnKind:
    """
    Decide how a column renders.

    The first column is always the identifier. A display name ending in
    "Date" renders as a UTC timestamp. The "Title" column becomes a link
    only when title_as_link is set.
    """
    if index == 0:
        return ColumnKind.IDENTIFIER
    if display_name.endswith(DATE_COLUMN_SUFFIX):
        return ColumnKind.DATE
    if display_name == TITLE_COLUMN and title_as_link:
        return ColumnKind.LINKED_TITLE
    return ColumnKind.PLAIN


class ColumnSpec:
    """
    Ordered (display name, source field) pairs, tagged by kind.

    Example:
        spec = ColumnSpec.from_names(
            ["ID", "Title", "Pickup Date"],
            ["System.Id", "System.Title", "Custom.PickupDate"],
            title_as_link=True,
        )
    """

    def __init__(self, columns: Sequence[Column]):
        if not columns:
            raise ValidationError("Column spec must contain at least one column")

        names = [c.display_name for c in columns]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValidationError(f"Duplicate column display names: {', '.join(duplicates)}")

        if columns[0].kind is not ColumnKind.IDENTIFIER:
            raise ValidationError("The first column must be the identifier column")

        self._columns: Tuple[Column, ...] = tuple(columns)

    @classmethod
    def from_pairs(
        cls,
        pairs: Iterable[Tuple[str, str]],
        title_as_link: bool = False
    ) -> "ColumnSpec":
        """Build a spec from (display name, source field) pairs."""
        columns = []
        for index, (display_name, source_field) in enumerate(pairs):
            display_name = (display_name or "").strip()
            if not display_name:
                raise ValidationError(f"Column {index} has an empty display name")
            source_field = validate_field_name(source_field)
            columns.append(
                Column(
                    display_name=display_name,
                    source_field=source_field,
                    kind=classify_column(index, display_name, title_as_link)
                )
            )
        return cls(columns)

    @classmethod
    def from_names(
        cls,
        display_names: Sequence[str],
        source_fields: Sequence[str],
        title_as_link: bool = False
    ) -> "ColumnSpec":
        """
        Build a spec from two parallel name lists.

        Raises:
            ValidationError: If the lists differ in length or are empty
        """
        if len(display_names) != len(source_fields):
            raise ValidationError(
                f"Column spec mismatch: {len(display_names)} display name(s) "
                f"but {len(source_fields)} source field(s)"
            )
        return cls.from_pairs(zip(display_names, source_fields), title_as_link=title_as_link)

    def with_title_links(self, title_as_link: bool) -> "ColumnSpec":
        """Return the same columns tagged for the given link setting."""
        has_title = any(c.display_name == TITLE_COLUMN for c in self._columns[1:])
        if not has_title or self.links_titles == title_as_link:
            return self
        return ColumnSpec.from_pairs(self.pairs(), title_as_link=title_as_link)

    @property
    def links_titles(self) -> bool:
        return any(c.kind is ColumnKind.LINKED_TITLE for c in self._columns)

    def pairs(self) -> List[Tuple[str, str]]:
        return [(c.display_name, c.source_field) for c in self._columns]

    @property
    def display_names(self) -> List[str]:
        return [c.display_name for c in self._columns]

    @property
    def identifier(self) -> Column:
        return self._columns[0]

    def detail_fields(self) -> List[str]:
        """Source fields to request from the batch endpoint."""
        fields = [c.source_field for c in self._columns[1:]]
        if FieldNames.ID not in fields:
            fields.insert(0, FieldNames.ID)
        return list(dict.fromkeys(fields))

    def __iter__(self) -> Iterator[Column]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def __getitem__(self, index: int) -> Column:
        return self._columns[index]

    def __repr__(self) -> str:
        kinds = ", ".join(f"{c.display_name}:{c.kind.value}" for c in self._columns)
        return f"ColumnSpec({kinds})"
