"""
TableExtractor -- flatten a multi-row, spanned HTML table header into
named-field row records.

Algorithm:
    1. Build a virtual header matrix.  Walk header rows top to bottom; for
       each header cell advance to the next column not already occupied by
       an earlier cell's rowspan, then stamp the cell text into every slot
       of its rowspan x colspan extent.
    2. Label each column by joining the distinct non-empty texts found top
       to bottom in it with `` - ``.  A leaf-only column keeps its own
       text; a column under a spanning parent becomes ``Parent - Leaf``.
       A column with no text is labelled ``Col N`` (1-based).
    3. Zip every body row's data cells 1:1 against the labels.  Rows with
       no data cells, and the grid's own "no data" placeholder row, are
       dropped.  Missing trailing cells become empty strings.

Labeling is positional only; header texts are never validated against an
expected set.

Parsing is done offline with BeautifulSoup on the table's outerHTML, so
the algorithm is testable without a browser.
"""

from __future__ import annotations

from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag

LABEL_SEPARATOR = " - "
EMPTY_ROW_CLASSES = frozenset({"dataTables_empty"})


@dataclass(frozen=True)
class ExtractedTable:
    headers: tuple[str, ...]
    rows: tuple[dict[str, str], ...]


def _cell_text(cell: Tag) -> str:
    # Collapse <br> and layout whitespace the way rendered innerText reads.
    return " ".join(cell.get_text(" ").split())


def _span(cell: Tag, attr: str) -> int:
    try:
        return max(1, int(str(cell.get(attr, "1")).strip() or "1"))
    except ValueError:
        return 1


def flatten_header(header_rows: list[list[tuple[str, int, int]]]) -> list[str]:
    """
    Compute column labels from header rows of ``(text, rowspan, colspan)`` cells.

    >>> flatten_header([[("Name", 2, 1), ("Paid", 1, 2)], [("Cash", 1, 1), ("Card", 1, 1)]])
    ['Name', 'Paid - Cash', 'Paid - Card']
    """
    matrix: list[dict[int, str]] = [dict() for _ in header_rows]
    for row_index, cells in enumerate(header_rows):
        col = 0
        for text, rowspan, colspan in cells:
            while col in matrix[row_index]:
                col += 1
            for r in range(row_index, min(row_index + rowspan, len(header_rows))):
                for c in range(col, col + colspan):
                    matrix[r][c] = text
            col += colspan

    width = max((max(row) + 1 for row in matrix if row), default=0)
    labels: list[str] = []
    for col in range(width):
        parts: list[str] = []
        for row in matrix:
            text = row.get(col, "")
            if text and text not in parts:
                parts.append(text)
        labels.append(LABEL_SEPARATOR.join(parts) or f"Col {col + 1}")
    return labels


class TableExtractor:
    """Turns a rendered report ``<table>`` into ordered field maps."""

    def __init__(self, empty_row_classes: frozenset[str] = EMPTY_ROW_CLASSES) -> None:
        self._empty_row_classes = empty_row_classes

    def extract(self, table_html: str) -> ExtractedTable:
        soup = BeautifulSoup(table_html, "html.parser")
        table = soup.find("table")
        if table is None:
            return ExtractedTable(headers=(), rows=())

        header_trs, body_trs = self._split_rows(table)
        header_rows = [
            [
                (_cell_text(cell), _span(cell, "rowspan"), _span(cell, "colspan"))
                for cell in tr.find_all(["th", "td"], recursive=False)
            ]
            for tr in header_trs
        ]
        labels = flatten_header(header_rows)

        rows: list[dict[str, str]] = []
        for tr in body_trs:
            cells = tr.find_all("td", recursive=False)
            if not cells or self._is_placeholder_row(cells):
                continue
            record = {
                label: (_cell_text(cells[i]) if i < len(cells) else "")
                for i, label in enumerate(labels)
            }
            for i in range(len(labels), len(cells)):
                record[f"Col {i + 1}"] = _cell_text(cells[i])
            rows.append(record)

        return ExtractedTable(headers=tuple(labels), rows=tuple(rows))

    @staticmethod
    def _split_rows(table: Tag) -> tuple[list[Tag], list[Tag]]:
        thead = table.find("thead")
        tbody = table.find("tbody")
        if thead is not None:
            header_trs = thead.find_all("tr")
            body_trs = tbody.find_all("tr") if tbody is not None else []
            return header_trs, body_trs

        # No <thead>: leading rows made only of <th> cells form the header.
        all_trs = table.find_all("tr")
        split = 0
        for tr in all_trs:
            if tr.find("td") is None and tr.find("th") is not None:
                split += 1
            else:
                break
        return all_trs[:split], all_trs[split:]

    def _is_placeholder_row(self, cells: list[Tag]) -> bool:
        if len(cells) != 1:
            return False
        classes = set(cells[0].get("class") or ())
        return bool(classes & self._empty_row_classes)
