"""Delimited-text tokenizer tolerant of hand-exported brokerage spreadsheets."""

from __future__ import annotations

from portfolio_importer.ingest.records import CsvParseResult, RawRow

BOM = "\ufeff"


def strip_bom(text: str) -> str:
    if text.startswith(BOM):
        return text[1:]
    return text


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def split_lines(text: str) -> list[str]:
    return normalize_newlines(strip_bom(text)).split("\n")


def parse_csv_line(line: str, delimiter: str = ",") -> list[str]:
    """Split one line into fields.

    Quoted fields may contain the delimiter; ``""`` inside quotes is a literal
    quote. A quote left open at end of line is closed implicitly.
    """
    fields: list[str] = []
    field: list[str] = []
    in_quotes = False
    index = 0
    length = len(line)

    while index < length:
        char = line[index]
        if in_quotes:
            if char == '"':
                if index + 1 < length and line[index + 1] == '"':
                    field.append('"')
                    index += 2
                    continue
                in_quotes = False
            else:
                field.append(char)
        elif char == '"':
            in_quotes = True
        elif char == delimiter:
            fields.append("".join(field))
            field = []
        else:
            field.append(char)
        index += 1

    fields.append("".join(field))
    return fields


def parse_csv(
    text: str,
    *,
    delimiter: str = ",",
    skip_rows: int = 0,
    header_row_index: int = 0,
    trim_values: bool = True,
    max_rows: int | None = None,
) -> CsvParseResult:
    lines = split_lines(text)[skip_rows:]
    if not lines:
        return CsvParseResult(headers=[], rows=[], total_rows=0)

    header_line = lines[header_row_index] if header_row_index < len(lines) else ""
    headers = parse_csv_line(header_line, delimiter)
    if trim_values:
        headers = [header.strip() for header in headers]

    data_start = header_row_index + 1
    stop = len(lines) if max_rows is None else min(len(lines), data_start + max_rows)

    rows: list[RawRow] = []
    header_tuple = tuple(headers)
    for index in range(data_start, stop):
        line = lines[index]
        if not line.strip():
            continue
        values = parse_csv_line(line, delimiter)
        if trim_values:
            values = [value.strip() for value in values]
        rows.append(
            RawRow(
                headers=header_tuple,
                values=tuple(values),
                line_number=skip_rows + index + 1,
            )
        )

    return CsvParseResult(
        headers=headers,
        rows=rows,
        total_rows=max(0, len(lines) - data_start),
    )
