# backend/secdash/ingestion/csv_tokenizer.py
"""
Line-oriented CSV tokenizing for vendor exports.

Vendor exports are split into physical lines first and each line is
tokenized on its own, so a quoted field spanning several lines is not
supported by ``split_lines``. The scorecard issue export does embed
newlines in quoted fields; ``split_records`` exists for that one case.
"""
from typing import List


def _unquote(field: str) -> str:
    field = field.strip()
    if len(field) >= 2 and field[0] == '"' and field[-1] == '"':
        return field[1:-1]
    return field


def tokenize_line(line: str, track_nesting: bool = False) -> List[str]:
    """
    Split one CSV line into stripped field values.

    A double quote toggles the in-quotes state and commas inside quotes are
    kept. With ``track_nesting`` the unquoted ``[]``/``{}`` depth is tracked
    too, so JSON-ish cells (AWS custom parameters, scorecard request chains)
    stay whole, and a backslash-escaped quote does not toggle.

    Never raises: an unterminated quote simply runs to the end of the line.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False

    if not track_nesting:
        for char in line:
            if char == '"':
                in_quotes = not in_quotes
            elif char == "," and not in_quotes:
                fields.append(_unquote("".join(current)))
                current = []
            else:
                current.append(char)
        fields.append(_unquote("".join(current)))
        return fields

    depth = {"[": 0, "{": 0}
    for i, char in enumerate(line):
        if char == '"' and (i == 0 or line[i - 1] != "\\"):
            in_quotes = not in_quotes
        elif not in_quotes:
            if char in depth:
                depth[char] += 1
            elif char == "]":
                depth["["] -= 1
            elif char == "}":
                depth["{"] -= 1
            elif char == "," and depth["["] == 0 and depth["{"] == 0:
                fields.append(_unquote("".join(current)))
                current = []
                continue
        current.append(char)

    fields.append(_unquote("".join(current)))
    return fields


def split_lines(text: str) -> List[str]:
    """Physical lines, stripped, with blank lines dropped."""
    return [line.strip() for line in text.split("\n") if line.strip()]


def split_records(text: str) -> List[str]:
    """Split into logical records, keeping newlines that sit inside quotes."""
    records: List[str] = []
    current: List[str] = []
    in_quotes = False

    for i, char in enumerate(text):
        if char == '"' and (i == 0 or text[i - 1] != "\\"):
            in_quotes = not in_quotes
        if char in "\r\n" and not in_quotes:
            if current:
                records.append("".join(current))
                current = []
            continue
        current.append(char)

    if current:
        records.append("".join(current))
    return [record for record in records if record.strip()]


def parse_header(line: str) -> List[str]:
    """Header names split on commas with every double quote removed."""
    line = line.lstrip("\ufeff")
    return [name.strip().replace('"', "") for name in line.split(",")]
