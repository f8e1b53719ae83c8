"""Découpage caractère par caractère d'un relevé délimité.

Les libellés du Crédit Agricole s'étalent sur plusieurs lignes physiques
entre guillemets : un découpage ligne à ligne casserait ces champs.
"""

from __future__ import annotations

DELIMITER = ";"
QUOTE = '"'


def normalize_newlines(content: str) -> str:
    return content.replace("\r\n", "\n").replace("\r", "\n")


def _flush_row(row: list[str], rows: list[list[str]]) -> None:
    """Émet la ligne sauf si tous ses champs sont vides."""
    if any(field for field in row):
        rows.append(row)


def tokenize(content: str, delimiter: str = DELIMITER, quote: str = QUOTE) -> list[list[str]]:
    """Découpe *content* en lignes de champs nettoyés (strip).

    - ``\\r\\n`` et ``\\r`` sont ramenés à ``\\n`` avant lecture ;
    - un champ entre guillemets peut contenir délimiteurs et retours à la
      ligne, ``""`` y représente un guillemet littéral ;
    - une ligne ne contenant que des champs vides n'est pas émise ;
    - la dernière ligne est émise même sans retour à la ligne final.

    Ne lève jamais : un guillemet non fermé laisse le lecteur « entre
    guillemets » jusqu'à la fin de l'entrée.

    Examples:
        >>> tokenize('a;"b;c"\\n;;\\nd')
        [['a', 'b;c'], ['d']]
    """
    text = normalize_newlines(content)
    rows: list[list[str]] = []
    row: list[str] = []
    current: list[str] = []
    in_quotes = False

    i = 0
    length = len(text)
    while i < length:
        char = text[i]
        if in_quotes:
            if char == quote and i + 1 < length and text[i + 1] == quote:
                current.append(quote)
                i += 1
            elif char == quote:
                in_quotes = False
            else:
                current.append(char)
        elif char == quote:
            in_quotes = True
        elif char == delimiter:
            row.append("".join(current).strip())
            current = []
        elif char == "\n":
            row.append("".join(current).strip())
            _flush_row(row, rows)
            row = []
            current = []
        else:
            current.append(char)
        i += 1

    # Dernière ligne sans retour à la ligne final
    if current or row:
        row.append("".join(current).strip())
        _flush_row(row, rows)

    return rows
